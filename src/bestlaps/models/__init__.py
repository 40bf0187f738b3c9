"""Typed models for bestlaps."""

from bestlaps.models.lap import UNKNOWN_DRIVER, BestTimeEntry, LapCompletedEvent, name_key
from bestlaps.models.submission import LapTimeSubmission

__all__ = [
    "UNKNOWN_DRIVER",
    "BestTimeEntry",
    "LapCompletedEvent",
    "LapTimeSubmission",
    "name_key",
]
