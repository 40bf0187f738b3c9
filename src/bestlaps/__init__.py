"""bestlaps - Best lap time tracking, CSV persistence and collector submission."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bestlaps")
except PackageNotFoundError:
    __version__ = "0+local"
from bestlaps.config import BestLapsConfig, validate_config
from bestlaps.coordinator import BestLapsCoordinator, LapOutcome
from bestlaps.exceptions import (
    BestLapsConfigError,
    BestLapsError,
    BestLapsNotifyError,
    BestLapsNotifyTimeoutError,
    BestLapsPersistenceError,
)
from bestlaps.models import BestTimeEntry, LapCompletedEvent, LapTimeSubmission
from bestlaps.state.policy import LapDecision
from bestlaps.state.store import RecordStore

__all__ = [
    "__version__",
    "BestLapsConfig",
    "BestLapsConfigError",
    "BestLapsCoordinator",
    "BestLapsError",
    "BestLapsNotifyError",
    "BestLapsNotifyTimeoutError",
    "BestLapsPersistenceError",
    "BestTimeEntry",
    "LapCompletedEvent",
    "LapDecision",
    "LapOutcome",
    "LapTimeSubmission",
    "RecordStore",
    "validate_config",
]
