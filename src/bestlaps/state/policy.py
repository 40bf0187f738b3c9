"""Lap acceptance and notification policy.

Pure functions only: no table access and no I/O.
"""

from __future__ import annotations

from enum import StrEnum

from bestlaps.config import BestLapsConfig


class LapDecision(StrEnum):
    ACCEPT = "accept"
    REJECT_CUTS = "reject_cuts"
    REJECT_BELOW_MINIMUM = "reject_below_minimum"


def evaluate_lap(cuts: int, lap_time_ms: int, config: BestLapsConfig) -> LapDecision:
    """Decide whether a completed lap counts.

    Cuts are checked before the minimum lap time so rejection reasons are
    reported the same way for a lap that fails both gates.
    """
    if cuts > config.max_allowed_cuts:
        return LapDecision.REJECT_CUTS
    if lap_time_ms < config.minimum_lap_time_ms:
        return LapDecision.REJECT_BELOW_MINIMUM
    return LapDecision.ACCEPT


def should_notify(
    *,
    submit_all_laps: bool,
    session_mode: bool,
    is_new_all_time_best: bool,
    is_new_session_best: bool,
) -> bool:
    """Decide whether an accepted lap is sent to the collector.

    Policy:
    - ``submit_all_laps``: every accepted lap.
    - session mode: only new session bests.
    - otherwise: only new all-time bests.
    """
    if submit_all_laps:
        return True
    if session_mode:
        return is_new_session_best
    return is_new_all_time_best


def is_improvement(current_ms: int | None, incoming_ms: int) -> bool:
    return current_ms is None or incoming_ms < current_ms
