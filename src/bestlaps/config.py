"""Configuration for bestlaps."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from bestlaps.exceptions import BestLapsConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class BestLapsConfig:
    """Best-lap tracking configuration.

    The defaults reproduce the strict behaviour of a fixed setup: any cut
    rejects the lap, laps under ten seconds are ignored and notifications
    are judged against the all-time table.

    Parameters
    ----------
    lap_time_api_url : str
        Absolute HTTP(S) URL lap times are POSTed to.
    api_timeout_seconds : float
        Per-request timeout for the lap-time submission.
    csv_enabled : bool
        Persist the all-time table to a CSV snapshot.
    output_directory : str
        Directory holding the CSV snapshot. Created on startup.
    csv_file_name : str
        File name of the CSV snapshot inside ``output_directory``.
    minimum_lap_time_ms : int
        Laps faster than this are rejected as invalid.
    max_allowed_cuts : int
        Laps with more track-limit cuts than this are rejected.
    submit_all_laps : bool
        Submit every accepted lap, not only personal bests.
    session_mode : bool
        Judge notification eligibility against a per-run session table
        instead of the persisted all-time table. The CSV snapshot still
        tracks all-time bests.
    """

    lap_time_api_url: str
    api_timeout_seconds: float = 1.0
    csv_enabled: bool = True
    output_directory: str = "lap_times"
    csv_file_name: str = "best_laps.csv"
    minimum_lap_time_ms: int = 10_000
    max_allowed_cuts: int = 0
    submit_all_laps: bool = False
    session_mode: bool = False

    @property
    def csv_path(self) -> Path:
        return Path(self.output_directory) / self.csv_file_name

    @classmethod
    def from_env(cls, **overrides: Any) -> BestLapsConfig:
        """Create configuration from ``BESTLAPS_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "BESTLAPS_API_URL": "lap_time_api_url",
            "BESTLAPS_OUTPUT_DIRECTORY": "output_directory",
            "BESTLAPS_CSV_FILE_NAME": "csv_file_name",
        }
        _ENV_INT_MAP = {
            "BESTLAPS_MINIMUM_LAP_TIME_MS": "minimum_lap_time_ms",
            "BESTLAPS_MAX_ALLOWED_CUTS": "max_allowed_cuts",
        }
        _ENV_BOOL_MAP = {
            "BESTLAPS_CSV_ENABLED": ("csv_enabled", True),
            "BESTLAPS_SUBMIT_ALL_LAPS": ("submit_all_laps", False),
            "BESTLAPS_SESSION_MODE": ("session_mode", False),
        }

        config_kwargs: dict[str, Any] = {"lap_time_api_url": ""}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = int(val)

        for env_key, (field_name, default) in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), default)

        timeout_env = env.get("BESTLAPS_API_TIMEOUT")
        if timeout_env is not None and "api_timeout_seconds" not in overrides:
            config_kwargs["api_timeout_seconds"] = float(timeout_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


def _is_http_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme in {"http", "https"} and bool(parts.netloc)


def validate_config(config: BestLapsConfig) -> None:
    """Check *config* and raise :class:`BestLapsConfigError` on any violation.

    Intended for startup wiring; the coordinator itself assumes a valid
    configuration.
    """
    problems: list[str] = []

    if not config.lap_time_api_url:
        problems.append("lap_time_api_url is required")
    elif not _is_http_url(config.lap_time_api_url):
        problems.append("lap_time_api_url must be a valid HTTP or HTTPS URL")

    if config.api_timeout_seconds <= 0:
        problems.append("api_timeout_seconds must be greater than 0")

    if config.minimum_lap_time_ms <= 0:
        problems.append("minimum_lap_time_ms must be greater than 0")

    if config.max_allowed_cuts < 0:
        problems.append("max_allowed_cuts must not be negative")

    if config.csv_enabled:
        if not config.output_directory:
            problems.append("output_directory is required when csv_enabled is true")
        if not config.csv_file_name:
            problems.append("csv_file_name is required when csv_enabled is true")

    if problems:
        raise BestLapsConfigError("Invalid configuration: " + "; ".join(problems), problems=problems)
