"""Rendering helpers for lap times and snapshot timestamps."""

from __future__ import annotations

from datetime import UTC, datetime

#: ``YYYY-MM-DD HH:MM:SS`` in UTC, as written to the snapshot file.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_lap_time(lap_time_ms: int) -> str:
    """Render milliseconds as ``mm:ss.fff``.

    Minutes wrap at the hour, so a 61 minute lap renders as ``01:00.000``.
    """
    minutes, remainder = divmod(lap_time_ms % 3_600_000, 60_000)
    seconds, millis = divmod(remainder, 1000)
    return f"{minutes:02d}:{seconds:02d}.{millis:03d}"


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime | None:
    """Parse a snapshot timestamp; ``None`` when blank or malformed."""
    value = value.strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        return None
