"""CSV snapshot of the all-time best lap table.

The snapshot is always rewritten in full: a header row followed by one row
per driver, fastest first. Only the name and millisecond columns are read
back; the formatted time and timestamp columns are informational.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from bestlaps._format import format_lap_time, format_timestamp, parse_timestamp
from bestlaps.exceptions import BestLapsPersistenceError
from bestlaps.models.lap import BestTimeEntry

_logger = logging.getLogger(__name__)

CSV_HEADER: tuple[str, ...] = ("Nickname", "BestLapTimeMs", "FormattedTime", "LastUpdated")

#: Largest lap time accepted from a snapshot (unsigned 32-bit).
MAX_LAP_TIME_MS = 2**32 - 1


def encode_snapshot(entries: Iterable[BestTimeEntry], *, written_at: datetime) -> str:
    """Render *entries* as snapshot CSV text.

    Entries are written in the order given; the record store hands them over
    already sorted. Every row carries the same *written_at* timestamp.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    timestamp = format_timestamp(written_at)
    for entry in entries:
        writer.writerow((entry.name, entry.lap_time_ms, format_lap_time(entry.lap_time_ms), timestamp))
    return buffer.getvalue()


def _parse_lap_time(value: str) -> int | None:
    """Parse an unsigned 32-bit millisecond value; ``None`` when malformed."""
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        return None
    lap_time_ms = int(value)
    return lap_time_ms if lap_time_ms <= MAX_LAP_TIME_MS else None


def decode_snapshot(text: str) -> list[BestTimeEntry]:
    """Parse snapshot CSV text.

    The first row is the header. Blank lines and malformed rows (missing
    fields, non-numeric time) are skipped.
    """
    entries: list[BestTimeEntry] = []
    rows = csv.reader(io.StringIO(text, newline=""))
    for index, row in enumerate(rows):
        if index == 0 or not row or not any(field.strip() for field in row):
            continue
        if len(row) < 2:
            _logger.debug("Skipping snapshot row %d: too few fields", index + 1)
            continue
        lap_time_ms = _parse_lap_time(row[1])
        if lap_time_ms is None:
            _logger.debug("Skipping snapshot row %d: invalid lap time %r", index + 1, row[1])
            continue
        last_updated = parse_timestamp(row[3]) if len(row) > 3 else None
        entries.append(BestTimeEntry(name=row[0], lap_time_ms=lap_time_ms, last_updated=last_updated))
    return entries


def read_snapshot(path: Path) -> list[BestTimeEntry]:
    """Load entries from *path*; a missing file is an empty table.

    Raises
    ------
    BestLapsPersistenceError
        The file exists but could not be read or decoded.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        _logger.debug("No existing snapshot found at %s, starting fresh", path)
        return []
    except (OSError, UnicodeDecodeError) as exc:
        raise BestLapsPersistenceError(f"Cannot read snapshot {path}: {exc}", path=str(path)) from exc
    try:
        return decode_snapshot(text)
    except csv.Error as exc:
        raise BestLapsPersistenceError(f"Cannot parse snapshot {path}: {exc}", path=str(path)) from exc


def write_snapshot(path: Path, entries: Iterable[BestTimeEntry], *, written_at: datetime | None = None) -> None:
    """Replace the content of *path* with a snapshot of *entries*.

    Raises :class:`BestLapsPersistenceError` when the file cannot be written.
    """
    if written_at is None:
        written_at = datetime.now(UTC)
    text = encode_snapshot(entries, written_at=written_at)
    try:
        path.write_text(text, encoding="utf-8", newline="")
    except OSError as exc:
        raise BestLapsPersistenceError(f"Cannot write snapshot {path}: {exc}", path=str(path)) from exc
