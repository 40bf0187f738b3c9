"""In-memory best-lap record store.

This is the only component allowed to read or mutate the best-lap tables.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from bestlaps.models.lap import BestTimeEntry, name_key
from bestlaps.state.policy import is_improvement

SnapshotWriter = Callable[[list[BestTimeEntry]], Awaitable[None]]


@dataclass(slots=True)
class _Record:
    name: str
    lap_time_ms: int


def _try_update(table: dict[str, _Record], name: str, lap_time_ms: int) -> bool:
    key = name_key(name)
    record = table.get(key)
    if not is_improvement(record.lap_time_ms if record is not None else None, lap_time_ms):
        return False
    if record is None:
        table[key] = _Record(name=name, lap_time_ms=lap_time_ms)
    else:
        # First-seen casing is kept as the display name.
        record.lap_time_ms = lap_time_ms
    return True


class RecordStore:
    """All-time and session best lap tables behind one lock.

    The lock is an :class:`asyncio.Lock`: exclusive and non-reentrant. It
    is held for table reads and mutations and, in :meth:`persist`, across
    the snapshot write. Callers must never hold it across an HTTP call.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._all_time: dict[str, _Record] = {}
        self._session: dict[str, _Record] = {}

    def __len__(self) -> int:
        return len(self._all_time)

    async def try_update_all_time(self, name: str, lap_time_ms: int) -> bool:
        """Record *lap_time_ms* if it beats the driver's all-time best."""
        async with self._lock:
            return _try_update(self._all_time, name, lap_time_ms)

    async def try_update_session(self, name: str, lap_time_ms: int) -> bool:
        """Record *lap_time_ms* if it beats the driver's best this run."""
        async with self._lock:
            return _try_update(self._session, name, lap_time_ms)

    async def try_update(self, name: str, lap_time_ms: int, *, session_mode: bool) -> tuple[bool, bool]:
        """Update both tables under a single lock acquisition.

        Returns ``(is_new_all_time_best, is_new_session_best)``. The session
        table is left untouched unless *session_mode* is set.
        """
        async with self._lock:
            all_time = _try_update(self._all_time, name, lap_time_ms)
            session = _try_update(self._session, name, lap_time_ms) if session_mode else False
            return all_time, session

    async def get_all_time(self, name: str) -> int | None:
        async with self._lock:
            record = self._all_time.get(name_key(name))
            return record.lap_time_ms if record is not None else None

    async def get_session(self, name: str) -> int | None:
        async with self._lock:
            record = self._session.get(name_key(name))
            return record.lap_time_ms if record is not None else None

    async def snapshot(self) -> list[BestTimeEntry]:
        """Point-in-time copy of the all-time table, fastest first."""
        async with self._lock:
            return self._sorted_all_time()

    async def load_all_time(self, entries: Iterable[BestTimeEntry]) -> None:
        """Replace the all-time table. Duplicate names keep the last value."""
        table: dict[str, _Record] = {}
        for entry in entries:
            record = table.get(entry.key)
            if record is None:
                table[entry.key] = _Record(name=entry.name, lap_time_ms=entry.lap_time_ms)
            else:
                record.lap_time_ms = entry.lap_time_ms
        async with self._lock:
            self._all_time = table

    async def persist(self, writer: SnapshotWriter) -> None:
        """Hand a sorted snapshot to *writer* while holding the lock.

        Holding the lock across the write keeps snapshot writes from
        overlapping each other or any table mutation.
        """
        async with self._lock:
            await writer(self._sorted_all_time())

    def _sorted_all_time(self) -> list[BestTimeEntry]:
        ordered = sorted(self._all_time.items(), key=lambda item: (item[1].lap_time_ms, item[0]))
        return [BestTimeEntry(name=record.name, lap_time_ms=record.lap_time_ms) for _, record in ordered]
