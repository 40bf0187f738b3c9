"""Per-lap coordination of the record store, snapshot file and collector."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import aiohttp

from bestlaps._format import format_lap_time
from bestlaps._transport import HttpLapTimeNotifier, LapTimeNotifier
from bestlaps.config import BestLapsConfig
from bestlaps.exceptions import (
    BestLapsError,
    BestLapsNotifyError,
    BestLapsNotifyTimeoutError,
    BestLapsPersistenceError,
)
from bestlaps.models.lap import BestTimeEntry, LapCompletedEvent
from bestlaps.models.submission import LapTimeSubmission
from bestlaps.persistence import read_snapshot, write_snapshot
from bestlaps.state.policy import LapDecision, evaluate_lap, should_notify
from bestlaps.state.store import RecordStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class LapOutcome:
    """What handling a single lap did."""

    decision: LapDecision
    is_new_all_time_best: bool = False
    is_new_session_best: bool = False
    snapshot_written: bool = False
    notification_scheduled: bool = False

    @property
    def accepted(self) -> bool:
        return self.decision is LapDecision.ACCEPT


class BestLapsCoordinator:
    """Track best laps, persist the all-time table and notify the collector.

    Usage::

        async with BestLapsCoordinator(config) as coordinator:
            await coordinator.on_lap_completed(
                LapCompletedEvent(driver_name="Alice", lap_time_ms=65000, cuts=0)
            )

    Entering the context loads the snapshot and opens the HTTP session.
    Leaving it abandons notifications still in flight.
    """

    def __init__(
        self,
        config: BestLapsConfig,
        *,
        store: RecordStore | None = None,
        notifier: LapTimeNotifier | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._store = store if store is not None else RecordStore()
        self._notifier = notifier
        self._external_session = session is not None
        self._http_session = session
        self._clock = clock
        self._notify_tasks: set[asyncio.Task[None]] = set()

    @property
    def config(self) -> BestLapsConfig:
        return self._config

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def pending_notifications(self) -> int:
        return sum(1 for task in self._notify_tasks if not task.done())

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BestLapsCoordinator:
        if self._notifier is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._notifier = HttpLapTimeNotifier(
                self._config.lap_time_api_url,
                self._http_session,
                timeout_seconds=self._config.api_timeout_seconds,
            )
        try:
            self._log_config()
            await self.load()
        except BaseException:
            await self._close_owned_session()
            raise
        return self

    async def __aexit__(self, *exc: Any) -> None:
        for task in list(self._notify_tasks):
            if not task.done():
                task.cancel()
        self._notify_tasks.clear()
        await self._close_owned_session()

    async def _close_owned_session(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._notifier = None

    def _log_config(self) -> None:
        config = self._config
        _logger.info(
            "Best lap tracking started: api_url=%s api_timeout=%ss csv_enabled=%s csv_path=%s "
            "min_lap_time=%dms max_cuts=%d submit_all_laps=%s session_mode=%s",
            config.lap_time_api_url,
            config.api_timeout_seconds,
            config.csv_enabled,
            config.csv_path if config.csv_enabled else "N/A",
            config.minimum_lap_time_ms,
            config.max_allowed_cuts,
            config.submit_all_laps,
            config.session_mode,
        )

    # ------------------------------------------------------------------
    # Snapshot persistence
    # ------------------------------------------------------------------

    def _read_snapshot_file(self) -> list[BestTimeEntry]:
        path = self._config.csv_path
        path.parent.mkdir(parents=True, exist_ok=True)
        return read_snapshot(path)

    async def load(self) -> int:
        """Load the all-time table from the snapshot file.

        Returns the number of drivers loaded. Read or parse failures are
        logged and leave the table empty.
        """
        if not self._config.csv_enabled:
            return 0

        loop = asyncio.get_running_loop()
        try:
            entries = await loop.run_in_executor(None, self._read_snapshot_file)
        except (BestLapsPersistenceError, OSError):
            _logger.error("Error loading best lap times from %s", self._config.csv_path, exc_info=True)
            entries = []

        await self._store.load_all_time(entries)
        _logger.info("Loaded %d best lap times from %s", len(self._store), self._config.csv_path)
        return len(self._store)

    async def _write_snapshot(self) -> bool:
        path = self._config.csv_path
        loop = asyncio.get_running_loop()

        async def _write(entries: list[BestTimeEntry]) -> None:
            await loop.run_in_executor(
                None,
                functools.partial(write_snapshot, path, entries, written_at=self._clock()),
            )

        try:
            await self._store.persist(_write)
        except BestLapsPersistenceError:
            _logger.error("Error writing best lap times to %s", path, exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    def _schedule_notification(self, notifier: LapTimeNotifier, name: str, lap_time_ms: int) -> None:
        submission = LapTimeSubmission.for_lap(name, lap_time_ms)
        task = asyncio.create_task(self._send_notification(notifier, submission))
        self._notify_tasks.add(task)
        task.add_done_callback(self._notify_tasks.discard)

    async def _send_notification(self, notifier: LapTimeNotifier, submission: LapTimeSubmission) -> None:
        # Top-level boundary of the detached task: failures end here.
        try:
            await notifier.submit(submission)
        except BestLapsNotifyTimeoutError as exc:
            _logger.warning("Lap time submission timed out for %s: %s", submission.nick_name, exc)
        except BestLapsNotifyError as exc:
            _logger.error(
                "Failed to submit lap time for %s. Status: %s, Error: %s",
                submission.nick_name,
                exc.status_code,
                exc,
            )
        except Exception:
            _logger.error("Error sending lap time for %s", submission.nick_name, exc_info=True)

    async def flush_notifications(self) -> None:
        """Wait for every notification currently in flight."""
        pending = [task for task in self._notify_tasks if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def on_lap_completed(self, event: LapCompletedEvent) -> LapOutcome:
        """Handle one completed lap from the event source."""
        notifier = self._notifier
        if notifier is None:
            raise BestLapsError("Coordinator is not started; use 'async with' or pass a notifier")

        config = self._config
        name = event.driver_name
        lap_time_ms = event.lap_time_ms

        decision = evaluate_lap(event.cuts, lap_time_ms, config)
        if decision is LapDecision.REJECT_CUTS:
            _logger.debug(
                "Lap from %s rejected: %d cuts detected (max allowed: %d)",
                name,
                event.cuts,
                config.max_allowed_cuts,
            )
            return LapOutcome(decision=decision)
        if decision is LapDecision.REJECT_BELOW_MINIMUM:
            _logger.debug(
                "Lap from %s rejected: lap time %dms is below minimum %dms",
                name,
                lap_time_ms,
                config.minimum_lap_time_ms,
            )
            return LapOutcome(decision=decision)

        is_new_all_time_best, is_new_session_best = await self._store.try_update(
            name, lap_time_ms, session_mode=config.session_mode
        )
        if is_new_all_time_best:
            _logger.info("New best lap for %s: %s (%dms)", name, format_lap_time(lap_time_ms), lap_time_ms)
        if is_new_session_best:
            _logger.debug("New session best for %s: %dms", name, lap_time_ms)

        snapshot_written = False
        if is_new_all_time_best and config.csv_enabled:
            snapshot_written = await self._write_snapshot()

        notify = should_notify(
            submit_all_laps=config.submit_all_laps,
            session_mode=config.session_mode,
            is_new_all_time_best=is_new_all_time_best,
            is_new_session_best=is_new_session_best,
        )
        if notify:
            self._schedule_notification(notifier, name, lap_time_ms)

        return LapOutcome(
            decision=decision,
            is_new_all_time_best=is_new_all_time_best,
            is_new_session_best=is_new_session_best,
            snapshot_written=snapshot_written,
            notification_scheduled=notify,
        )
