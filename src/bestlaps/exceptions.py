"""Custom exception hierarchy for bestlaps."""

from __future__ import annotations


class BestLapsError(Exception):
    """Base exception for all bestlaps errors."""


class BestLapsConfigError(BestLapsError):
    """Invalid or missing configuration.

    ``problems`` holds every individual violation so startup wiring can
    report them all at once.
    """

    def __init__(self, message: str, *, problems: list[str] | None = None) -> None:
        self.problems = list(problems or [])
        super().__init__(message)


class BestLapsPersistenceError(BestLapsError):
    """Snapshot file could not be read or written."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class BestLapsNotifyError(BestLapsError):
    """Lap-time submission failed (network error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class BestLapsNotifyTimeoutError(BestLapsNotifyError):
    """Lap-time submission did not complete within the configured timeout."""
