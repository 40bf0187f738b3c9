"""HTTP submission of lap times to the collector."""

from __future__ import annotations

import json
import logging
from typing import Protocol

import aiohttp

from bestlaps.exceptions import BestLapsNotifyError, BestLapsNotifyTimeoutError
from bestlaps.models.submission import LapTimeSubmission

_logger = logging.getLogger(__name__)


class LapTimeNotifier(Protocol):
    """Structural notifier interface used by the coordinator.

    Lets tests pass simple fakes while the production implementation
    (`HttpLapTimeNotifier`) stays concrete.
    """

    async def submit(self, submission: LapTimeSubmission) -> None:
        ...


class HttpLapTimeNotifier:
    """POST lap-time submissions as JSON. One attempt, no retry."""

    def __init__(
        self,
        url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout_seconds: float,
    ) -> None:
        self._url = url
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @property
    def url(self) -> str:
        return self._url

    async def submit(self, submission: LapTimeSubmission) -> None:
        """Send *submission*.

        Raises
        ------
        BestLapsNotifyTimeoutError
            The request did not finish within the timeout.
        BestLapsNotifyError
            Connection failure or non-2xx response.
        """
        body = json.dumps(submission.to_payload(), separators=(",", ":"))
        headers = {"content-type": "application/json; charset=utf-8"}

        _logger.debug("POST %s nickName=%s", self._url, submission.nick_name)

        try:
            async with self._http.post(self._url, data=body, headers=headers, timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    text = await resp.text(errors="replace")
                    raise BestLapsNotifyError(
                        f"HTTP {resp.status} from {self._url}: {text[:200]}",
                        status_code=resp.status,
                        url=self._url,
                    )
        except BestLapsNotifyError:
            raise
        except TimeoutError as exc:
            raise BestLapsNotifyTimeoutError(
                f"Request to {self._url} timed out",
                url=self._url,
            ) from exc
        except aiohttp.ClientError as exc:
            raise BestLapsNotifyError(
                f"Request to {self._url} failed: {exc}",
                url=self._url,
            ) from exc
