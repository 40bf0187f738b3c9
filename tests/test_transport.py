from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from bestlaps._transport import HttpLapTimeNotifier
from bestlaps.exceptions import BestLapsNotifyError, BestLapsNotifyTimeoutError
from bestlaps.models import LapTimeSubmission


def _app(handler: Any) -> web.Application:
    app = web.Application()
    app.router.add_post("/lap-times", handler)
    return app


@pytest.mark.asyncio
async def test_submit_posts_json_payload() -> None:
    received: list[tuple[str, dict[str, Any]]] = []

    async def handler(request: web.Request) -> web.Response:
        received.append((request.content_type, await request.json()))
        return web.json_response({"ok": True}, status=201)

    async with TestServer(_app(handler)) as server, aiohttp.ClientSession() as session:
        notifier = HttpLapTimeNotifier(str(server.make_url("/lap-times")), session, timeout_seconds=1.0)
        await notifier.submit(LapTimeSubmission.for_lap("Alice", 65000))

    assert received == [
        (
            "application/json",
            {"nickName": "Alice", "bestLapTimeMs": 65000, "formattedTime": "01:05.000"},
        )
    ]


@pytest.mark.asyncio
async def test_non_2xx_raises_with_status_code() -> None:
    async def handler(_request: web.Request) -> web.Response:
        return web.Response(status=503, text="collector down")

    async with TestServer(_app(handler)) as server, aiohttp.ClientSession() as session:
        url = str(server.make_url("/lap-times"))
        notifier = HttpLapTimeNotifier(url, session, timeout_seconds=1.0)
        with pytest.raises(BestLapsNotifyError) as exc_info:
            await notifier.submit(LapTimeSubmission.for_lap("Alice", 65000))

    exc = exc_info.value
    assert not isinstance(exc, BestLapsNotifyTimeoutError)
    assert exc.status_code == 503
    assert exc.url == url
    assert "collector down" in str(exc)


@pytest.mark.asyncio
async def test_slow_collector_raises_timeout_error() -> None:
    async def handler(_request: web.Request) -> web.Response:
        await asyncio.sleep(0.5)
        return web.Response(status=200)

    async with TestServer(_app(handler)) as server, aiohttp.ClientSession() as session:
        notifier = HttpLapTimeNotifier(str(server.make_url("/lap-times")), session, timeout_seconds=0.05)
        with pytest.raises(BestLapsNotifyTimeoutError):
            await notifier.submit(LapTimeSubmission.for_lap("Alice", 65000))


@pytest.mark.asyncio
async def test_connection_failure_raises_notify_error() -> None:
    async with aiohttp.ClientSession() as session:
        notifier = HttpLapTimeNotifier("http://127.0.0.1:1/lap-times", session, timeout_seconds=1.0)
        with pytest.raises(BestLapsNotifyError) as exc_info:
            await notifier.submit(LapTimeSubmission.for_lap("Alice", 65000))

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_undecodable_error_body_keeps_status_code() -> None:
    async def handler(_request: web.Request) -> web.Response:
        return web.Response(status=500, body=b"\xff\xfe\xfa", content_type="text/plain", charset="utf-8")

    async with TestServer(_app(handler)) as server, aiohttp.ClientSession() as session:
        notifier = HttpLapTimeNotifier(str(server.make_url("/lap-times")), session, timeout_seconds=1.0)
        with pytest.raises(BestLapsNotifyError) as exc_info:
            await notifier.submit(LapTimeSubmission.for_lap("Alice", 65000))

    assert exc_info.value.status_code == 500
    assert "HTTP 500" in str(exc_info.value)
