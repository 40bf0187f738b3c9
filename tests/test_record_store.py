from __future__ import annotations

import asyncio

import pytest

from bestlaps.models import BestTimeEntry
from bestlaps.state.store import RecordStore


@pytest.mark.asyncio
async def test_first_lap_is_always_a_best() -> None:
    store = RecordStore()

    assert await store.try_update_all_time("Alice", 65000) is True
    assert await store.get_all_time("Alice") == 65000


@pytest.mark.asyncio
async def test_only_strictly_faster_laps_replace_the_best() -> None:
    store = RecordStore()
    await store.try_update_all_time("Alice", 65000)

    assert await store.try_update_all_time("Alice", 70000) is False
    assert await store.try_update_all_time("Alice", 65000) is False
    assert await store.try_update_all_time("Alice", 64999) is True
    assert await store.get_all_time("Alice") == 64999


@pytest.mark.asyncio
async def test_names_are_case_insensitive_and_keep_first_casing() -> None:
    store = RecordStore()
    await store.try_update_all_time("Alice", 65000)

    assert await store.try_update_all_time("ALICE", 64000) is True
    assert await store.try_update_all_time("alice", 64500) is False

    snapshot = await store.snapshot()
    assert [(e.name, e.lap_time_ms) for e in snapshot] == [("Alice", 64000)]


@pytest.mark.asyncio
async def test_session_table_is_independent_of_all_time_table() -> None:
    store = RecordStore()
    await store.load_all_time([BestTimeEntry(name="Alice", lap_time_ms=60000)])

    assert await store.try_update_session("Alice", 65000) is True
    assert await store.try_update_all_time("Alice", 65000) is False
    assert await store.get_session("Alice") == 65000
    assert await store.get_all_time("Alice") == 60000


@pytest.mark.asyncio
async def test_try_update_skips_session_table_unless_enabled() -> None:
    store = RecordStore()

    assert await store.try_update("Bob", 70000, session_mode=False) == (True, False)
    assert await store.get_session("Bob") is None

    assert await store.try_update("Bob", 69000, session_mode=True) == (True, True)
    assert await store.try_update("Bob", 69500, session_mode=True) == (False, False)


@pytest.mark.asyncio
async def test_snapshot_is_sorted_fastest_first() -> None:
    store = RecordStore()
    for name, lap in [("Carol", 71000), ("Alice", 65000), ("Bob", 68000)]:
        await store.try_update_all_time(name, lap)

    snapshot = await store.snapshot()

    assert [e.name for e in snapshot] == ["Alice", "Bob", "Carol"]
    assert all(e.last_updated is None for e in snapshot)


@pytest.mark.asyncio
async def test_load_all_time_replaces_table_and_last_duplicate_wins() -> None:
    store = RecordStore()
    await store.try_update_all_time("Stale", 50000)

    await store.load_all_time(
        [
            BestTimeEntry(name="Alice", lap_time_ms=65000),
            BestTimeEntry(name="alice", lap_time_ms=70000),
            BestTimeEntry(name="Bob", lap_time_ms=68000),
        ]
    )

    assert len(store) == 2
    assert await store.get_all_time("Stale") is None
    assert await store.get_all_time("ALICE") == 70000


@pytest.mark.asyncio
async def test_persist_blocks_mutations_until_writer_finishes() -> None:
    store = RecordStore()
    await store.try_update_all_time("Alice", 65000)
    release = asyncio.Event()
    seen: list[list[str]] = []

    async def writer(entries: list[BestTimeEntry]) -> None:
        seen.append([e.name for e in entries])
        await release.wait()

    persist_task = asyncio.create_task(store.persist(writer))
    await asyncio.sleep(0)
    update_task = asyncio.create_task(store.try_update_all_time("Bob", 60000))
    await asyncio.sleep(0)

    assert not update_task.done()
    release.set()
    await persist_task
    assert await update_task is True
    assert seen == [["Alice"]]


@pytest.mark.asyncio
async def test_concurrent_updates_keep_minimum_per_driver() -> None:
    store = RecordStore()
    laps = [("Alice", 65000 + (i * 37) % 5000) for i in range(50)] + [("Bob", 70000 - i) for i in range(50)]

    await asyncio.gather(*(store.try_update_all_time(name, lap) for name, lap in laps))

    assert await store.get_all_time("Alice") == min(lap for name, lap in laps if name == "Alice")
    assert await store.get_all_time("Bob") == 69951
