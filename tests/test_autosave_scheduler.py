import asyncio
from unittest.mock import AsyncMock

import pytest

from modwarden.datatypes.warning_datatypes import UserWarningRecord
from modwarden.errors import PersistenceFailure
from modwarden.scheduler.autosave_scheduler import AutoSaveScheduler
from modwarden.storage.record_store import RecordStore


async def _make_dirty(store: RecordStore) -> None:
    real_write = store.backend.write
    store.backend.write = AsyncMock(side_effect=PersistenceFailure("disk full"))
    await store.commit(UserWarningRecord(user_id="1"))
    store.backend.write = real_write


@pytest.mark.asyncio
async def test_tick_skips_clean_store(store: RecordStore) -> None:
    scheduler = AutoSaveScheduler(store, 5)
    store.backend.write = AsyncMock()

    await scheduler.tick()

    store.backend.write.assert_not_awaited()


@pytest.mark.asyncio
async def test_tick_flushes_dirty_store(store: RecordStore) -> None:
    await _make_dirty(store)
    scheduler = AutoSaveScheduler(store, 5)

    await scheduler.tick()

    assert not store.is_dirty


@pytest.mark.asyncio
async def test_tick_keeps_dirty_flag_when_retry_fails(store: RecordStore) -> None:
    await _make_dirty(store)
    store.backend.write = AsyncMock(side_effect=PersistenceFailure("still full"))
    scheduler = AutoSaveScheduler(store, 5)

    await scheduler.tick()

    assert store.is_dirty


@pytest.mark.asyncio
async def test_zero_interval_disables_timer(store: RecordStore) -> None:
    scheduler = AutoSaveScheduler(store, 0)

    scheduler.start()

    assert not scheduler.enabled
    assert not scheduler.running


@pytest.mark.asyncio
async def test_loop_runs_and_shuts_down(store: RecordStore) -> None:
    await _make_dirty(store)
    # 0.001 minutes is 60ms between ticks.
    scheduler = AutoSaveScheduler(store, 0.001)

    scheduler.start()
    assert scheduler.running
    for _ in range(50):
        if not store.is_dirty:
            break
        await asyncio.sleep(0.02)
    await scheduler.shutdown()

    assert not store.is_dirty
    assert not scheduler.running
