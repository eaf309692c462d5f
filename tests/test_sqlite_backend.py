"""Tests for the aiosqlite-backed warnings storage."""

import json
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio

from modwarden.datatypes.warning_datatypes import InfractionEntry, Severity, UserWarningRecord, parse_timestamp
from modwarden.errors import PersistenceFailure
from modwarden.storage.backups import BackupRotator
from modwarden.storage.record_store import RecordStore
from modwarden.storage.sqlite_backend import SqliteBackend

WHEN = parse_timestamp("2025-01-01T12:00:00Z")


def _record(user_id: str) -> UserWarningRecord:
    return UserWarningRecord(
        user_id=user_id,
        active_count=1,
        entries=[InfractionEntry("spam", Severity.HIGH, WHEN)],
        last_warning_at=WHEN,
    )


def _backend(tmp_path: Path, max_backups: int = 3) -> SqliteBackend:
    rotator = BackupRotator(tmp_path / "backups", suffix=".db", max_backups=max_backups)
    return SqliteBackend(tmp_path / "warnings.db", rotator)


@pytest_asyncio.fixture()
async def backend(tmp_path: Path):
    db = _backend(tmp_path)
    await db.open()
    yield db
    await db.close()


@pytest.mark.asyncio
async def test_fresh_database_reads_as_missing(backend: SqliteBackend) -> None:
    assert await backend.read() is None
    assert await backend.backup() is None


@pytest.mark.asyncio
async def test_write_then_read(backend: SqliteBackend) -> None:
    document = {"111": _record("111").to_dict(), "222": _record("222").to_dict()}

    await backend.write(document)

    assert await backend.read() == document


@pytest.mark.asyncio
async def test_write_replaces_previous_rows(backend: SqliteBackend) -> None:
    await backend.write({"111": _record("111").to_dict()})
    await backend.write({"222": _record("222").to_dict()})

    assert set(await backend.read()) == {"222"}


@pytest.mark.asyncio
async def test_operations_fail_when_not_open(tmp_path: Path) -> None:
    db = _backend(tmp_path)

    with pytest.raises(PersistenceFailure, match="not open"):
        await db.write({})


@pytest.mark.asyncio
async def test_store_round_trip_across_connections(tmp_path: Path) -> None:
    first = RecordStore(_backend(tmp_path), create_backups=False)
    assert await first.load() == {}
    await first.commit(_record("111"))
    await first.close()

    second = RecordStore(_backend(tmp_path), create_backups=False)
    records = await second.load()
    await second.close()

    assert records == {"111": _record("111")}


@pytest.mark.asyncio
async def test_backups_use_vacuum_into_and_rotate(tmp_path: Path) -> None:
    db = _backend(tmp_path, max_backups=2)
    store = RecordStore(db, create_backups=True)
    await store.load()

    for index in range(4):
        await store.commit(_record(str(500 + index)))

    backups = db.rotator.list_backups()
    await store.close()

    assert len(backups) == 2
    async with aiosqlite.connect(backups[-1]) as snapshot:
        async with snapshot.execute("SELECT user_id FROM user_warnings ORDER BY user_id") as cursor:
            rows = [row[0] for row in await cursor.fetchall()]
    assert rows == ["500", "501", "502"]


@pytest.mark.asyncio
async def test_backup_into_unusable_directory_is_reported(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    db = SqliteBackend(tmp_path / "warnings.db", BackupRotator(blocker / "backups", suffix=".db"))
    store = RecordStore(db, create_backups=True)
    await store.load()
    await store.commit(_record("500"))

    with pytest.raises(PersistenceFailure):
        await db.backup()

    result = await store.commit(_record("501"))
    records = await db.read()
    await store.close()

    assert result.ok
    assert set(records) == {"500", "501"}


@pytest.mark.asyncio
async def test_unreadable_rows_are_quarantined(tmp_path: Path) -> None:
    db = _backend(tmp_path)
    await db.open()
    await db.write({"111": _record("111").to_dict()})
    async with db.transaction() as conn:
        await conn.execute("INSERT INTO user_warnings (user_id, record) VALUES (?, ?)", ("222", "{broken"))
    await db.close()

    store = RecordStore(_backend(tmp_path), create_backups=False)
    records = await store.load()

    assert set(records) == {"111"}
    async with store.backend.connection.execute("SELECT user_id, raw FROM quarantined_records") as cursor:
        quarantined = await cursor.fetchall()
    remaining = await store.backend.read()
    await store.close()

    assert [(user_id, json.loads(raw)) for user_id, raw in quarantined] == [("222", "{broken")]
    assert set(remaining) == {"111"}
