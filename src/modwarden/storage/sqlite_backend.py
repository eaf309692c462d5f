"""
SQLite backend for the warning record store.

One long-lived aiosqlite connection, opened at startup. The warnings
document is kept row-per-user in ``user_warnings`` and every write replaces
the full table inside a single transaction, so a failed write rolls back to
the previous document. Backups are taken with ``VACUUM INTO``.

Usage
-----
    backend = SqliteBackend(Path("data/warnings.db"), rotator)
    await backend.open()
    document = await backend.read()        # None on a brand-new database
    await backend.write({"123": {...}})
    await backend.close()
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict

import aiosqlite

from modwarden.errors import PersistenceFailure
from modwarden.storage.backups import BackupRotator
from modwarden.util.logger import get_logger

logger = get_logger("sqlite_backend")

_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
]

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS user_warnings (
        user_id TEXT PRIMARY KEY,
        record TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quarantined_records (
        user_id TEXT PRIMARY KEY,
        raw TEXT NOT NULL,
        quarantined_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "INSERT OR IGNORE INTO schema_version (version) VALUES (1)",
]


class SqliteBackend:
    """Persist the warnings document in an SQLite database at ``path``."""

    def __init__(self, path: Path, rotator: BackupRotator) -> None:
        self.path = path
        self.rotator = rotator
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)
        self._created = False

    def describe(self) -> str:
        return f"sqlite:{self.path}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Open the connection, apply pragmas and create the schema."""
        if self._conn is not None:
            logger.warning("[SQLITE BACKEND] open() called but connection already exists; ignoring")
            return

        self._created = not self.path.exists()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self.path)
            for pragma in _PRAGMAS:
                await self._conn.execute(pragma)
            for statement in _SCHEMA:
                await self._conn.execute(statement)
            await self._conn.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceFailure(f"could not open {self.path}: {exc}") from exc

        logger.info("[SQLITE BACKEND] Opened connection to %s", self.path)

    async def close(self) -> None:
        """Checkpoint the WAL and close the connection."""
        if self._conn is None:
            return
        try:
            await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await self._conn.commit()
        except aiosqlite.Error:
            logger.exception("[SQLITE BACKEND] WAL checkpoint failed during close")
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[SQLITE BACKEND] Connection closed")

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise PersistenceFailure(f"SQLite backend for {self.path} is not open")
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Serialised write transaction; commits on clean exit, rolls back on error."""
        conn = self.connection
        async with self._write_sem:
            try:
                yield conn
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise

    # ------------------------------------------------------------------
    # Document I/O
    # ------------------------------------------------------------------

    async def read(self) -> Dict[str, Any] | None:
        """Return the stored document, or None if the database was created by this process."""
        if self._created:
            return None
        try:
            async with self.connection.execute("SELECT user_id, record FROM user_warnings") as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise PersistenceFailure(f"could not read {self.path}: {exc}") from exc

        document: Dict[str, Any] = {}
        for user_id, raw in rows:
            try:
                document[user_id] = json.loads(raw)
            except json.JSONDecodeError:
                # Passed through as text so the store quarantines it.
                document[user_id] = raw
        return document

    async def write(self, document: Dict[str, Any]) -> None:
        """Replace every stored row with ``document`` in one transaction."""
        try:
            rows = [(user_id, json.dumps(record, ensure_ascii=False)) for user_id, record in document.items()]
        except (TypeError, ValueError) as exc:
            raise PersistenceFailure(f"could not serialise warnings document: {exc}") from exc

        try:
            async with self.transaction() as conn:
                await conn.execute("DELETE FROM user_warnings")
                await conn.executemany("INSERT INTO user_warnings (user_id, record) VALUES (?, ?)", rows)
        except aiosqlite.Error as exc:
            raise PersistenceFailure(f"could not write {self.path}: {exc}") from exc
        self._created = False

    # ------------------------------------------------------------------
    # Backups and quarantine
    # ------------------------------------------------------------------

    async def backup(self) -> Path | None:
        """Snapshot the database with ``VACUUM INTO`` and prune old snapshots."""
        if self._created:
            return None
        try:
            target = await asyncio.to_thread(self.rotator.next_path)
        except OSError as exc:
            raise PersistenceFailure(f"could not prepare backup directory {self.rotator.backup_dir}: {exc}") from exc
        try:
            async with self._write_sem:
                await self.connection.execute("VACUUM INTO ?", (str(target),))
        except aiosqlite.Error as exc:
            raise PersistenceFailure(f"could not back up {self.path}: {exc}") from exc
        logger.debug("[SQLITE BACKEND] Created backup %s", target.name)
        await asyncio.to_thread(self.rotator.prune)
        return target

    async def write_quarantine(self, records: Dict[str, Any]) -> None:
        try:
            rows = [(user_id, json.dumps(raw, ensure_ascii=False, default=str)) for user_id, raw in records.items()]
            async with self.transaction() as conn:
                await conn.executemany(
                    "INSERT OR REPLACE INTO quarantined_records (user_id, raw) VALUES (?, ?)", rows
                )
        except (TypeError, ValueError, aiosqlite.Error) as exc:
            raise PersistenceFailure(f"could not quarantine records in {self.path}: {exc}") from exc
