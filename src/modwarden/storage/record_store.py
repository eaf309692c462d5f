"""
In-memory warning record store with a write-through durable mirror.

The in-memory map is the authoritative working copy. Every mutation is
applied to the map and then the whole map is written to the backend as one
document. All writes (commits, deletions, the autosave timer and the
shutdown flush) run under a single ``asyncio.Lock`` and the document is
snapshotted inside that lock, so concurrent writers never interleave.

A failed durable write does not undo the in-memory change. The store is
marked dirty, the failure is returned as ``CommitResult(ok=False)`` and the
next scheduled flush retries.

Reads hand out copies taken synchronously, so a reader always sees a record
either fully before or fully after a mutation.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, Protocol

from modwarden.datatypes.discord_datatypes import UserID
from modwarden.datatypes.warning_datatypes import CommitResult, UserWarningRecord
from modwarden.errors import PersistenceFailure, RecordValidationError
from modwarden.util.logger import get_logger

logger = get_logger("record_store")


class StorageBackend(Protocol):
    """Durable medium for the warnings document."""

    def describe(self) -> str: ...

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def read(self) -> Dict[str, Any] | None: ...

    async def write(self, document: Dict[str, Any]) -> None: ...

    async def backup(self) -> Path | None: ...

    async def write_quarantine(self, records: Dict[str, Any]) -> None: ...


class RecordStore:
    """Keyed storage of :class:`UserWarningRecord` objects by user ID.

    Lifecycle:
        1. ``await load()`` once at startup.
        2. ``commit`` / ``delete`` from the warning engine; ``get`` / ``read_all`` for reads.
        3. ``flush_if_dirty`` from the autosave timer, ``force_flush`` from admin commands.
        4. ``await close()`` at shutdown.
    """

    def __init__(self, backend: StorageBackend, *, create_backups: bool = True) -> None:
        self._backend = backend
        self._create_backups = create_backups
        self._records: Dict[str, UserWarningRecord] = {}
        self._write_lock = asyncio.Lock()
        self._dirty = False

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def is_dirty(self) -> bool:
        """True while the in-memory map holds changes the backend has not accepted."""
        return self._dirty

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, user_id: object) -> bool:
        return str(user_id) in self._records

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def load(self) -> Dict[str, UserWarningRecord]:
        """Populate the map from the backend and return a copy of it.

        A missing document starts the store empty and persists the empty map
        immediately. Records that fail validation are moved to the backend's
        quarantine area instead of being loaded.

        Raises:
            PersistenceFailure: If the medium cannot be read, or invalid
                records cannot be quarantined.
        """
        await self._backend.open()
        document = await self._backend.read()

        if document is None:
            logger.info("[RECORD STORE] No existing warnings data at %s; starting fresh", self._backend.describe())
            async with self._write_lock:
                self._records = {}
                result = await self._persist_locked(backup=False)
            if not result.ok:
                logger.error("[RECORD STORE] Could not create the initial warnings document: %s", result.error)
            return {}

        records: Dict[str, UserWarningRecord] = {}
        quarantined: Dict[str, Any] = {}
        needs_rewrite = False

        for raw_user_id, raw_record in document.items():
            try:
                user_id = str(UserID(raw_user_id))
                record = UserWarningRecord.from_dict(user_id, raw_record)
            except (ValueError, RecordValidationError) as exc:
                logger.error("[RECORD STORE] Quarantining record %r: %s", raw_user_id, exc)
                quarantined[str(raw_user_id)] = raw_record
                continue

            stored_count = raw_record.get("activeCount")
            if stored_count != record.active_count:
                logger.warning(
                    "[RECORD STORE] User %s stored activeCount=%r but has %d entries; reconciled",
                    user_id, stored_count, record.active_count,
                )
                needs_rewrite = True
            records[user_id] = record

        if quarantined:
            await self._backend.write_quarantine(quarantined)
            needs_rewrite = True

        async with self._write_lock:
            self._records = records
            if needs_rewrite:
                result = await self._persist_locked()
                if not result.ok:
                    logger.error("[RECORD STORE] Could not rewrite reconciled warnings document: %s", result.error)

        logger.info("[RECORD STORE] Loaded warnings data for %d users (%d quarantined)", len(records), len(quarantined))
        return self.read_all()

    async def close(self) -> None:
        await self._backend.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, user_id: UserID | str | int) -> UserWarningRecord | None:
        record = self._records.get(str(UserID(user_id)))
        return record.copy() if record else None

    def read_all(self) -> Dict[str, UserWarningRecord]:
        """Snapshot of every record, safe to iterate while writers continue."""
        return {user_id: record.copy() for user_id, record in self._records.items()}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def commit(self, record: UserWarningRecord) -> CommitResult:
        """Store ``record`` in memory, then persist the full map."""
        async with self._write_lock:
            self._records[record.user_id] = record.copy()
            return await self._persist_locked()

    async def delete(self, user_id: UserID | str | int) -> CommitResult:
        """Remove a user's record and persist; removing an absent record is a no-op."""
        key = str(UserID(user_id))
        async with self._write_lock:
            if key not in self._records:
                return CommitResult(ok=True)
            del self._records[key]
            return await self._persist_locked()

    async def force_flush(self) -> CommitResult:
        """Persist the current map regardless of the dirty flag."""
        async with self._write_lock:
            return await self._persist_locked()

    async def flush_if_dirty(self) -> CommitResult:
        """Persist only when a previous write failed or a change is pending."""
        async with self._write_lock:
            if not self._dirty:
                return CommitResult(ok=True)
            return await self._persist_locked()

    async def _persist_locked(self, *, backup: bool = True) -> CommitResult:
        """Write the map through the backend. Caller must hold ``_write_lock``."""
        document = {user_id: record.to_dict() for user_id, record in self._records.items()}
        self._dirty = True

        if backup and self._create_backups:
            try:
                await self._backend.backup()
            except PersistenceFailure as exc:
                logger.error("[RECORD STORE] Backup failed, writing anyway: %s", exc)

        try:
            await self._backend.write(document)
        except PersistenceFailure as exc:
            logger.error("[RECORD STORE] Failed to save warnings data for %d users: %s", len(document), exc)
            return CommitResult(ok=False, error=str(exc))

        self._dirty = False
        logger.debug("[RECORD STORE] Saved warnings data for %d users", len(document))
        return CommitResult(ok=True)
