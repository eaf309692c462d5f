"""
Warning accrual and escalation engine.

The engine turns classifier verdicts into per-user warning state:

1. fetch (or create) the user's record,
2. drop entries that fell out of the retention window,
3. append the new infraction,
4. decide whether a sanction boundary was crossed,
5. commit the record through the :class:`RecordStore`.

It never talks to Discord. The caller receives a :class:`ViolationOutcome`
and performs the deletion, notification and sanction itself.

Mutations for the same user are serialised with a per-user lock; the store
serialises the durable write globally.
"""

from __future__ import annotations

import asyncio
import collections
import datetime
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, Optional

from modwarden.datatypes.discord_datatypes import UserID
from modwarden.datatypes.warning_datatypes import (
    CommitResult,
    InfractionEntry,
    SanctionRecord,
    Severity,
    UserWarningRecord,
    ViolationOutcome,
    utcnow,
)
from modwarden.storage.record_store import RecordStore
from modwarden.util.logger import get_logger
from modwarden.warnings.escalation import EscalationThresholds, decide_on_crossing
from modwarden.warnings.expiry import filter_active

logger = get_logger("warning_engine")

Clock = Callable[[], datetime.datetime]


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Warning policy knobs consumed by the engine."""

    expires_after_days: int = 60
    thresholds: EscalationThresholds = field(default_factory=EscalationThresholds)


class WarningEngine:
    """Single writer of :class:`UserWarningRecord` state.

    Args:
        store: Loaded record store the engine commits through.
        settings: Retention window and escalation thresholds.
        clock: Returns the current aware UTC time; injectable for tests.
    """

    def __init__(self, store: RecordStore, settings: EngineSettings, clock: Optional[Clock] = None) -> None:
        self._store = store
        self._settings = settings
        self._clock: Clock = clock or utcnow
        self._user_locks: Dict[str, asyncio.Lock] = {}
        self._lock_holders: collections.Counter[str] = collections.Counter()

    @asynccontextmanager
    async def _user_lock(self, key: str) -> AsyncIterator[None]:
        """Serialise work on one user; the lock is discarded once nobody holds or awaits it."""
        lock = self._user_locks.setdefault(key, asyncio.Lock())
        self._lock_holders[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[key] -= 1
            if not self._lock_holders[key]:
                del self._lock_holders[key]
                del self._user_locks[key]

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def store(self) -> RecordStore:
        return self._store

    async def record_violation(
        self,
        user_id: UserID | str | int,
        reason: str,
        severity: Severity | str,
    ) -> ViolationOutcome:
        """Record one violation for ``user_id`` and return the resulting state and sanction."""
        key = str(UserID(user_id))

        async with self._user_lock(key):
            now = self._clock()
            record = self._store.get(key) or UserWarningRecord(user_id=key)

            record.entries = filter_active(record.entries, self._settings.expires_after_days, now)
            previous_count = len(record.entries)

            record.entries.append(InfractionEntry(reason=reason, severity=Severity.parse(severity), occurred_at=now))
            record.active_count = len(record.entries)
            record.last_warning_at = now

            sanction = decide_on_crossing(previous_count, record.active_count, self._settings.thresholds)
            if sanction is not None:
                record.sanctions_applied.append(SanctionRecord(kind=sanction, applied_at=now))

            commit = await self._store.commit(record)

        logger.info("[WARNING ENGINE] Warning added for user %s. Total warnings: %d", key, record.active_count)
        if sanction is not None:
            logger.info("[WARNING ENGINE] Recommended action for user %s: %s", key, sanction.value)
        if not commit.ok:
            logger.error("[WARNING ENGINE] Warning for user %s kept in memory only: %s", key, commit.error)

        return ViolationOutcome(record=record, sanction=sanction, commit=commit)

    def get_record(self, user_id: UserID | str | int) -> UserWarningRecord | None:
        """Return a copy of the stored record, or None.

        Expiry is not applied here; the count reflects the last write for the
        user and may include entries that would be dropped on the next one.
        """
        return self._store.get(user_id)

    async def reset_record(self, user_id: UserID | str | int) -> CommitResult:
        """Delete a user's record, including the sanction log. Idempotent."""
        key = str(UserID(user_id))
        async with self._user_lock(key):
            result = await self._store.delete(key)
        logger.info("[WARNING ENGINE] Warnings reset for user %s", key)
        return result

    async def force_save(self) -> CommitResult:
        """Persist the whole store now; used by the administrative save command."""
        return await self._store.force_flush()
