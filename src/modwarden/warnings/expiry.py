"""Retention filtering for infraction entries."""

from __future__ import annotations

import datetime
from typing import Iterable, List

from modwarden.datatypes.warning_datatypes import InfractionEntry
from modwarden.util.logger import get_logger

logger = get_logger("expiry_policy")


def filter_active(
    entries: Iterable[InfractionEntry],
    retention_days: int,
    now: datetime.datetime,
) -> List[InfractionEntry]:
    """Return the entries still inside the retention window, oldest first.

    A ``retention_days`` of zero or less disables expiry and every entry is
    kept. Otherwise an entry survives when ``occurred_at >= now - retention``.
    Entries whose timestamp could not be parsed count as expired.
    """
    entries = list(entries)
    if retention_days <= 0:
        return entries

    cutoff = now - datetime.timedelta(days=retention_days)
    active: List[InfractionEntry] = []
    for entry in entries:
        if entry.occurred_at is None:
            logger.warning(
                "[EXPIRY] Dropping entry with unparseable timestamp %r (reason=%r)",
                entry.raw_timestamp,
                entry.reason,
            )
            continue
        if entry.occurred_at >= cutoff:
            active.append(entry)
    return active
