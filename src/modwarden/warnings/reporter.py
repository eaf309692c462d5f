"""Aggregate statistics over the warning record store."""

from __future__ import annotations

from typing import Dict, Mapping

from modwarden.datatypes.warning_datatypes import ModerationSummary, SanctionKind, UserWarningRecord


def summarize(records: Mapping[str, UserWarningRecord]) -> ModerationSummary:
    """Count users, stored active warnings and lifetime sanctions by kind.

    Expiry is not re-run: ``active_count`` is taken as of each user's last
    write, and sanctions are historical so they are never filtered.
    """
    tally: Dict[SanctionKind, int] = {kind: 0 for kind in SanctionKind}
    total_warnings = 0

    for record in records.values():
        total_warnings += record.active_count
        for sanction in record.sanctions_applied:
            tally[sanction.kind] += 1

    return ModerationSummary(
        active_users=len(records),
        total_active_warnings=total_warnings,
        sanction_tally=tally,
    )
