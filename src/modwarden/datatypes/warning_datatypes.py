"""
Data structures for per-user warning records.

A :class:`UserWarningRecord` holds the active infraction entries of one user
plus the audit log of sanctions the escalation engine has applied. The
records serialise to the camelCase JSON layout used by the warnings
document::

    {
      "<user id>": {
        "activeCount": 1,
        "entries": [{"reason": "...", "severity": "high", "occurredAt": "2025-01-01T12:00:00Z"}],
        "lastWarningAt": "2025-01-01T12:00:00Z",
        "sanctionsApplied": [{"kind": "timeout_1h", "appliedAt": "2025-01-01T12:00:00Z"}]
      }
    }
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from modwarden.errors import RecordValidationError


class Severity(Enum):
    """Severity reported by the classifier for a violation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    NONE = "none"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Normalise a classifier or stored value; unknown values become MEDIUM."""
        if isinstance(value, Severity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MEDIUM


class SanctionKind(Enum):
    """Automated enforcement tiers, lowest first."""

    TIMEOUT_1H = "timeout_1h"
    TIMEOUT_24H = "timeout_24h"
    KICK = "kick"
    BAN = "ban"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return SANCTION_LABELS[self]

    @property
    def timeout_duration(self) -> datetime.timedelta | None:
        """Timeout length for timeout tiers, None for kick and ban."""
        return SANCTION_TIMEOUTS.get(self)


SANCTION_LABELS: Dict[SanctionKind, str] = {
    SanctionKind.TIMEOUT_1H: "Timeout (1 hour)",
    SanctionKind.TIMEOUT_24H: "Timeout (24 hours)",
    SanctionKind.KICK: "Kick",
    SanctionKind.BAN: "Ban",
}

SANCTION_TIMEOUTS: Dict[SanctionKind, datetime.timedelta] = {
    SanctionKind.TIMEOUT_1H: datetime.timedelta(hours=1),
    SanctionKind.TIMEOUT_24H: datetime.timedelta(hours=24),
}


# -------------------- Timestamps --------------------

def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def format_timestamp(moment: datetime.datetime) -> str:
    """Render an aware datetime as ISO 8601 UTC with a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime.datetime | None:
    """Parse a stored timestamp; returns None when the value is missing or malformed."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(datetime.timezone.utc)


# -------------------- Records --------------------

@dataclass(frozen=True, slots=True)
class InfractionEntry:
    """One recorded violation.

    ``occurred_at`` is None only for entries loaded with a timestamp that
    could not be parsed; ``raw_timestamp`` keeps the original text so it is
    written back unchanged.
    """

    reason: str
    severity: Severity
    occurred_at: Optional[datetime.datetime]
    raw_timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        occurred = format_timestamp(self.occurred_at) if self.occurred_at else self.raw_timestamp
        return {"reason": self.reason, "severity": self.severity.value, "occurredAt": occurred}

    @classmethod
    def from_dict(cls, user_id: str, data: Any) -> "InfractionEntry":
        if not isinstance(data, dict):
            raise RecordValidationError(user_id, f"entry is {type(data).__name__}, expected object")
        raw = data.get("occurredAt", data.get("timestamp"))
        return cls(
            reason=str(data.get("reason") or ""),
            severity=Severity.parse(data.get("severity")),
            occurred_at=parse_timestamp(raw),
            raw_timestamp=raw if isinstance(raw, str) else None,
        )


@dataclass(frozen=True, slots=True)
class SanctionRecord:
    """One sanction applied as a consequence of escalation."""

    kind: SanctionKind
    applied_at: Optional[datetime.datetime]
    raw_timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        applied = format_timestamp(self.applied_at) if self.applied_at else self.raw_timestamp
        return {"kind": self.kind.value, "appliedAt": applied}

    @classmethod
    def from_dict(cls, user_id: str, data: Any) -> "SanctionRecord":
        if not isinstance(data, dict):
            raise RecordValidationError(user_id, f"sanction is {type(data).__name__}, expected object")
        kind = data.get("kind", data.get("type"))
        try:
            sanction_kind = SanctionKind(kind)
        except ValueError:
            raise RecordValidationError(user_id, f"unknown sanction kind {kind!r}") from None
        raw = data.get("appliedAt", data.get("timestamp"))
        return cls(
            kind=sanction_kind,
            applied_at=parse_timestamp(raw),
            raw_timestamp=raw if isinstance(raw, str) else None,
        )


@dataclass(slots=True)
class UserWarningRecord:
    """Infraction history for one user.

    Attributes:
        user_id: Discord snowflake as a string.
        active_count: Number of entries that survived the last expiry pass.
        entries: Active infractions in chronological order.
        last_warning_at: Time of the newest entry, or None.
        sanctions_applied: Chronological sanction audit log, never expired.
    """

    user_id: str
    active_count: int = 0
    entries: List[InfractionEntry] = field(default_factory=list)
    last_warning_at: Optional[datetime.datetime] = None
    sanctions_applied: List[SanctionRecord] = field(default_factory=list)

    def copy(self) -> "UserWarningRecord":
        """Return an independent copy; entries and sanctions are immutable so lists are enough."""
        return replace(self, entries=list(self.entries), sanctions_applied=list(self.sanctions_applied))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activeCount": self.active_count,
            "entries": [entry.to_dict() for entry in self.entries],
            "lastWarningAt": format_timestamp(self.last_warning_at) if self.last_warning_at else None,
            "sanctionsApplied": [sanction.to_dict() for sanction in self.sanctions_applied],
        }

    @classmethod
    def from_dict(cls, user_id: str, data: Any) -> "UserWarningRecord":
        """Build a record from its stored form.

        ``active_count`` is always recomputed from ``entries``; callers that
        care about a drifted stored count compare against ``data["activeCount"]``.

        Raises:
            RecordValidationError: If the stored value does not have the record shape.
        """
        if not isinstance(data, dict):
            raise RecordValidationError(user_id, f"record is {type(data).__name__}, expected object")

        raw_entries = data.get("entries", data.get("warnings", []))
        raw_sanctions = data.get("sanctionsApplied", data.get("actionsTaken", []))
        if not isinstance(raw_entries, list):
            raise RecordValidationError(user_id, "entries is not an array")
        if not isinstance(raw_sanctions, list):
            raise RecordValidationError(user_id, "sanctionsApplied is not an array")

        entries = [InfractionEntry.from_dict(user_id, item) for item in raw_entries]
        sanctions = [SanctionRecord.from_dict(user_id, item) for item in raw_sanctions]
        return cls(
            user_id=user_id,
            active_count=len(entries),
            entries=entries,
            last_warning_at=parse_timestamp(data.get("lastWarningAt", data.get("lastWarning"))),
            sanctions_applied=sanctions,
        )


# -------------------- Results --------------------

@dataclass(frozen=True, slots=True)
class CommitResult:
    """Outcome of a durable write. ``ok`` is False when the write failed."""

    ok: bool
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(slots=True)
class ViolationOutcome:
    """What the warning engine decided for one violation."""

    record: UserWarningRecord
    sanction: Optional[SanctionKind]
    commit: CommitResult

    @property
    def persisted(self) -> bool:
        return self.commit.ok


@dataclass(frozen=True, slots=True)
class ModerationSummary:
    """Aggregate statistics over every stored warning record."""

    active_users: int
    total_active_warnings: int
    sanction_tally: Dict[SanctionKind, int]

    def count(self, kind: SanctionKind) -> int:
        return self.sanction_tally.get(kind, 0)
