"""Threshold-based escalation from active warning count to sanction tier."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from modwarden.datatypes.warning_datatypes import SanctionKind
from modwarden.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class EscalationThresholds:
    """Active warning counts at which each sanction tier starts to apply."""

    timeout_1h: int = 3
    timeout_24h: int = 5
    kick: int = 7
    ban: int = 10

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "EscalationThresholds":
        """Build thresholds from the ``action_thresholds`` config block.

        Missing keys fall back to the defaults; values are passed through
        unconverted so :meth:`validate` can reject non-integers.
        """
        data = data or {}
        defaults = cls()
        return cls(
            timeout_1h=data.get("timeout_1h", defaults.timeout_1h),
            timeout_24h=data.get("timeout_24h", defaults.timeout_24h),
            kick=data.get("kick", defaults.kick),
            ban=data.get("ban", defaults.ban),
        )

    def validate(self) -> None:
        """Raise ConfigurationError unless every boundary is a positive int and the tiers ascend."""
        ordered = [
            ("timeout_1h", self.timeout_1h),
            ("timeout_24h", self.timeout_24h),
            ("kick", self.kick),
            ("ban", self.ban),
        ]
        for name, value in ordered:
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"warnings.action_thresholds.{name} must be a positive integer, got {value!r}")

        for (lower_name, lower), (upper_name, upper) in zip(ordered, ordered[1:]):
            if lower > upper:
                raise ConfigurationError(
                    f"warnings.action_thresholds must ascend: {lower_name}={lower} is above {upper_name}={upper}"
                )


def decide(active_count: int, thresholds: EscalationThresholds) -> Optional[SanctionKind]:
    """Map an active warning count to the highest tier it reaches, or None."""
    if active_count >= thresholds.ban:
        return SanctionKind.BAN
    if active_count >= thresholds.kick:
        return SanctionKind.KICK
    if active_count >= thresholds.timeout_24h:
        return SanctionKind.TIMEOUT_24H
    if active_count >= thresholds.timeout_1h:
        return SanctionKind.TIMEOUT_1H
    return None


def decide_on_crossing(
    previous_count: int,
    active_count: int,
    thresholds: EscalationThresholds,
) -> Optional[SanctionKind]:
    """Return the tier for ``active_count`` only if the move from ``previous_count`` crossed a boundary.

    A user sitting above a boundary is not sanctioned again for every new
    warning; once expiry drops them back below it, reaching it again counts
    as a fresh crossing.
    """
    boundaries = (thresholds.timeout_1h, thresholds.timeout_24h, thresholds.kick, thresholds.ban)
    if any(previous_count < boundary <= active_count for boundary in boundaries):
        return decide(active_count, thresholds)
    return None
