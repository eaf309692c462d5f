"""
Classifier verdict types.

`ClassificationResult` is the normalised form of the JSON object returned by
the moderation model. The pipeline only acts on ``flagged`` results; the
remaining fields feed the warning entry and the log embeds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from modwarden.datatypes.warning_datatypes import Severity

DEFAULT_REASON = "Inappropriate content"
DEFAULT_CONFIDENCE = 0.5


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Verdict for a single message.

    Attributes:
        flagged (bool): Whether the message violates the rules.
        reason (str): Short description of the violation.
        severity (Severity): Reported severity; ``NONE`` for clean messages.
        categories (List[str]): Violated categories named by the model.
        confidence (float): Model confidence between 0 and 1.
    """

    flagged: bool
    reason: str = ""
    severity: Severity = Severity.NONE
    categories: List[str] = field(default_factory=list)
    confidence: float = 0.0

    @classmethod
    def not_flagged(cls) -> "ClassificationResult":
        return cls(flagged=False)
