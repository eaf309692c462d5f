"""Exception types shared across Modwarden.

Only configuration problems are allowed to stop the process. Classifier and
persistence failures are caught at their component boundary and reported as
plain values so a single bad message or a full disk never takes the bot down.
"""

from __future__ import annotations


class ModwardenError(Exception):
    """Base class for all Modwarden errors."""


class ConfigurationError(ModwardenError):
    """Configuration is malformed; raised at startup so the bot refuses to run."""


class ClassificationFailure(ModwardenError):
    """The AI classifier request failed or returned output that could not be parsed."""


class PersistenceFailure(ModwardenError):
    """Writing the warning document to durable storage failed."""


class RecordValidationError(ModwardenError):
    """A stored warning record does not have the expected shape."""

    def __init__(self, user_id: str, detail: str) -> None:
        super().__init__(f"record for user {user_id}: {detail}")
        self.user_id = user_id
        self.detail = detail
