"""Typed accessors for the non-AI sections of ``app_config.yml``.

Each helper wraps the raw mapping for one top-level YAML block and exposes
properties with the defaults the bot ships with. Conversion errors surface
when a property is read; :meth:`AppConfig.validate` reads every property
once at startup so a bad value stops the bot before it connects.
"""

from pathlib import Path
from typing import Any, Dict, List

from modwarden.warnings.escalation import EscalationThresholds

DEFAULT_MOD_LOG_CHANNELS = ["mod-logs", "modlogs", "mod-log", "modlog", "bot-logs", "admin-logs"]


class _Section:
    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


def _int_list(value: Any) -> List[int]:
    if not isinstance(value, list):
        return []
    return [int(item) for item in value]


class ModerationSettings(_Section):
    """Which messages reach the classifier and how strictly it judges them."""

    @property
    def strict_mode(self) -> bool:
        return bool(self.data.get("strict_mode", False))

    @property
    def ignored_channels(self) -> List[int]:
        return _int_list(self.data.get("ignored_channels", []))

    @property
    def ignored_roles(self) -> List[int]:
        return _int_list(self.data.get("ignored_roles", []))

    @property
    def min_message_length(self) -> int:
        return int(self.data.get("min_message_length", 2))

    @property
    def sensitivity(self) -> float:
        return float(self.data.get("sensitivity", 0.7))


class WarningSettings(_Section):
    """Retention window and escalation thresholds."""

    @property
    def expires_after_days(self) -> int:
        return int(self.data.get("expires_after_days", 60))

    @property
    def thresholds(self) -> EscalationThresholds:
        raw = self.data.get("action_thresholds", {})
        return EscalationThresholds.from_mapping(raw if isinstance(raw, dict) else {})


class StorageSettings(_Section):
    """Where and how the warnings document is persisted."""

    @property
    def backend(self) -> str:
        return str(self.data.get("backend", "json")).strip().lower()

    @property
    def data_path(self) -> Path:
        default = "data/warnings.db" if self.backend == "sqlite" else "data/warnings.json"
        return Path(str(self.data.get("data_path") or default))

    @property
    def backup_dir(self) -> Path:
        return Path(str(self.data.get("backup_dir") or "data/backups"))

    @property
    def auto_save_interval(self) -> float:
        """Autosave period in minutes; 0 disables the timer."""
        return float(self.data.get("auto_save_interval", 5))

    @property
    def create_backups(self) -> bool:
        return bool(self.data.get("create_backups", True))

    @property
    def max_backups(self) -> int:
        return int(self.data.get("max_backups", 5))

    @property
    def save_on_shutdown(self) -> bool:
        return bool(self.data.get("save_on_shutdown", True))


class LoggingSettings(_Section):
    """Mod-log channel discovery and what goes into moderation log embeds."""

    @property
    def mod_log_channels(self) -> List[str]:
        value = self.data.get("mod_log_channels")
        if not isinstance(value, list) or not value:
            return list(DEFAULT_MOD_LOG_CHANNELS)
        return [str(name).lower() for name in value]

    @property
    def log_all_decisions(self) -> bool:
        return bool(self.data.get("log_all_decisions", False))

    @property
    def create_log_channel(self) -> bool:
        return bool(self.data.get("create_log_channel", True))

    @property
    def include_message_content(self) -> bool:
        return bool(self.data.get("include_message_content", True))

    @property
    def censor_message_content(self) -> bool:
        return bool(self.data.get("censor_message_content", False))

    @property
    def max_content_length(self) -> int:
        return int(self.data.get("max_content_length", 1024))


class AppearanceSettings(_Section):
    """User-facing notification and presence behaviour."""

    @property
    def send_channel_notifications_when_dm_fails(self) -> bool:
        return bool(self.data.get("send_channel_notifications_when_dm_fails", True))

    @property
    def channel_notification_timeout(self) -> float:
        """Seconds before the fallback channel notice deletes itself."""
        return float(self.data.get("channel_notification_timeout", 5))

    @property
    def show_user_avatars_in_logs(self) -> bool:
        return bool(self.data.get("show_user_avatars_in_logs", True))

    @property
    def status_rotation_interval(self) -> float:
        return float(self.data.get("status_rotation_interval", 60))

    @property
    def custom_statuses(self) -> List[Dict[str, str]]:
        value = self.data.get("custom_statuses", [])
        if not isinstance(value, list):
            return []
        return [
            {"type": str(item.get("type", "watching")), "text": str(item.get("text", ""))}
            for item in value
            if isinstance(item, dict) and item.get("text")
        ]
