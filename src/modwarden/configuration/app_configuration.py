from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from modwarden.configuration.ai_settings import AISettings
from modwarden.configuration.sections import (
    AppearanceSettings,
    LoggingSettings,
    ModerationSettings,
    StorageSettings,
    WarningSettings,
)
from modwarden.errors import ConfigurationError
from modwarden.util.logger import get_logger
from modwarden.warnings.engine import EngineSettings

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

STORAGE_BACKENDS = ("json", "sqlite")


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    one typed helper per top-level block. A missing file yields the built-in
    defaults; a file that exists but cannot be parsed is reported by
    :meth:`validate`.
    """

    def __init__(self, config_path: Path = CONFIG_PATH) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.load_error: str | None = None
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        self.load_error = None
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found; using defaults.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            self.load_error = str(exc)
            return {}

        if data is None:
            return {}
        if not isinstance(data, dict):
            self.load_error = f"top level is {type(data).__name__}, expected a mapping"
            logger.error("[APP CONFIGURATION] Config %s: %s", self.config_path, self.load_error)
            return {}
        return data

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the cached configuration mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    @property
    def ai_settings(self) -> AISettings:
        return AISettings(self._section("ai_settings"))

    @property
    def moderation(self) -> ModerationSettings:
        return ModerationSettings(self._section("moderation"))

    @property
    def warnings(self) -> WarningSettings:
        return WarningSettings(self._section("warnings"))

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings(self._section("storage"))

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings(self._section("logging"))

    @property
    def appearance(self) -> AppearanceSettings:
        return AppearanceSettings(self._section("appearance"))

    def engine_settings(self) -> EngineSettings:
        """Warning policy for :class:`WarningEngine`, built from the ``warnings`` block."""
        warnings = self.warnings
        return EngineSettings(expires_after_days=warnings.expires_after_days, thresholds=warnings.thresholds)

    # --------------------------
    # Validation
    # --------------------------
    def validate(self) -> None:
        """Check every setting the bot depends on.

        Raises:
            ConfigurationError: On unparseable YAML, non-ascending thresholds,
                negative retention or autosave interval, an unknown storage
                backend, or any value of the wrong type.
        """
        if self.load_error:
            raise ConfigurationError(f"{self.config_path}: {self.load_error}")

        try:
            retention = self.warnings.expires_after_days
            auto_save = self.storage.auto_save_interval
            max_backups = self.storage.max_backups
            backend = self.storage.backend
            sensitivity = self.moderation.sensitivity
            min_length = self.moderation.min_message_length
            max_content = self.logging.max_content_length
            # Read for their conversion errors.
            self.moderation.ignored_channels
            self.moderation.ignored_roles
            self.ai_settings.temperature
            self.ai_settings.max_tokens
            self.ai_settings.top_p
            self.ai_settings.request_timeout
            self.appearance.channel_notification_timeout
            self.appearance.status_rotation_interval
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid configuration value: {exc}") from exc

        self.warnings.thresholds.validate()

        if retention < 0:
            raise ConfigurationError(f"warnings.expires_after_days must be 0 or more, got {retention}")
        if auto_save < 0:
            raise ConfigurationError(f"storage.auto_save_interval must be 0 or more, got {auto_save}")
        if self.storage.create_backups and max_backups < 1:
            raise ConfigurationError(f"storage.max_backups must be at least 1 when backups are enabled, got {max_backups}")
        if backend not in STORAGE_BACKENDS:
            raise ConfigurationError(f"storage.backend must be one of {', '.join(STORAGE_BACKENDS)}, got {backend!r}")
        if not 0.0 <= sensitivity <= 1.0:
            raise ConfigurationError(f"moderation.sensitivity must be between 0 and 1, got {sensitivity}")
        if min_length < 0:
            raise ConfigurationError(f"moderation.min_message_length must be 0 or more, got {min_length}")
        if max_content < 4:
            raise ConfigurationError(f"logging.max_content_length must be at least 4, got {max_content}")
