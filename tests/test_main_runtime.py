from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from modwarden import main
from modwarden.ai.classifier import MessageClassifier
from modwarden.configuration.ai_settings import AISettings
from modwarden.configuration.app_configuration import AppConfig
from modwarden.configuration.sections import LoggingSettings, ModerationSettings
from modwarden.datatypes.warning_datatypes import CommitResult
from modwarden.errors import ConfigurationError
from modwarden.storage.json_backend import JsonFileBackend
from modwarden.storage.sqlite_backend import SqliteBackend


def _config(tmp_path: Path, payload) -> AppConfig:
    path = tmp_path / "app_config.yml"
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return AppConfig(path)


def test_build_backend_json_default(tmp_path: Path) -> None:
    backend = main.build_backend(_config(tmp_path, {}))

    assert isinstance(backend, JsonFileBackend)
    assert backend.path == main.BASE_DIR / "data" / "warnings.json"
    assert backend.rotator.suffix == ".json"


def test_build_backend_sqlite_with_absolute_paths(tmp_path: Path) -> None:
    config = _config(
        tmp_path,
        {"storage": {"backend": "sqlite", "data_path": str(tmp_path / "w.db"), "backup_dir": str(tmp_path / "bk"), "max_backups": 2}},
    )

    backend = main.build_backend(config)

    assert isinstance(backend, SqliteBackend)
    assert backend.path == tmp_path / "w.db"
    assert backend.rotator.backup_dir == tmp_path / "bk"
    assert backend.rotator.max_backups == 2
    assert backend.rotator.suffix == ".db"


def test_load_configuration_rejects_invalid(tmp_path: Path) -> None:
    path = tmp_path / "app_config.yml"
    path.write_text(yaml.safe_dump({"warnings": {"expires_after_days": -3}}), encoding="utf-8")

    with pytest.raises(ConfigurationError):
        main.load_configuration(path)


def test_load_environment_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with pytest.raises(SystemExit):
        main.load_environment()


def test_intents_include_message_content() -> None:
    intents = main.build_intents()
    assert intents.message_content
    assert intents.members


def test_classifier_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MODWARDEN_MISSING_KEY", raising=False)

    with pytest.raises(ConfigurationError, match="MODWARDEN_MISSING_KEY"):
        MessageClassifier(
            AISettings({"api_key_env": "MODWARDEN_MISSING_KEY"}),
            ModerationSettings({}),
            LoggingSettings({}),
        )


def _runtime(save_on_shutdown: bool, flush_result: CommitResult) -> SimpleNamespace:
    return SimpleNamespace(
        config=SimpleNamespace(storage=SimpleNamespace(save_on_shutdown=save_on_shutdown)),
        rotator=SimpleNamespace(shutdown=AsyncMock()),
        autosave=SimpleNamespace(shutdown=AsyncMock()),
        bot=None,
        store=SimpleNamespace(force_flush=AsyncMock(return_value=flush_result), close=AsyncMock()),
    )


@pytest.mark.asyncio
async def test_shutdown_flushes_and_closes_storage() -> None:
    runtime = _runtime(True, CommitResult(ok=True))

    await main.shutdown_runtime(runtime)

    runtime.rotator.shutdown.assert_awaited_once()
    runtime.autosave.shutdown.assert_awaited_once()
    runtime.store.force_flush.assert_awaited_once()
    runtime.store.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_shutdown_without_final_save() -> None:
    runtime = _runtime(False, CommitResult(ok=True))

    await main.shutdown_runtime(runtime)

    runtime.store.force_flush.assert_not_awaited()
    runtime.store.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_shutdown_still_closes_after_failed_save() -> None:
    runtime = _runtime(True, CommitResult(ok=False, error="disk full"))

    await main.shutdown_runtime(runtime)

    runtime.store.close.assert_awaited_once()


def test_load_cogs_registers_three_cogs() -> None:
    runtime = SimpleNamespace(
        bot=MagicMock(),
        engine=MagicMock(),
        mod_log=MagicMock(),
        rotator=MagicMock(),
        pipeline=MagicMock(),
        config=SimpleNamespace(moderation=ModerationSettings({}), logging=LoggingSettings({})),
    )

    main.load_cogs(runtime)

    names = [type(call.args[0]).__name__ for call in runtime.bot.add_cog.call_args_list]
    assert names == ["EventsListenerCog", "MessageListenerCog", "WarningsCog"]
