"""
Modwarden
=========

A Discord bot that sends every guild message through an AI classifier,
deletes rule violations, keeps a per-user warning history, and escalates to
timeouts, kicks and bans as warnings accumulate.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. MODWARDEN_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MODWARDEN_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()

import asyncio
import discord
from dotenv import load_dotenv

from modwarden.ai.classifier import MessageClassifier
from modwarden.bot.presence import RecentActivity, StatusRotator
from modwarden.configuration.app_configuration import AppConfig
from modwarden.errors import ConfigurationError, PersistenceFailure
from modwarden.moderation.mod_log import ModLogRouter
from modwarden.moderation.moderation_pipeline import ModerationPipeline
from modwarden.scheduler.autosave_scheduler import AutoSaveScheduler
from modwarden.storage.backups import BackupRotator
from modwarden.storage.json_backend import JsonFileBackend
from modwarden.storage.record_store import RecordStore, StorageBackend
from modwarden.storage.sqlite_backend import SqliteBackend
from modwarden.ui.console import ConsoleControl, close_bot_instance, console_session
from modwarden.util.logger import get_logger, handle_exception
from modwarden.warnings.engine import WarningEngine

logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def load_configuration(config_path: Path | None = None) -> AppConfig:
    """Load and validate ``config/app_config.yml``.

    Raises
    ------
    ConfigurationError
        If any setting is invalid.
    """
    config = AppConfig(config_path or BASE_DIR / "config" / "app_config.yml")
    config.validate()
    return config


def build_intents() -> discord.Intents:
    """Construct the Discord intents required for message moderation."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def _resolve(path: Path) -> Path:
    return path if path.is_absolute() else BASE_DIR / path


def build_backend(config: AppConfig) -> StorageBackend:
    """Create the storage backend named by ``storage.backend``."""
    storage = config.storage
    data_path = _resolve(storage.data_path)
    backup_dir = _resolve(storage.backup_dir)

    if storage.backend == "sqlite":
        rotator = BackupRotator(backup_dir, suffix=".db", max_backups=storage.max_backups)
        return SqliteBackend(data_path, rotator)

    rotator = BackupRotator(backup_dir, suffix=".json", max_backups=storage.max_backups)
    return JsonFileBackend(data_path, rotator)


class Runtime:
    """Every long-lived object the bot needs, built once at startup."""

    def __init__(self, config: AppConfig, bot: discord.Bot, store: RecordStore) -> None:
        self.config = config
        self.bot = bot
        self.store = store
        self.engine = WarningEngine(store, config.engine_settings())
        self.classifier = MessageClassifier(config.ai_settings, config.moderation, config.logging)
        self.activity = RecentActivity()
        self.mod_log = ModLogRouter(bot, config.logging, config.moderation)
        self.pipeline = ModerationPipeline(bot, self.classifier, self.engine, config, self.mod_log, self.activity)
        self.rotator = StatusRotator(bot, config.appearance, config.moderation, self.activity)
        self.autosave = AutoSaveScheduler(store, config.storage.auto_save_interval)


def load_cogs(runtime: Runtime) -> None:
    """Register all operational cogs with the runtime's bot."""
    from modwarden.bot.cogs import events_listener, message_listener, warnings_cmds

    bot = runtime.bot
    events_listener.setup(
        bot,
        runtime.engine,
        runtime.mod_log,
        runtime.rotator,
        runtime.config.moderation,
        runtime.config.logging,
    )
    message_listener.setup(bot, runtime.pipeline)
    warnings_cmds.setup(bot, runtime.engine)

    logger.info("All cogs loaded successfully.")


async def create_runtime(config: AppConfig) -> Runtime:
    """Load the warning store and wire every component around it.

    Raises
    ------
    PersistenceFailure
        If the stored warnings cannot be read.
    ConfigurationError
        If the classifier API key is missing.
    """
    store = RecordStore(build_backend(config), create_backups=config.storage.create_backups)
    await store.load()

    bot = discord.Bot(intents=build_intents())
    try:
        runtime = Runtime(config, bot, store)
    except ConfigurationError:
        await store.close()
        raise
    load_cogs(runtime)
    return runtime


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(runtime: Runtime) -> None:
    """Stop background tasks, close the bot, flush pending warnings and close storage."""
    await runtime.rotator.shutdown()
    await runtime.autosave.shutdown()
    await close_bot_instance(runtime.bot, log_close=True)

    if runtime.config.storage.save_on_shutdown:
        result = await runtime.store.force_flush()
        if result.ok:
            logger.info("Warning data saved on shutdown.")
        else:
            logger.error("Failed to save warning data on shutdown: %s", result.error)

    try:
        await runtime.store.close()
    except PersistenceFailure as exc:
        logger.error("Error closing warning storage: %s", exc)

    logger.info("Shutdown complete.")


async def run_bot_session(runtime: Runtime, token: str, control: ConsoleControl) -> int:
    """Run the bot alongside the console, returning an exit code."""
    control.set_bot(runtime.bot)
    exit_code = 0

    runtime.autosave.start()
    try:
        async with console_session(control):
            try:
                await start_bot(runtime.bot, token)
            except asyncio.CancelledError:
                logger.info("Bot start cancelled; proceeding to shutdown")
            except discord.DiscordException as exc:
                logger.critical("Discord bot runtime error: %s", exc)
                exit_code = 1
    finally:
        control.set_bot(None)
        await shutdown_runtime(runtime)

    return exit_code


async def async_main() -> int:
    """Bootstrap configuration, storage and the bot, returning an exit code."""
    token = load_environment()

    try:
        config = load_configuration()
    except ConfigurationError as exc:
        logger.critical("Invalid configuration: %s", exc)
        return 1

    try:
        runtime = await create_runtime(config)
    except PersistenceFailure as exc:
        logger.critical("Failed to load warning data: %s", exc)
        return 1
    except ConfigurationError as exc:
        logger.critical("Invalid configuration: %s", exc)
        return 1

    control = ConsoleControl(runtime.engine)
    return await run_bot_session(runtime, token, control)


def main() -> int:
    """Entrypoint that orchestrates the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    os.chdir(BASE_DIR)
    logger.info("Starting Modwarden…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1


if __name__ == "__main__":
    sys.exit(main())
