"""
Operator console that runs in the terminal next to the Discord bot.

Commands are plain async functions registered with :func:`console_command`.
They read warning data through the engine, so the console never sees a
record in the middle of a write.
"""

from __future__ import annotations

import asyncio
import shlex
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import discord
from prompt_toolkit import PromptSession, print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout

from modwarden.datatypes.discord_datatypes import UserID
from modwarden.datatypes.warning_datatypes import SanctionKind, format_timestamp
from modwarden.util.logger import get_logger
from modwarden.warnings.engine import WarningEngine
from modwarden.warnings.reporter import summarize

logger = get_logger("console")

BANNER_WIDTH = 45
PROMPT = "modwarden> "


def banner(title: str) -> str:
    return f"── {title} ".ljust(BANNER_WIDTH, "─")


def echo(text: str, style: str = "") -> None:
    """Print above the prompt; ``style`` is a prompt_toolkit style string such as ``ansired``."""
    print_formatted_text(FormattedText([(style, text)]) if style else text)


def _row(label: str, value: object) -> str:
    return f"  {label + ':':<12}{value}"


class ConsoleControl:
    """State shared between the console task and the bot session."""

    def __init__(self, engine: WarningEngine | None = None) -> None:
        self.shutdown_event = asyncio.Event()
        self.bot: discord.Bot | None = None
        self.engine = engine

    def set_bot(self, bot: discord.Bot | None) -> None:
        self.bot = bot

    def request_shutdown(self) -> None:
        self.shutdown_event.set()

    def is_shutdown_requested(self) -> bool:
        return self.shutdown_event.is_set()


async def close_bot_instance(bot: discord.Bot | None, *, log_close: bool = False) -> None:
    if bot is None or bot.is_closed():
        return
    try:
        await bot.close()
    except discord.DiscordException as exc:
        logger.error("Error while closing the Discord connection: %s", exc)
        return
    if log_close:
        logger.info("Discord connection closed.")


# ---------------- Registry ----------------

Handler = Callable[[ConsoleControl, list[str]], Awaitable[None]]


@dataclass(frozen=True)
class ConsoleCommand:
    name: str
    aliases: tuple[str, ...]
    summary: str
    usage: str
    handler: Handler


COMMANDS: list[ConsoleCommand] = []
_LOOKUP: dict[str, ConsoleCommand] = {}


def console_command(name: str, *aliases: str, summary: str, usage: str = "") -> Callable[[Handler], Handler]:
    """Register the decorated coroutine under ``name`` and ``aliases``."""

    def register(handler: Handler) -> Handler:
        command = ConsoleCommand(name, aliases, summary, usage or name, handler)
        COMMANDS.append(command)
        for key in (name, *aliases):
            _LOOKUP[key] = command
        return handler

    return register


def _require_engine(control: ConsoleControl) -> WarningEngine | None:
    if control.engine is None:
        echo("Warning engine not initialized.", "ansiyellow")
    return control.engine


# ---------------- Commands ----------------

@console_command("help", "h", "?", summary="List console commands")
async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    echo(banner("Commands"), "ansigreen")
    width = max(len(command.usage) for command in COMMANDS)
    for command in COMMANDS:
        aliases = f"  [{', '.join(command.aliases)}]" if command.aliases else ""
        echo(f"  {command.usage:<{width}}  {command.summary}{aliases}")


@console_command("status", "info", summary="Connection and storage status")
async def cmd_status(control: ConsoleControl, args: list[str]) -> None:
    echo(banner("Status"), "ansiblue")
    bot = control.bot
    if bot is None:
        echo(_row("Bot", "🔴 Not initialized"))
    else:
        echo(_row("Bot", "🔴 Disconnected" if bot.is_closed() else "🟢 Connected"))
        echo(_row("Guilds", len(bot.guilds)))
        echo(_row("Latency", f"{bot.latency * 1000:.0f}ms"))

    if control.engine is not None:
        store = control.engine.store
        echo(_row("Storage", store.backend.describe()))
        echo(_row("Records", len(store)))
        echo(_row("Unsaved", "yes" if store.is_dirty else "no"))


@console_command("stats", "modstats", summary="Moderation statistics across all users")
async def cmd_stats(control: ConsoleControl, args: list[str]) -> None:
    engine = _require_engine(control)
    if engine is None:
        return
    summary = summarize(engine.store.read_all())
    echo(banner("Moderation Statistics"), "ansiblue")
    echo(_row("Users", summary.active_users))
    echo(_row("Warnings", summary.total_active_warnings))
    for kind in SanctionKind:
        echo(_row(kind.value, summary.count(kind)))


@console_command("warnings", "w", summary="Show one user's warning record", usage="warnings <user_id>")
async def cmd_warnings(control: ConsoleControl, args: list[str]) -> None:
    if len(args) != 1:
        echo("Usage: warnings <user_id>", "ansiyellow")
        return
    engine = _require_engine(control)
    if engine is None:
        return
    try:
        user_id = UserID(args[0])
    except ValueError:
        echo(f"Invalid user ID: {args[0]}", "ansired")
        return

    record = engine.get_record(user_id)
    if record is None or record.active_count == 0:
        echo(f"User {user_id} has no warnings.")
        return

    echo(f"User {user_id}: {record.active_count} active warning(s)", "ansicyan")
    for entry in record.entries:
        when = format_timestamp(entry.occurred_at) if entry.occurred_at else entry.raw_timestamp
        echo(f"  {when}  {entry.severity.value:<6}  {entry.reason}")
    for sanction in record.sanctions_applied:
        when = format_timestamp(sanction.applied_at) if sanction.applied_at else sanction.raw_timestamp
        echo(f"  {when}  {sanction.kind.label}", "ansibrightblack")


@console_command("save", "forcesave", summary="Write all warning data to storage now")
async def cmd_save(control: ConsoleControl, args: list[str]) -> None:
    engine = _require_engine(control)
    if engine is None:
        return
    result = await engine.force_save()
    if result.ok:
        echo("Warning data saved.", "ansigreen")
    else:
        echo(f"Save failed: {result.error}", "ansired")


@console_command("shutdown", "stop", "quit", "exit", summary="Disconnect and exit")
async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    echo("Shutting down...", "ansiyellow")
    control.request_shutdown()
    await close_bot_instance(control.bot)


# ---------------- Loop ----------------

async def handle_console_command(line: str, control: ConsoleControl) -> None:
    """Parse one input line and run the matching command."""
    try:
        words = shlex.split(line)
    except ValueError as exc:
        echo(f"Could not parse input: {exc}", "ansired")
        return
    if not words:
        return

    name, args = words[0].lower(), words[1:]
    command = _LOOKUP.get(name)
    if command is None:
        echo(f"Unknown command '{name}'. Type 'help' for available commands.", "ansired")
        return

    try:
        await command.handler(control, args)
    except Exception as exc:
        logger.exception("Console command '%s' failed", name)
        echo(f"Error executing command: {exc}", "ansired")


async def run_console(control: ConsoleControl) -> None:
    """Read commands until shutdown is requested or stdin closes."""
    session: PromptSession[str] = PromptSession(PROMPT)
    echo(banner("Modwarden Console"), "ansigreen")
    echo("Type 'help' for commands.", "ansibrightblack")

    with patch_stdout():
        while not control.is_shutdown_requested():
            try:
                line = await session.prompt_async()
            except (EOFError, KeyboardInterrupt):
                echo("Console closed, shutting down.", "ansiyellow")
                control.request_shutdown()
                await close_bot_instance(control.bot)
                return
            await handle_console_command(line, control)


@asynccontextmanager
async def console_session(control: ConsoleControl) -> AsyncIterator[ConsoleControl]:
    """Run :func:`run_console` in the background for the duration of the block."""
    task = asyncio.create_task(run_console(control))
    try:
        yield control
    finally:
        control.request_shutdown()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
