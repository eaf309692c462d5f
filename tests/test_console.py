"""Tests for console.py module."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from modwarden.errors import PersistenceFailure
from modwarden.ui import console
from modwarden.warnings.engine import EngineSettings, WarningEngine


@pytest.fixture
def printed():
    """Capture console output as plain strings."""
    lines = []
    with patch("modwarden.ui.console.echo", side_effect=lambda text, style="": lines.append(text)):
        yield lines


@pytest.fixture
def control(store, clock):
    return console.ConsoleControl(WarningEngine(store, EngineSettings(), clock=clock))


def test_echo_without_style():
    with patch("modwarden.ui.console.print_formatted_text") as mock_print:
        console.echo("Test message")
        mock_print.assert_called_once_with("Test message")


def test_banner_has_fixed_width():
    line = console.banner("Status")
    assert line.startswith("── Status ")
    assert len(line) == console.BANNER_WIDTH


def test_every_alias_resolves():
    for command in console.COMMANDS:
        for key in (command.name, *command.aliases):
            assert console._LOOKUP[key] is command


def test_console_control_shutdown():
    control = console.ConsoleControl()
    assert not control.is_shutdown_requested()
    control.request_shutdown()
    assert control.is_shutdown_requested()


@pytest.mark.asyncio
async def test_close_bot_instance_when_none():
    await console.close_bot_instance(None)


@pytest.mark.asyncio
async def test_close_bot_instance_closes_open_bot():
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()

    await console.close_bot_instance(bot, log_close=True)

    bot.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_warnings_command_prints_record(control, printed):
    await control.engine.record_violation(555, "spam links", "high")

    await console.handle_console_command("warnings 555", control)

    assert printed[0] == "User 555: 1 active warning(s)"
    assert "high" in printed[1] and printed[1].endswith("spam links")


@pytest.mark.asyncio
async def test_warnings_command_rejects_bad_id(control, printed):
    await console.handle_console_command("w not-a-number", control)
    assert printed == ["Invalid user ID: not-a-number"]


@pytest.mark.asyncio
async def test_warnings_command_needs_one_argument(control, printed):
    await console.handle_console_command("warnings", control)
    assert printed == ["Usage: warnings <user_id>"]


@pytest.mark.asyncio
async def test_warnings_command_without_record(control, printed):
    await console.handle_console_command("warnings 1", control)
    assert printed == ["User 1 has no warnings."]


@pytest.mark.asyncio
async def test_stats_command(control, printed):
    for _ in range(3):
        await control.engine.record_violation(555, "spam", "low")

    await console.handle_console_command("STATS", control)

    assert "  Users:      1" in printed
    assert "  Warnings:   3" in printed
    assert "  timeout_1h: 1" in printed
    assert "  ban:        0" in printed


@pytest.mark.asyncio
async def test_save_command_reports_failure(control, printed):
    control.engine.store.backend.write = AsyncMock(side_effect=PersistenceFailure("disk full"))

    await console.handle_console_command("save", control)

    assert printed == ["Save failed: disk full"]


@pytest.mark.asyncio
async def test_status_without_bot(control, printed):
    await console.handle_console_command("status", control)

    assert "  Bot:        🔴 Not initialized" in printed
    assert "  Records:    0" in printed


@pytest.mark.asyncio
async def test_shutdown_command_closes_bot(control, printed):
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()
    control.set_bot(bot)

    await console.handle_console_command("exit", control)

    assert control.is_shutdown_requested()
    bot.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_unbalanced_quotes_are_reported(control, printed):
    await console.handle_console_command('warnings "555', control)
    assert printed[0].startswith("Could not parse input:")


@pytest.mark.asyncio
async def test_unknown_command(control, printed):
    await console.handle_console_command("dance", control)
    assert printed == ["Unknown command 'dance'. Type 'help' for available commands."]


@pytest.mark.asyncio
async def test_failing_command_is_contained(control, printed):
    control.engine = MagicMock()
    control.engine.force_save = AsyncMock(side_effect=RuntimeError("boom"))

    await console.handle_console_command("save", control)

    assert printed == ["Error executing command: boom"]
