from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from modwarden.bot.cogs import events_listener, message_listener
from modwarden.configuration.sections import LoggingSettings, ModerationSettings
from modwarden.datatypes.warning_datatypes import InfractionEntry, Severity, UserWarningRecord, utcnow
from modwarden.storage.record_store import RecordStore
from modwarden.warnings.engine import EngineSettings, WarningEngine


@pytest.fixture
def fake_bot():
    return SimpleNamespace(
        user=SimpleNamespace(id=999),
        guilds=[SimpleNamespace(name="Guild A"), SimpleNamespace(name="Guild B")],
    )


@pytest.fixture
def mod_log():
    router = MagicMock()
    router.find = MagicMock(return_value=None)
    router.create = AsyncMock(return_value=MagicMock())
    return router


def _cog(bot, store: RecordStore, clock, mod_log, **logging):
    rotator = MagicMock()
    engine = WarningEngine(store, EngineSettings(), clock=clock)
    return events_listener.EventsListenerCog(
        bot, engine, mod_log, rotator, ModerationSettings({}), LoggingSettings(logging)
    )


@pytest.mark.asyncio
async def test_on_ready_creates_missing_channels_once(fake_bot, store, clock, mod_log):
    cog = _cog(fake_bot, store, clock, mod_log)

    await cog.on_ready()
    await cog.on_ready()

    assert cog.rotator.start.call_count == 2
    assert mod_log.create.await_count == 2
    created_for = [call.args[0].name for call in mod_log.create.await_args_list]
    assert created_for == ["Guild A", "Guild B"]


@pytest.mark.asyncio
async def test_on_ready_posts_statistics_to_existing_channel(fake_bot, store, clock, mod_log):
    channel = MagicMock()
    channel.send = AsyncMock()
    mod_log.find.return_value = channel
    await store.commit(
        UserWarningRecord(user_id="1", active_count=1, entries=[InfractionEntry("spam", Severity.LOW, utcnow())])
    )
    cog = _cog(fake_bot, store, clock, mod_log)

    await cog.on_ready()

    mod_log.create.assert_not_awaited()
    embed = channel.send.await_args.kwargs["embed"]
    assert embed.title == "📊 Moderation Statistics"
    assert embed.description == "AI moderation system has been restarted."
    fields = {field.name: field.value for field in embed.fields}
    assert fields["Total Users with Warnings"] == "1"


@pytest.mark.asyncio
async def test_on_ready_skips_channels_when_creation_disabled(fake_bot, store, clock, mod_log):
    cog = _cog(fake_bot, store, clock, mod_log, create_log_channel=False)

    await cog.on_ready()

    cog.rotator.start.assert_called_once()
    mod_log.find.assert_not_called()


@pytest.mark.asyncio
async def test_on_ready_continues_after_guild_error(fake_bot, store, clock, mod_log):
    mod_log.create.side_effect = [discord.Forbidden(MagicMock(), "Missing access"), MagicMock()]
    cog = _cog(fake_bot, store, clock, mod_log)

    await cog.on_ready()

    assert mod_log.create.await_count == 2


@pytest.mark.asyncio
async def test_on_guild_join_greets_existing_channel(fake_bot, store, clock, mod_log):
    channel = MagicMock()
    channel.send = AsyncMock()
    mod_log.find.return_value = channel
    cog = _cog(fake_bot, store, clock, mod_log)

    await cog.on_guild_join(SimpleNamespace(name="New Guild"))

    embed = channel.send.await_args.kwargs["embed"]
    assert embed.title == "🔄 AI Moderation Bot Added"


@pytest.mark.asyncio
async def test_on_guild_join_creates_channel(fake_bot, store, clock, mod_log):
    cog = _cog(fake_bot, store, clock, mod_log)
    guild = SimpleNamespace(name="New Guild")

    await cog.on_guild_join(guild)

    mod_log.create.assert_awaited_once_with(guild, "Created for AI moderation logs (new server)")


@pytest.mark.asyncio
async def test_command_error_replies_ephemerally(fake_bot, store, clock, mod_log):
    cog = _cog(fake_bot, store, clock, mod_log)
    ctx = MagicMock()
    ctx.respond = AsyncMock()

    await cog.on_application_command_error(ctx, RuntimeError("boom"))

    ctx.respond.assert_awaited_once_with("There was an error while executing this command!", ephemeral=True)


@pytest.mark.asyncio
async def test_command_error_uses_followup_after_response(fake_bot, store, clock, mod_log):
    cog = _cog(fake_bot, store, clock, mod_log)
    ctx = MagicMock()
    ctx.respond = AsyncMock(side_effect=discord.InteractionResponded(MagicMock()))
    ctx.followup.send = AsyncMock()

    await cog.on_application_command_error(ctx, RuntimeError("boom"))

    ctx.followup.send.assert_awaited_once_with("There was an error while executing this command!", ephemeral=True)


@pytest.mark.asyncio
async def test_message_listener_forwards_to_pipeline():
    pipeline = MagicMock()
    pipeline.handle_message = AsyncMock()
    cog = message_listener.MessageListenerCog(MagicMock(), pipeline)
    message = SimpleNamespace(id=1)

    await cog.on_message(message)

    pipeline.handle_message.assert_awaited_once_with(message)


@pytest.mark.asyncio
async def test_message_listener_contains_errors():
    pipeline = MagicMock()
    pipeline.handle_message = AsyncMock(side_effect=RuntimeError("unexpected"))
    cog = message_listener.MessageListenerCog(MagicMock(), pipeline)

    await cog.on_message(SimpleNamespace(id=1))
