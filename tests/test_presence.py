"""Tests for the recent-activity counter and the status rotation."""

import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from modwarden.bot.presence import (
    DEFAULT_STATUSES,
    RecentActivity,
    StatusContext,
    StatusRotator,
    build_activity,
    render_status,
)
from modwarden.configuration.sections import AppearanceSettings, ModerationSettings


def test_recent_activity_all_clear(clock) -> None:
    assert RecentActivity(clock=clock).describe() == "all clear"


def test_recent_activity_active_then_hourly(clock) -> None:
    activity = RecentActivity(clock=clock)
    activity.record()
    activity.record()

    assert activity.describe() == "2 flags (active)"

    clock.advance(minutes=15)
    assert activity.describe() == "2 flags this hour"


def test_recent_activity_rolls_over_after_an_hour(clock) -> None:
    activity = RecentActivity(clock=clock)
    activity.record()

    clock.advance(hours=1, minutes=1)

    assert activity.describe() == "all clear"
    activity.record()
    assert activity.count == 1


def test_render_status_placeholders() -> None:
    context = StatusContext(server_count=4, sensitivity=0.7, strict_mode=True, recent_activity="all clear")

    text = render_status("{serverCount} servers | {sensitivity} | strict {strictMode} | {recentActivity}", context)

    assert text == "4 servers | 7/10 | strict ON | all clear"


def test_build_activity_types() -> None:
    watching = build_activity("Watching", "for violations")
    assert isinstance(watching, discord.Activity)
    assert watching.type == discord.ActivityType.watching

    custom = build_activity("custom", "AI Moderation Active")
    assert isinstance(custom, discord.CustomActivity)
    assert custom.name == "AI Moderation Active"


@pytest.mark.asyncio
async def test_rotator_update_uses_configured_status(clock) -> None:
    bot = SimpleNamespace(guilds=[object(), object()], change_presence=AsyncMock())
    appearance = AppearanceSettings({"custom_statuses": [{"type": "playing", "text": "with {serverCount} servers"}]})
    rotator = StatusRotator(bot, appearance, ModerationSettings({}), RecentActivity(clock=clock))

    await rotator.update()

    activity = bot.change_presence.await_args.kwargs["activity"]
    assert activity.name == "with 2 servers"
    assert activity.type == discord.ActivityType.playing


@pytest.mark.asyncio
async def test_rotator_falls_back_to_default_statuses(clock) -> None:
    bot = SimpleNamespace(guilds=[], change_presence=AsyncMock())
    rotator = StatusRotator(bot, AppearanceSettings({}), ModerationSettings({}), RecentActivity(clock=clock))

    await rotator.update()

    assert bot.change_presence.await_args.kwargs["activity"].name == DEFAULT_STATUSES[0]["text"]


@pytest.mark.asyncio
async def test_rotator_start_is_idempotent_and_shuts_down(clock) -> None:
    bot = SimpleNamespace(guilds=[], change_presence=AsyncMock())
    rotator = StatusRotator(bot, AppearanceSettings({}), ModerationSettings({}), RecentActivity(clock=clock))

    rotator.start()
    first_task = rotator._task
    rotator.start()
    assert rotator._task is first_task

    await rotator.shutdown()
    assert rotator._task is None
