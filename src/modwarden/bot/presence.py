"""Rotating bot presence and the recent-activity counter it displays."""

from __future__ import annotations

import asyncio
import datetime
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import discord

from modwarden.configuration.sections import AppearanceSettings, ModerationSettings
from modwarden.datatypes.warning_datatypes import utcnow
from modwarden.util.logger import get_logger

logger = get_logger("presence")

ACTIVITY_WINDOW = datetime.timedelta(hours=1)
ACTIVE_WINDOW = datetime.timedelta(minutes=10)

DEFAULT_STATUSES: List[Dict[str, str]] = [
    {"type": "watching", "text": "for violations"},
    {"type": "listening", "text": "to conversations"},
    {"type": "playing", "text": "with {serverCount} servers"},
    {"type": "watching", "text": "sensitivity: {sensitivity}"},
    {"type": "custom", "text": "AI Moderation Active"},
    {"type": "watching", "text": "strict mode: {strictMode}"},
    {"type": "watching", "text": "{recentActivity}"},
]

_ACTIVITY_TYPES = {
    "playing": discord.ActivityType.playing,
    "streaming": discord.ActivityType.streaming,
    "listening": discord.ActivityType.listening,
    "watching": discord.ActivityType.watching,
    "competing": discord.ActivityType.competing,
}


class RecentActivity:
    """Moderations counted per rolling hour, plus the time of the latest one."""

    def __init__(self, clock: Callable[[], datetime.datetime] = utcnow) -> None:
        self._clock = clock
        self.count = 0
        self.last_moderation: Optional[datetime.datetime] = None
        self.reset_at = clock()

    def record(self) -> None:
        self._roll()
        self.count += 1
        self.last_moderation = self._clock()

    def _roll(self) -> None:
        now = self._clock()
        if now - self.reset_at > ACTIVITY_WINDOW:
            self.count = 0
            self.reset_at = now

    def describe(self) -> str:
        self._roll()
        if self.count == 0:
            return "all clear"
        if self.last_moderation is not None and self._clock() - self.last_moderation < ACTIVE_WINDOW:
            return f"{self.count} flags (active)"
        return f"{self.count} flags this hour"


@dataclass(frozen=True, slots=True)
class StatusContext:
    server_count: int
    sensitivity: float
    strict_mode: bool
    recent_activity: str


def render_status(text: str, context: StatusContext) -> str:
    """Substitute the presence placeholders in ``text``."""
    return (
        text.replace("{serverCount}", str(context.server_count))
        .replace("{sensitivity}", f"{round(context.sensitivity * 10, 1):g}/10")
        .replace("{strictMode}", "ON" if context.strict_mode else "OFF")
        .replace("{recentActivity}", context.recent_activity)
    )


def build_activity(kind: str, text: str) -> discord.BaseActivity:
    activity_type = _ACTIVITY_TYPES.get(kind.lower())
    if activity_type is None:
        return discord.CustomActivity(name=text)
    return discord.Activity(type=activity_type, name=text)


class StatusRotator:
    """Cycles the bot's presence through the configured statuses."""

    def __init__(
        self,
        bot: discord.Bot,
        appearance: AppearanceSettings,
        moderation: ModerationSettings,
        activity: RecentActivity,
    ) -> None:
        self._bot = bot
        self._interval = max(appearance.status_rotation_interval, 1.0)
        self._statuses = appearance.custom_statuses or DEFAULT_STATUSES
        self._moderation = moderation
        self._activity = activity
        self._index = 0
        self._task: asyncio.Task | None = None

    def _context(self) -> StatusContext:
        return StatusContext(
            server_count=len(self._bot.guilds),
            sensitivity=self._moderation.sensitivity,
            strict_mode=self._moderation.strict_mode,
            recent_activity=self._activity.describe(),
        )

    async def update(self) -> None:
        status = self._statuses[self._index % len(self._statuses)]
        text = render_status(status["text"], self._context())
        await self._bot.change_presence(activity=build_activity(status["type"], text))
        logger.debug("[PRESENCE] Status updated: %s (%s)", text, status["type"])

    async def _run_loop(self) -> None:
        while True:
            try:
                await self.update()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("[PRESENCE] Failed to update status: %s", exc)
            await asyncio.sleep(self._interval)
            self._index = (self._index + 1) % len(self._statuses)

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run_loop())

    async def shutdown(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
