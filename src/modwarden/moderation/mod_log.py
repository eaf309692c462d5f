"""Mod-log channel resolution and posting."""

from __future__ import annotations

import discord

from modwarden.configuration.sections import LoggingSettings, ModerationSettings
from modwarden.ui import embeds
from modwarden.util import discord_utils
from modwarden.util.logger import get_logger

logger = get_logger("mod_log")


class ModLogRouter:
    """
    Find (or create) each guild's mod-log channel and post embeds into it.

    Args:
        bot: Bot instance, used for the bot's own member and user.
        logging_settings: Channel names to look for and whether creation is allowed.
        moderation: Current sensitivity and strict mode for the activation embed.
    """

    def __init__(self, bot: discord.Bot, logging_settings: LoggingSettings, moderation: ModerationSettings) -> None:
        self._bot = bot
        self._logging = logging_settings
        self._moderation = moderation

    def find(self, guild: discord.Guild) -> discord.TextChannel | None:
        return discord_utils.find_mod_log_channel(guild, self._logging.mod_log_channels)

    async def create(self, guild: discord.Guild, reason: str) -> discord.TextChannel | None:
        """Create a private mod-log channel and announce the bot in it."""
        bot_member = guild.me or self._bot.user
        channel = await discord_utils.create_mod_log_channel(guild, bot_member, reason)
        if channel is None:
            return None
        try:
            await channel.send(
                embed=embeds.build_activation_embed(
                    self._moderation.sensitivity,
                    self._moderation.strict_mode,
                    bot_user=self._bot.user,
                )
            )
        except discord.HTTPException as exc:
            logger.warning("[MOD LOG] Could not post initialization message in %s: %s", guild.name, exc)
        return channel

    async def resolve(self, guild: discord.Guild, reason: str = "Created for AI moderation logs") -> discord.TextChannel | None:
        """Return the guild's mod-log channel, creating one when allowed and missing."""
        channel = self.find(guild)
        if channel is None and self._logging.create_log_channel:
            channel = await self.create(guild, reason)
        return channel

    async def post(self, guild: discord.Guild, embed: discord.Embed) -> bool:
        channel = await self.resolve(guild)
        if channel is None:
            logger.info("[MOD LOG] No log channel in %s; %s", guild.name, embed.title)
            return False
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            logger.error("[MOD LOG] Failed to send to %s in %s: %s", channel.name, guild.name, exc)
            return False
        return True
