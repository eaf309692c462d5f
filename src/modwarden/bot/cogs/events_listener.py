"""Event listener Cog for Modwarden.

This cog handles bot lifecycle events (on_ready, on_guild_join) and command
error handling. Message events are handled by the MessageListenerCog.
"""

import discord
from discord.ext import commands

from modwarden.bot.presence import StatusRotator
from modwarden.configuration.sections import LoggingSettings, ModerationSettings
from modwarden.moderation.mod_log import ModLogRouter
from modwarden.ui import embeds
from modwarden.util.logger import get_logger
from modwarden.warnings.engine import WarningEngine
from modwarden.warnings.reporter import summarize

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle and command error handlers."""

    def __init__(
        self,
        discord_bot_instance: discord.Bot,
        engine: WarningEngine,
        mod_log: ModLogRouter,
        rotator: StatusRotator,
        moderation: ModerationSettings,
        logging_settings: LoggingSettings,
    ):
        self.bot = discord_bot_instance
        self.engine = engine
        self.mod_log = mod_log
        self.rotator = rotator
        self.moderation = moderation
        self.logging_settings = logging_settings
        self._bootstrapped = False
        logger.info("[EVENTS] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """
        Handle bot startup.

        1. Logs the connected identity and the active moderation settings.
        2. Starts the status rotation.
        3. Ensures every guild has a mod-log channel and posts restart statistics into existing ones.

        Reconnects fire ``on_ready`` again; the bootstrap only runs once.
        """
        if self.bot.user:
            logger.info("[EVENTS] Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)
        else:
            logger.warning("[EVENTS] Bot partially connected, but user information not yet available.")
        logger.info(
            "[EVENTS] Monitoring messages with sensitivity %g/10, strict mode %s",
            round(self.moderation.sensitivity * 10, 1),
            "ENABLED" if self.moderation.strict_mode else "DISABLED",
        )

        self.rotator.start()

        if self._bootstrapped:
            return
        self._bootstrapped = True

        if not self.logging_settings.create_log_channel:
            return

        logger.info("[EVENTS] Checking for mod-log channels in %d servers...", len(self.bot.guilds))
        summary = summarize(self.engine.store.read_all())
        for guild in self.bot.guilds:
            try:
                await self._bootstrap_guild(guild, summary)
            except discord.HTTPException as exc:
                logger.error("[EVENTS] Error processing guild %s: %s", guild.name, exc)

    async def _bootstrap_guild(self, guild: discord.Guild, summary) -> None:
        channel = self.mod_log.find(guild)
        if channel is None:
            await self.mod_log.create(guild, "Created for AI moderation logs (initialization)")
            return

        logger.info("[EVENTS] Found existing mod-log channel in %s: %s", guild.name, channel.name)
        await channel.send(
            embed=embeds.build_statistics_embed(
                summary,
                title="📊 Moderation Statistics",
                description="AI moderation system has been restarted.",
                footer=f"{self.bot.user} | AI Moderation",
            )
        )

    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild):
        """Set up (or greet) the mod-log channel of a newly joined guild."""
        logger.info("[EVENTS] Bot was added to a new server: %s", guild.name)
        if not self.logging_settings.create_log_channel:
            return

        channel = self.mod_log.find(guild)
        if channel is None:
            created = await self.mod_log.create(guild, "Created for AI moderation logs (new server)")
            if created is None:
                logger.error("[EVENTS] Failed to create mod-log channel in new server %s", guild.name)
            return

        try:
            await channel.send(
                embed=embeds.build_activation_embed(
                    self.moderation.sensitivity,
                    self.moderation.strict_mode,
                    title="🔄 AI Moderation Bot Added",
                    description="Thank you for adding the AI Moderation Bot to your server!",
                    bot_user=self.bot.user,
                )
            )
        except discord.HTTPException as exc:
            logger.error("[EVENTS] Error sending welcome message to %s in %s: %s", channel.name, guild.name, exc)

    @commands.Cog.listener(name="on_application_command_error")
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Handle errors from application commands with logging and user feedback."""
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, "name", "<unknown>")
        logger.error("[EVENTS] Error in command '%s': %s", command_name, error, exc_info=error)

        error_message = "There was an error while executing this command!"
        try:
            await application_context.respond(error_message, ephemeral=True)
        except discord.InteractionResponded:
            await application_context.followup.send(error_message, ephemeral=True)


def setup(
    discord_bot_instance: discord.Bot,
    engine: WarningEngine,
    mod_log: ModLogRouter,
    rotator: StatusRotator,
    moderation: ModerationSettings,
    logging_settings: LoggingSettings,
) -> None:
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(
        EventsListenerCog(discord_bot_instance, engine, mod_log, rotator, moderation, logging_settings)
    )
