"""
Warnings cog: slash commands for inspecting and managing warning records.

Commands
- ``/warnings user``: show a member's warning history.
- ``/clearwarnings user``: delete a member's record, including the sanction log.
- ``/modstats``: aggregate statistics over every stored record.
- ``/forcesave``: persist all warning data immediately (administrators only).

All replies are ephemeral. Each command carries default member permissions
for the Discord UI and re-checks them at invocation time.
"""

import discord
from discord import Option
from discord.ext import commands

from modwarden.ui import embeds
from modwarden.util.discord_utils import has_permissions
from modwarden.util.logger import get_logger
from modwarden.warnings.engine import WarningEngine
from modwarden.warnings.reporter import summarize

logger = get_logger("warnings_cog")

NO_PERMISSION = "You do not have permission to use this command."


class WarningsCog(commands.Cog):
    """Cog exposing the warning engine to moderators."""

    def __init__(self, discord_bot_instance: discord.Bot, engine: WarningEngine):
        self.discord_bot_instance = discord_bot_instance
        self.engine = engine
        logger.info("[WARNINGS] Warnings cog loaded")

    @commands.slash_command(name="warnings", description="View warnings for a user")
    @discord.default_permissions(moderate_members=True)
    async def warnings(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to check warnings for", required=True),  # type: ignore
    ):
        if not has_permissions(ctx, moderate_members=True):
            await ctx.respond(NO_PERMISSION, ephemeral=True)
            return

        record = self.engine.get_record(user.id)
        if record is None or record.active_count == 0:
            await ctx.respond(f"{user} has no warnings.", ephemeral=True)
            return

        await ctx.respond(embed=embeds.build_warning_history_embed(user, record), ephemeral=True)

    @commands.slash_command(name="clearwarnings", description="Clear all warnings for a user")
    @discord.default_permissions(moderate_members=True)
    async def clearwarnings(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to clear warnings for", required=True),  # type: ignore
    ):
        if not has_permissions(ctx, moderate_members=True):
            await ctx.respond(NO_PERMISSION, ephemeral=True)
            return

        record = self.engine.get_record(user.id)
        if record is None or record.active_count == 0:
            await ctx.respond(f"{user} has no warnings to clear.", ephemeral=True)
            return

        result = await self.engine.reset_record(user.id)
        logger.info("[WARNINGS] %s cleared warnings for %s", ctx.author, user.id)
        if result.ok:
            await ctx.respond(f"Cleared all warnings for {user}.", ephemeral=True)
        else:
            await ctx.respond(
                f"Cleared all warnings for {user}, but saving failed: {result.error}. The change will be retried.",
                ephemeral=True,
            )

    @commands.slash_command(name="modstats", description="View moderation statistics")
    @discord.default_permissions(moderate_members=True)
    async def modstats(self, ctx: discord.ApplicationContext):
        if not has_permissions(ctx, moderate_members=True):
            await ctx.respond(NO_PERMISSION, ephemeral=True)
            return

        summary = summarize(self.engine.store.read_all())
        await ctx.respond(embed=embeds.build_statistics_embed(summary), ephemeral=True)

    @commands.slash_command(name="forcesave", description="Force save all warning data")
    @discord.default_permissions(administrator=True)
    async def forcesave(self, ctx: discord.ApplicationContext):
        if not has_permissions(ctx, administrator=True):
            await ctx.respond(NO_PERMISSION, ephemeral=True)
            return

        await ctx.defer(ephemeral=True)
        result = await self.engine.force_save()
        if result.ok:
            await ctx.followup.send("Successfully saved all warning data.", ephemeral=True)
        else:
            await ctx.followup.send(f"Failed to save warning data: {result.error}", ephemeral=True)


def setup(discord_bot_instance: discord.Bot, engine: WarningEngine) -> None:
    """Register the WarningsCog with the bot."""
    discord_bot_instance.add_cog(WarningsCog(discord_bot_instance, engine))
