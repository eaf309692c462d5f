"""Message listener Cog for Modwarden.

Feeds every guild message into the :class:`ModerationPipeline`.
"""

import discord
from discord.ext import commands

from modwarden.moderation.moderation_pipeline import ModerationPipeline
from modwarden.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for handling message creation events."""

    def __init__(self, discord_bot_instance: discord.Bot, pipeline: ModerationPipeline):
        self.bot = discord_bot_instance
        self.pipeline = pipeline
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        """Run the message through moderation; errors are logged, never raised into the gateway."""
        try:
            await self.pipeline.handle_message(message)
        except discord.DiscordException as exc:
            logger.error("[MESSAGE LISTENER] Error moderating message %s: %s", message.id, exc)
        except Exception:
            logger.exception("[MESSAGE LISTENER] Unexpected error moderating message %s", message.id)


def setup(discord_bot_instance: discord.Bot, pipeline: ModerationPipeline) -> None:
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, pipeline))
