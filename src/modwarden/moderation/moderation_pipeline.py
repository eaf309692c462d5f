"""
Per-message moderation flow.

The pipeline connects the classifier to the warning engine and carries out
the engine's decision on Discord:

1. Skip bots, DMs, ignored channels and members with an ignored role.
2. Classify the message; stop unless it is flagged.
3. Delete the message and record the violation.
4. Post the moderation to the mod-log channel.
5. Notify the author by DM, falling back to a short-lived channel notice.
6. Apply the sanction the engine decided, if any, and log it.

A failed durable write is logged by the engine and does not stop the flow:
the warning is already counted in memory and the autosave timer retries.
"""

from __future__ import annotations

from typing import Optional

import discord

from modwarden.ai.classifier import MessageClassifier
from modwarden.bot.presence import RecentActivity
from modwarden.configuration.app_configuration import AppConfig
from modwarden.datatypes.moderation_datatypes import ClassificationResult
from modwarden.datatypes.warning_datatypes import ViolationOutcome
from modwarden.moderation.mod_log import ModLogRouter
from modwarden.ui import embeds
from modwarden.util import discord_utils
from modwarden.util.logger import get_logger
from modwarden.warnings.engine import WarningEngine

logger = get_logger("moderation_pipeline")

CHANNEL_NOTICE = "{mention}, your message was removed for violating community guidelines. Please check server rules."


class ModerationPipeline:
    """
    Run one message through classification, warning accrual and enforcement.

    Attributes:
        bot: The Discord bot instance for API access.
        activity: Rolling moderation counter shown in the bot's status.
    """

    def __init__(
        self,
        bot: discord.Bot,
        classifier: MessageClassifier,
        engine: WarningEngine,
        config: AppConfig,
        mod_log: ModLogRouter,
        activity: Optional[RecentActivity] = None,
    ) -> None:
        self._bot = bot
        self._classifier = classifier
        self._engine = engine
        self._moderation = config.moderation
        self._logging = config.logging
        self._appearance = config.appearance
        self._mod_log = mod_log
        self.activity = activity or RecentActivity()

    @property
    def bot(self) -> discord.Bot:
        return self._bot

    def should_moderate(self, message: discord.Message) -> bool:
        """Return False for messages the bot never inspects."""
        if message.author.bot or message.guild is None:
            return False
        if message.channel.id in self._moderation.ignored_channels:
            return False
        if discord_utils.has_ignored_role(message.author, self._moderation.ignored_roles):
            return False
        return True

    async def handle_message(self, message: discord.Message) -> ViolationOutcome | None:
        """Moderate ``message``; returns the engine outcome when it was flagged."""
        if not self.should_moderate(message):
            return None

        result = await self._classifier.classify(message.content)
        if not result.flagged:
            return None

        await discord_utils.safe_delete_message(message)
        self.activity.record()

        outcome = await self._engine.record_violation(message.author.id, result.reason, result.severity)
        logger.info(
            "[MODERATION] A message from %s was removed for violating community guidelines (%s)",
            message.author,
            result.reason,
        )

        await self._log_moderation(message, result, outcome)
        await self._notify_author(message, result, outcome)

        if outcome.sanction is not None and isinstance(message.author, discord.Member):
            applied = await discord_utils.apply_sanction(message.author, outcome.sanction, result.reason)
            await self._mod_log.post(
                message.guild,
                embeds.build_sanction_log_embed(
                    message.author,
                    outcome.sanction,
                    result.reason,
                    outcome.record.active_count,
                    bot_user=self._bot.user,
                    show_avatar=self._appearance.show_user_avatars_in_logs,
                    applied=applied,
                ),
            )

        return outcome

    async def _log_moderation(self, message: discord.Message, result: ClassificationResult, outcome: ViolationOutcome) -> None:
        content = None
        if self._logging.include_message_content and message.content:
            content = discord_utils.format_log_content(
                message.content,
                censor=self._logging.censor_message_content,
                max_length=self._logging.max_content_length,
            )

        await self._mod_log.post(
            message.guild,
            embeds.build_message_moderated_embed(
                message.author,
                message.channel.mention,
                result.reason,
                result.severity,
                outcome.record.active_count,
                sanction=outcome.sanction,
                content=content,
                show_avatar=self._appearance.show_user_avatars_in_logs,
            ),
        )

    async def _notify_author(self, message: discord.Message, result: ClassificationResult, outcome: ViolationOutcome) -> None:
        author = message.author
        try:
            await author.send(
                embed=embeds.build_warning_dm_embed(
                    message.channel.mention,
                    result.reason,
                    result.severity,
                    outcome.record.active_count,
                )
            )
            if outcome.sanction is not None:
                await author.send(embed=embeds.build_sanction_dm_embed(outcome.sanction))
            return
        except discord.HTTPException as exc:
            logger.info("[MODERATION] Could not send DM to %s: %s", author, exc)

        if not self._appearance.send_channel_notifications_when_dm_fails:
            return
        try:
            await message.channel.send(
                CHANNEL_NOTICE.format(mention=author.mention),
                delete_after=self._appearance.channel_notification_timeout,
            )
        except discord.HTTPException as exc:
            logger.error("[MODERATION] Could not send channel notification: %s", exc)
