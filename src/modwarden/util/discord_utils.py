"""
discord_utils.py
================

Low-level Discord utility functions for Modwarden.

Stateless helpers for message deletion, permission checks, sanction
execution, mod-log channel discovery and log content formatting. Higher-level
components (the moderation pipeline and the cogs) decide *what* to do; these
helpers only know *how* to do it on Discord.
"""

import re
from typing import Iterable, Sequence

import discord

from modwarden.datatypes.warning_datatypes import SanctionKind
from modwarden.util.logger import get_logger

logger = get_logger("discord_utils")

SANCTION_REASON_PREFIX = "AI Moderation: "
BAN_DELETE_MESSAGE_SECONDS = 24 * 60 * 60
MOD_LOG_CHANNEL_NAME = "mod-logs"
MOD_LOG_CHANNEL_TOPIC = "Automatic moderation logs - Do not delete this channel"

_WORD_PATTERN = re.compile(r"(\w)(\w+)")


# --- Message helpers ---

async def safe_delete_message(message: discord.Message) -> bool:
    """
    Attempt to delete a Discord message, suppressing recoverable errors.

    Args:
        message (discord.Message): The message to delete.

    Returns:
        bool: True if deletion succeeded, False otherwise.
    """
    try:
        await message.delete()
        return True
    except discord.NotFound:
        return False
    except discord.Forbidden:
        logger.warning("No permission to delete message %s", message.id)
    except discord.HTTPException as exc:
        logger.error("Error deleting message %s: %s", message.id, exc)
    return False


def censor_content(content: str) -> str:
    """Keep the first character of every word and mask the rest with asterisks."""
    return _WORD_PATTERN.sub(lambda match: match.group(1) + "*" * len(match.group(2)), content)


def truncate_content(content: str, max_length: int) -> str:
    if len(content) <= max_length:
        return content
    return content[: max_length - 3] + "..."


def format_log_content(content: str, *, censor: bool, max_length: int) -> str:
    """Prepare message content for a mod-log embed field."""
    if censor:
        content = censor_content(content)
    return truncate_content(content, max_length)


def warning_notice(active_count: int) -> str:
    """Notice shown to a user in the warning DM, escalating with the count."""
    if active_count >= 7:
        return "**🚫 Final Warning:** Further violations will result in removal from the server."
    if active_count >= 5:
        return "**⛔ Caution:** Your account is at risk of temporary restrictions."
    if active_count >= 3:
        return "**⚠️ Warning:** Continued violations will result in moderation actions."
    return "Please be mindful of our community guidelines."


# --- Permission helpers ---

def has_permissions(application_context: discord.ApplicationContext, **required_permissions) -> bool:
    """
    Check if the command issuer has all specified permissions in the guild.

    Args:
        application_context (discord.ApplicationContext): The command context.
        **required_permissions: Permission flags to check.

    Returns:
        bool: True if all permissions are present, False otherwise.
    """
    if not isinstance(application_context.author, discord.Member):
        return False
    return all(getattr(application_context.author.guild_permissions, permission_name, False) for permission_name in required_permissions)


def has_ignored_role(member: discord.Member | discord.User, ignored_role_ids: Iterable[int]) -> bool:
    ignored = set(ignored_role_ids)
    if not ignored or not isinstance(member, discord.Member):
        return False
    return any(role.id in ignored for role in member.roles)


# --- Sanctions ---

async def apply_sanction(member: discord.Member, kind: SanctionKind, reason: str) -> bool:
    """
    Execute an escalation sanction against a guild member.

    Args:
        member (discord.Member): The member to sanction.
        kind (SanctionKind): Which tier to apply.
        reason (str): Violation reason; prefixed for the audit log.

    Returns:
        bool: True if Discord accepted the action, False otherwise.
    """
    full_reason = SANCTION_REASON_PREFIX + reason
    try:
        match kind:
            case SanctionKind.TIMEOUT_1H | SanctionKind.TIMEOUT_24H:
                await member.timeout_for(kind.timeout_duration, reason=full_reason)
            case SanctionKind.KICK:
                await member.kick(reason=full_reason)
            case SanctionKind.BAN:
                await member.ban(reason=full_reason, delete_message_seconds=BAN_DELETE_MESSAGE_SECONDS)
    except discord.Forbidden:
        logger.warning("[SANCTION] Missing permissions to apply %s to %s", kind.value, member.id)
        return False
    except discord.HTTPException as exc:
        logger.error("[SANCTION] Failed to apply %s to %s: %s", kind.value, member.id, exc)
        return False

    logger.info("[SANCTION] Applied %s to %s", kind.value, member.id)
    return True


# --- Mod-log channel ---

def find_mod_log_channel(guild: discord.Guild, channel_names: Sequence[str]) -> discord.TextChannel | None:
    """Return the first text channel whose name matches one of ``channel_names``, in that order."""
    by_name = {}
    for channel in guild.text_channels:
        by_name.setdefault(channel.name.lower(), channel)
    for name in channel_names:
        channel = by_name.get(name.lower())
        if channel is not None:
            return channel
    return None


async def create_mod_log_channel(
    guild: discord.Guild,
    bot_member: discord.abc.Snowflake,
    reason: str = "AI moderation logs",
) -> discord.TextChannel | None:
    """
    Create a private ``mod-logs`` channel visible to the bot and to moderator roles.

    Falls back to creating a plain channel and restricting it afterwards when
    the guild rejects the overwrites at creation time.

    Returns:
        discord.TextChannel | None: The new channel, or None if both attempts failed.
    """
    logger.info("[MOD LOG] Creating mod-logs channel in %s", guild.name)
    overwrites = {
        guild.default_role: discord.PermissionOverwrite(view_channel=False),
        bot_member: discord.PermissionOverwrite(view_channel=True, send_messages=True, embed_links=True),
    }
    for role in guild.roles:
        if role.permissions.administrator or role.permissions.moderate_members:
            overwrites[role] = discord.PermissionOverwrite(view_channel=True, send_messages=True, read_message_history=True)

    try:
        return await guild.create_text_channel(
            MOD_LOG_CHANNEL_NAME,
            overwrites=overwrites,
            topic=MOD_LOG_CHANNEL_TOPIC,
            reason=reason,
        )
    except discord.HTTPException as exc:
        logger.error("[MOD LOG] Error creating mod-logs channel in %s: %s", guild.name, exc)

    try:
        channel = await guild.create_text_channel(MOD_LOG_CHANNEL_NAME, reason=f"{reason} (fallback method)")
        await channel.set_permissions(guild.default_role, view_channel=False)
        await channel.set_permissions(bot_member, view_channel=True, send_messages=True)
        admin_role = next((role for role in guild.roles if role.permissions.administrator), None)
        if admin_role is not None:
            await channel.set_permissions(admin_role, view_channel=True)
    except discord.HTTPException as exc:
        logger.error("[MOD LOG] Failed to create fallback mod-logs channel in %s: %s", guild.name, exc)
        return None

    logger.info("[MOD LOG] Created fallback mod-logs channel in %s", guild.name)
    return channel
