"""
Embed builders for moderation notifications, mod-log entries and commands.

Every function here is pure: it takes already-resolved data and returns a
``discord.Embed``. Sending is the caller's job.
"""

from __future__ import annotations

import datetime
from typing import Optional

import discord

from modwarden.datatypes.warning_datatypes import (
    ModerationSummary,
    SanctionKind,
    Severity,
    UserWarningRecord,
    utcnow,
)
from modwarden.util import discord_utils

FOOTER_TEXT = "AI Moderation System"
RECENT_ENTRY_LIMIT = 10

COLOR_ERROR = discord.Color(0xFF0000)
COLOR_WARNING = discord.Color(0xFF9900)
COLOR_INFO = discord.Color(0x0099FF)
COLOR_SUCCESS = discord.Color(0x00CC66)

SEVERITY_COLORS = {
    Severity.LOW: discord.Color(0xFFCC00),
    Severity.MEDIUM: discord.Color(0xFF6600),
    Severity.HIGH: discord.Color(0xFF0000),
}

SEVERITY_EMOJIS = {
    Severity.LOW: "🟡",
    Severity.MEDIUM: "🟠",
    Severity.HIGH: "🔴",
}

SANCTION_EMOJIS = {
    SanctionKind.TIMEOUT_1H: "⏱️",
    SanctionKind.TIMEOUT_24H: "⏱️",
    SanctionKind.KICK: "👢",
    SanctionKind.BAN: "🔨",
}

SANCTION_COLORS = {
    SanctionKind.TIMEOUT_1H: SEVERITY_COLORS[Severity.LOW],
    SanctionKind.TIMEOUT_24H: COLOR_WARNING,
    SanctionKind.KICK: SEVERITY_COLORS[Severity.MEDIUM],
    SanctionKind.BAN: COLOR_ERROR,
}

SANCTION_DESCRIPTIONS = {
    SanctionKind.TIMEOUT_1H: "**Timeout (1 hour)** - You have been temporarily muted for 1 hour",
    SanctionKind.TIMEOUT_24H: "**Timeout (24 hours)** - You have been temporarily muted for 24 hours",
    SanctionKind.KICK: "**Kicked** - You have been removed from the server but may rejoin with an invite",
    SanctionKind.BAN: "**Banned** - You have been permanently removed from the server",
}


def describe_sanction(kind: SanctionKind) -> str:
    return f"{SANCTION_EMOJIS[kind]} {SANCTION_DESCRIPTIONS[kind]}"


def relative_timestamp(moment: Optional[datetime.datetime]) -> str:
    """Discord relative timestamp markup, or ``unknown`` when the time is missing."""
    if moment is None:
        return "unknown"
    return f"<t:{int(moment.timestamp())}:R>"


def _settings_summary(sensitivity: float, strict_mode: bool) -> str:
    return f"Sensitivity: {round(sensitivity * 10, 1):g}/10\nStrict Mode: {'Enabled' if strict_mode else 'Disabled'}"


# ---------------- User DMs ----------------

def build_warning_dm_embed(
    channel_mention: str,
    reason: str,
    severity: Severity,
    active_count: int,
) -> discord.Embed:
    """DM telling a user their message was removed."""
    emoji = SEVERITY_EMOJIS.get(severity, "⚠️")
    embed = discord.Embed(
        title=f"{emoji} Your Message Was Moderated",
        description=f"Your message in {channel_mention} was removed for violating our community guidelines.",
        color=SEVERITY_COLORS.get(severity, COLOR_WARNING),
        timestamp=utcnow(),
    )
    embed.add_field(name="📝 Reason", value=f"`{reason}`", inline=False)
    embed.add_field(name=f"{emoji} Severity", value=f"`{severity.value.upper()}`", inline=True)
    embed.add_field(name="🔄 Warning Count", value=f"`{active_count}`", inline=True)
    embed.add_field(name="⚠️ Notice", value=discord_utils.warning_notice(active_count), inline=False)
    embed.set_footer(text="AI-powered moderation")
    return embed


def build_sanction_dm_embed(kind: SanctionKind) -> discord.Embed:
    embed = discord.Embed(
        title="🛑 Moderation Action Applied",
        description="Due to multiple violations, the following action has been taken:",
        color=COLOR_ERROR,
        timestamp=utcnow(),
    )
    embed.add_field(name="🔨 Action", value=describe_sanction(kind), inline=False)
    embed.set_footer(text="This action was applied automatically based on your warning history")
    return embed


# ---------------- Mod-log channel ----------------

def build_message_moderated_embed(
    member: discord.Member,
    channel_mention: str,
    reason: str,
    severity: Severity,
    active_count: int,
    sanction: Optional[SanctionKind] = None,
    content: Optional[str] = None,
    show_avatar: bool = True,
) -> discord.Embed:
    """Mod-log entry for a deleted message. ``content`` is expected pre-formatted."""
    embed = discord.Embed(
        title="🛡️ Message Moderated",
        description=f"A message by {member} was removed from {channel_mention}.",
        color=SEVERITY_COLORS.get(severity, COLOR_WARNING),
        timestamp=utcnow(),
    )
    embed.add_field(name="👤 User", value=f"{member} ({member.mention})", inline=True)
    embed.add_field(name="📊 Warning Count", value=str(active_count), inline=True)
    embed.add_field(name="⚠️ Severity", value=severity.value.upper(), inline=True)
    embed.add_field(name="📝 Reason", value=reason, inline=False)
    if content:
        embed.add_field(name="📋 Message Content", value=content, inline=False)
    if sanction is not None:
        embed.add_field(name="🔨 Recommended Action", value=describe_sanction(sanction), inline=False)
    if show_avatar and member.avatar is not None:
        embed.set_thumbnail(url=member.avatar.url)
    embed.set_footer(text=f"AI Moderation | User ID: {member.id}")
    return embed


def build_sanction_log_embed(
    member: discord.Member,
    kind: SanctionKind,
    reason: str,
    active_count: int,
    bot_user: Optional[discord.ClientUser] = None,
    show_avatar: bool = True,
    applied: bool = True,
) -> discord.Embed:
    """Mod-log entry for an escalation sanction, including account age details."""
    now = utcnow()
    label = kind.label.upper()
    embed = discord.Embed(
        title=f"{SANCTION_EMOJIS[kind]} Moderation Action: {label}",
        description=f"Action taken against {member} ({member.id})",
        color=SANCTION_COLORS[kind],
        timestamp=now,
    )
    embed.add_field(name="👤 User", value=f"{member} ({member.mention})", inline=False)
    embed.add_field(name="🔨 Action", value=label if applied else f"{label} (failed, check bot permissions)", inline=True)
    embed.add_field(name="⚠️ Warnings", value=str(active_count), inline=True)
    embed.add_field(name="📝 Reason", value=discord_utils.SANCTION_REASON_PREFIX + reason, inline=False)

    account_age = (now - member.created_at).days
    account_info = f"Account Age: {account_age} days"
    if member.joined_at is not None:
        account_info += f"\nServer Member: {(now - member.joined_at).days} days"
    embed.add_field(name="🕒 Account Info", value=account_info, inline=False)

    if show_avatar and member.avatar is not None:
        embed.set_thumbnail(url=member.avatar.url)
    embed.set_footer(text=f"Moderator: {bot_user or 'Modwarden'} | AI Moderation")
    return embed


def build_statistics_embed(
    summary: ModerationSummary,
    *,
    title: str = "Moderation Statistics",
    description: Optional[str] = None,
    footer: str = FOOTER_TEXT,
) -> discord.Embed:
    embed = discord.Embed(title=title, description=description, color=COLOR_INFO, timestamp=utcnow())
    embed.add_field(name="Total Users with Warnings", value=str(summary.active_users), inline=True)
    embed.add_field(name="Total Warnings Issued", value=str(summary.total_active_warnings), inline=True)
    embed.add_field(
        name="Actions Taken",
        value="\n".join(
            [
                f"Timeouts (1h): {summary.count(SanctionKind.TIMEOUT_1H)}",
                f"Timeouts (24h): {summary.count(SanctionKind.TIMEOUT_24H)}",
                f"Kicks: {summary.count(SanctionKind.KICK)}",
                f"Bans: {summary.count(SanctionKind.BAN)}",
            ]
        ),
        inline=False,
    )
    embed.set_footer(text=footer)
    return embed


def build_activation_embed(
    sensitivity: float,
    strict_mode: bool,
    *,
    title: str = "🔄 Moderation System Initialized",
    description: str = "AI moderation system is now active in this server.",
    bot_user: Optional[discord.ClientUser] = None,
) -> discord.Embed:
    """Posted into a freshly created or discovered mod-log channel."""
    embed = discord.Embed(title=title, description=description, color=COLOR_INFO, timestamp=utcnow())
    embed.add_field(name="⚙️ Settings", value=_settings_summary(sensitivity, strict_mode), inline=False)
    embed.add_field(
        name="📊 Monitoring",
        value="The bot will automatically moderate messages for inappropriate content.",
        inline=False,
    )
    embed.set_footer(text=f"{bot_user or 'Modwarden'} | AI Moderation")
    return embed


# ---------------- Commands ----------------

def build_warning_history_embed(user: discord.User | discord.Member, record: UserWarningRecord) -> discord.Embed:
    """`/warnings` output: totals, up to ten most recent entries, and the sanction log."""
    embed = discord.Embed(title=f"Warning History for {user}", color=COLOR_INFO, timestamp=utcnow())
    embed.set_thumbnail(url=user.display_avatar.url)
    embed.add_field(name="Total Warnings", value=str(record.active_count), inline=True)
    embed.add_field(name="Last Warning", value=relative_timestamp(record.last_warning_at), inline=True)

    recent = list(reversed(record.entries[-RECENT_ENTRY_LIMIT:]))
    if recent:
        lines = []
        for index, entry in enumerate(recent, start=1):
            lines.append(
                f"**{index}.** {relative_timestamp(entry.occurred_at)}\n"
                f"⟶ Reason: {entry.reason}\n"
                f"⟶ Severity: {entry.severity.value}"
            )
        embed.add_field(name="Recent Warnings", value=discord_utils.truncate_content("\n\n".join(lines), 1024), inline=False)

    if record.sanctions_applied:
        lines = [
            f"**{index}.** {sanction.kind.label} - {relative_timestamp(sanction.applied_at)}"
            for index, sanction in enumerate(record.sanctions_applied, start=1)
        ]
        embed.add_field(name="Actions Taken", value=discord_utils.truncate_content("\n".join(lines), 1024), inline=False)

    embed.set_footer(text=FOOTER_TEXT)
    return embed
