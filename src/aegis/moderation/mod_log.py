"""
Moderation-log notifications.

Posts an embed describing a moderation case to the guild's configured log
channel. Guilds without a log channel are skipped silently. Sending problems
are logged and never raised, so a broken log channel cannot interrupt a
moderation action.
"""

from __future__ import annotations

import discord

from aegis.configuration.guild_settings import GuildSettingsStore
from aegis.datatypes.action_datatypes import ModerationCaseRecord
from aegis.datatypes.discord_datatypes import GuildID
from aegis.util.duration import format_duration
from aegis.util.logger import get_logger

logger = get_logger("mod_log")

LOG_COLORS = {
    "Red": discord.Color.red,
    "DarkRed": discord.Color.dark_red,
    "DarkOrange": discord.Color.dark_orange,
    "DarkPurple": discord.Color.dark_purple,
    "Blue": discord.Color.blue,
    "Blurple": discord.Color.blurple,
}


def resolve_color(color_tag: str) -> discord.Color:
    """Map a colour tag such as ``"DarkRed"`` onto a :class:`discord.Color`."""
    factory = LOG_COLORS.get(color_tag)
    return factory() if factory else discord.Color.light_grey()


def build_mod_log_embed(record: ModerationCaseRecord, action_label: str, color_tag: str) -> discord.Embed:
    """Build the embed summarising one moderation case."""
    embed = discord.Embed(
        title=action_label,
        color=resolve_color(color_tag),
        timestamp=record.created_at,
    )
    embed.add_field(name="User", value=f"<@{record.target_id}> (`{record.target_id}`)", inline=True)
    embed.add_field(name="Moderator", value=f"{record.moderator_tag} (`{record.moderator_id}`)", inline=True)
    embed.add_field(name="Reason", value=record.reason or "No reason provided", inline=False)
    if record.duration_ms:
        embed.add_field(name="Duration", value=format_duration(record.duration_ms), inline=False)
    if record.case_id is not None:
        embed.set_footer(text=f"Case #{record.case_id}")
    return embed


class ModLogNotifier:
    """Sends moderation-log embeds to each guild's configured channel."""

    def __init__(self, settings_store: GuildSettingsStore):
        self._settings = settings_store

    async def _resolve_channel(self, guild: discord.Guild) -> discord.abc.Messageable | None:
        channel_id = await self._settings.get_log_channel(GuildID.from_guild(guild))
        if channel_id is None:
            return None
        channel = guild.get_channel(channel_id.to_int())
        if channel is None:
            channel = await guild.fetch_channel(channel_id.to_int())
        return channel

    async def notify(
        self,
        guild: discord.Guild,
        record: ModerationCaseRecord,
        action_label: str,
        color_tag: str,
    ) -> bool:
        """
        Post the case to the guild's log channel.

        Returns:
            True if an embed was sent, False if no channel is configured or sending failed.
        """
        try:
            channel = await self._resolve_channel(guild)
            if channel is None:
                logger.debug("[MOD LOG] No log channel configured for guild %s", guild.id)
                return False
            await channel.send(embed=build_mod_log_embed(record, action_label, color_tag))
            return True
        except discord.Forbidden:
            logger.warning("[MOD LOG] Missing permission to post in the log channel of guild %s", guild.id)
        except discord.HTTPException as exc:
            logger.warning("[MOD LOG] Failed to post mod log in guild %s: %s", guild.id, exc)
        except Exception:
            logger.exception("[MOD LOG] Unexpected error posting mod log in guild %s", guild.id)
        return False
