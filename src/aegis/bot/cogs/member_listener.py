"""Member listener Cog for Aegis.

Hands the guild's autorole to every human member that joins.
"""

import discord
from discord.ext import commands

from aegis.bot.runtime import AegisRuntime
from aegis.configuration.guild_settings import GuildSettingsStore
from aegis.datatypes.discord_datatypes import GuildID
from aegis.util.discord_utils import top_role_position
from aegis.util.logger import get_logger

logger = get_logger("member_listener_cog")

AUTOROLE_REASON = "Automatic role assignment"


class MemberListenerCog(commands.Cog):
    """Cog responsible for the autorole on member join."""

    def __init__(self, discord_bot_instance, settings_store: GuildSettingsStore):
        self.discord_bot_instance = discord_bot_instance
        self.settings_store = settings_store
        logger.info("Member listener cog loaded")

    @commands.Cog.listener(name='on_member_join')
    async def on_member_join(self, member: discord.Member):
        """Give a new member the configured autorole, if any."""
        if member.bot:
            return
        guild = member.guild
        guild_id = GuildID(guild.id)
        try:
            role_id = await self.settings_store.get_autorole(guild_id)
            if role_id is None:
                return

            role = guild.get_role(role_id.to_int())
            if role is None:
                # the role was deleted since it was configured
                logger.warning("[AUTOROLE] Role %s not found in guild %s; clearing the setting", role_id, guild.name)
                await self.settings_store.set_autorole(guild_id, None)
                return

            bot_member = guild.me
            if (
                bot_member is None
                or not bot_member.guild_permissions.manage_roles
                or role.position >= top_role_position(bot_member)
            ):
                logger.error(
                    "[AUTOROLE] Cannot assign role %s in %s: missing Manage Roles or the role is too high",
                    role.name,
                    guild.name,
                )
                return

            await member.add_roles(role, reason=AUTOROLE_REASON)
            logger.debug("[AUTOROLE] Gave %s to %s in %s", role.name, member.id, guild.name)
        except Exception as e:
            logger.exception("[AUTOROLE] Error assigning role in %s: %s", guild.name, e)


def setup(discord_bot_instance, runtime: AegisRuntime):
    """Register the MemberListenerCog with the bot."""
    discord_bot_instance.add_cog(MemberListenerCog(discord_bot_instance, runtime.settings))
