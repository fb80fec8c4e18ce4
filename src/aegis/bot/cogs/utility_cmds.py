"""
Utility cog: informational commands open to every member.

- /userinfo: account age, join date and roles of a member (defaults to the
  invoker).
"""

import datetime

import discord
from discord import Option
from discord.ext import commands

from aegis.bot.runtime import AegisRuntime
from aegis.util.discord_utils import discord_timestamp, join_within_limit
from aegis.util.logger import get_logger

logger = get_logger("utility_cog")

EMBED_FIELD_LIMIT = 1024


def format_roles(member: discord.Member) -> str:
    """Mention every role of ``member`` except @everyone, highest first."""
    everyone_id = member.guild.id
    roles = [role for role in member.roles if role.id != everyone_id]
    roles.sort(key=lambda role: role.position, reverse=True)
    if not roles:
        return "None"
    return join_within_limit([role.mention for role in roles], limit=EMBED_FIELD_LIMIT, separator=", ")


def build_userinfo_embed(member: discord.Member) -> discord.Embed:
    color = member.color if member.color.value else discord.Color.blue()
    embed = discord.Embed(color=color, timestamp=datetime.datetime.now(datetime.timezone.utc))
    avatar_url = member.display_avatar.url
    embed.set_author(name=str(member), icon_url=avatar_url)
    embed.set_thumbnail(url=avatar_url)
    embed.add_field(name="User", value=f"{member.mention} ({member.id})", inline=False)
    embed.add_field(name="Account Created", value=discord_timestamp(member.created_at, "R"), inline=True)
    joined = discord_timestamp(member.joined_at, "R") if member.joined_at else "Unknown"
    embed.add_field(name="Joined Server", value=joined, inline=True)
    embed.add_field(name="Roles", value=format_roles(member), inline=False)
    embed.set_footer(text=f"ID: {member.id}")
    return embed


class UtilityCog(commands.Cog):
    """Member-facing informational commands."""

    def __init__(self, discord_bot_instance):
        self.discord_bot_instance = discord_bot_instance
        logger.info("Utility cog loaded")

    @commands.slash_command(name="userinfo", description="Displays information about a user.")
    async def userinfo(
        self,
        ctx: discord.ApplicationContext,
        target: Option(discord.Member, "The user to get info about (defaults to you)", required=False, default=None),  # type: ignore
    ) -> None:
        if not ctx.guild:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return
        member = target or ctx.author
        if not isinstance(member, discord.Member):
            await ctx.respond("That user isn't in this server.", ephemeral=True)
            return
        await ctx.respond(embed=build_userinfo_embed(member))


def setup(discord_bot_instance, runtime: AegisRuntime):
    """Add the utility cog to the bot; it needs no runtime services."""
    discord_bot_instance.add_cog(UtilityCog(discord_bot_instance))
