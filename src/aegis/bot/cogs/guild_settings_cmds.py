"""
Settings cog: per-guild automod configuration.

All commands live under the ``/settings`` group and require the Administrator
permission. Responses are ephemeral to avoid leaking configuration in public
channels.

Changes are written straight to the settings store. The automod pipeline
keeps serving its cached copy of a guild's configuration until that entry
expires, so edits can take up to the cache TTL (five minutes by default) to
apply.
"""

import discord
from discord import Option
from discord.ext import commands

from aegis.bot.runtime import AegisRuntime
from aegis.configuration.guild_settings import GuildSettingsStore
from aegis.datatypes.automod_datatypes import normalize_word
from aegis.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from aegis.util.discord_utils import has_permissions, join_within_limit, top_role_position
from aegis.util.logger import get_logger

logger = get_logger("settings_cog")


class GuildSettingsCog(commands.Cog):
    """Guild-level automod settings."""

    settings = discord.SlashCommandGroup(
        "settings",
        "Configure bot settings for this server.",
        default_member_permissions=discord.Permissions(administrator=True),
    )

    def __init__(self, discord_bot_instance, settings_store: GuildSettingsStore):
        self.discord_bot_instance = discord_bot_instance
        self.settings_store = settings_store
        logger.info("Settings cog loaded")

    async def _check_admin(self, ctx: discord.ApplicationContext) -> bool:
        """Defer the response and verify the invoker may change settings."""
        await ctx.defer(ephemeral=True)
        if not ctx.guild_id:
            await ctx.send_followup("This command can only be used in a server.")
            return False
        if not has_permissions(ctx, administrator=True):
            await ctx.send_followup("You need the Administrator permission to configure Aegis.")
            return False
        return True

    async def _report_failure(self, ctx: discord.ApplicationContext, action: str) -> None:
        logger.exception("Failed to %s for guild %s", action, ctx.guild_id)
        try:
            await ctx.send_followup("An error occurred while updating the settings.")
        except discord.HTTPException:
            logger.error("Failed to send error response to user.")

    @settings.command(name="anti-invite", description="Enable or disable automod for Discord invites.")
    async def anti_invite(
        self,
        ctx: discord.ApplicationContext,
        enabled: Option(bool, "Set to true to block invites, false to allow.", required=True),  # type: ignore
    ) -> None:
        if not await self._check_admin(ctx):
            return
        try:
            await self.settings_store.set_block_invites(GuildID(ctx.guild_id), enabled)
        except Exception:
            await self._report_failure(ctx, "update anti-invite")
            return
        await ctx.send_followup(
            "✅ Discord invites will now be blocked." if enabled else "❌ Discord invites will now be allowed."
        )

    @settings.command(name="mass-mention", description="Set the limit for mentions in a single message (0 to disable).")
    async def mass_mention(
        self,
        ctx: discord.ApplicationContext,
        limit: Option(int, "Max users to mention (e.g., 5)", required=True, min_value=0),  # type: ignore
    ) -> None:
        if not await self._check_admin(ctx):
            return
        if limit < 0:
            await ctx.send_followup("The limit cannot be negative.")
            return
        try:
            await self.settings_store.set_mass_mention_limit(GuildID(ctx.guild_id), limit)
        except Exception:
            await self._report_failure(ctx, "update mass-mention limit")
            return
        if limit == 0:
            await ctx.send_followup("✅ Mass mention protection has been disabled.")
        else:
            await ctx.send_followup(f"✅ Messages with more than **{limit}** user mentions will be deleted.")

    @settings.command(name="log-channel", description="Set the channel where moderation actions are logged.")
    async def log_channel(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.TextChannel, "The text channel to send logs to", required=True),  # type: ignore
    ) -> None:
        if not await self._check_admin(ctx):
            return
        try:
            await self.settings_store.set_log_channel(GuildID(ctx.guild_id), ChannelID(channel.id))
        except Exception:
            await self._report_failure(ctx, "set log channel")
            return
        await ctx.send_followup(f"✅ Moderation log channel has been set to **#{channel.name}**.")

    @settings.command(name="blacklist-add", description="Add a word to the blacklist.")
    async def blacklist_add(
        self,
        ctx: discord.ApplicationContext,
        word: Option(str, "The word to blacklist", required=True),  # type: ignore
    ) -> None:
        if not await self._check_admin(ctx):
            return
        normalized = normalize_word(word)
        if not normalized:
            await ctx.send_followup("The word cannot be empty.")
            return
        try:
            added = await self.settings_store.add_banned_word(GuildID(ctx.guild_id), normalized)
        except Exception:
            await self._report_failure(ctx, "add banned word")
            return
        if added:
            await ctx.send_followup(f"✅ The word `{normalized}` has been added to the blacklist.")
        else:
            await ctx.send_followup(f"The word `{normalized}` is already on the blacklist.")

    @settings.command(name="blacklist-remove", description="Remove a word from the blacklist.")
    async def blacklist_remove(
        self,
        ctx: discord.ApplicationContext,
        word: Option(str, "The word to remove", required=True),  # type: ignore
    ) -> None:
        if not await self._check_admin(ctx):
            return
        normalized = normalize_word(word)
        try:
            removed = await self.settings_store.remove_banned_word(GuildID(ctx.guild_id), normalized)
        except Exception:
            await self._report_failure(ctx, "remove banned word")
            return
        if removed:
            await ctx.send_followup(f"✅ The word `{normalized}` has been removed from the blacklist.")
        else:
            await ctx.send_followup(f"The word `{normalized}` is not on the blacklist.")

    @settings.command(name="blacklist-list", description="Lists all words in the blacklist.")
    async def blacklist_list(self, ctx: discord.ApplicationContext) -> None:
        if not await self._check_admin(ctx):
            return
        try:
            words = await self.settings_store.list_banned_words(GuildID(ctx.guild_id))
        except Exception:
            await self._report_failure(ctx, "list banned words")
            return
        if not words:
            await ctx.send_followup("The blacklist is currently empty.")
            return
        embed = discord.Embed(
            title="Banned Words List",
            description=join_within_limit([f"`{word}`" for word in words], separator=", "),
            color=discord.Color.blue(),
        )
        await ctx.send_followup(embed=embed)

    @settings.command(name="autorole", description="Set a role to automatically assign to new members.")
    async def autorole(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "The role to assign. (Omit to disable autorole)", required=False, default=None),  # type: ignore
    ) -> None:
        if not await self._check_admin(ctx):
            return
        guild_id = GuildID(ctx.guild_id)

        if role is None:
            try:
                await self.settings_store.set_autorole(guild_id, None)
            except Exception:
                await self._report_failure(ctx, "disable autorole")
                return
            await ctx.send_followup("✅ Autorole has been disabled. New members will not be assigned a role.")
            return

        if role.id == ctx.guild_id:
            await ctx.send_followup("You cannot set the autorole to @everyone.")
            return
        bot_member = ctx.guild.me if ctx.guild else None
        if bot_member is None or role.position >= top_role_position(bot_member):
            await ctx.send_followup(
                f"❌ I cannot assign the **{role.name}** role because it is higher than or equal to my highest role."
            )
            return

        try:
            await self.settings_store.set_autorole(guild_id, RoleID(role.id))
        except Exception:
            await self._report_failure(ctx, "set autorole")
            return
        await ctx.send_followup(f"✅ New members will now automatically get the **{role.name}** role.")


def setup(discord_bot_instance, runtime: AegisRuntime):
    """Add the settings cog to the supplied Discord bot instance."""
    discord_bot_instance.add_cog(GuildSettingsCog(discord_bot_instance, runtime.settings))
