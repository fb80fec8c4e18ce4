"""
Moderation cog: manual moderation and case history commands.

Commands
- /mute: time out a member for a parsed duration (max 28 days).
- /warnings: list a user's warnings, newest first, numbered from 1.
- /editwarn, /delwarn: change or remove a warning by its /warnings number.
- /caselogs: page through the server's full moderation history.

Design notes and expectations
- Every command requires the Moderate Members permission and replies
  ephemerally.
- /mute performs the standard safety checks (target is a member, not the
  invoker, not the bot, not already timed out, outranked by the invoker and
  by the bot) before touching Discord.
- Every mute and warning edit is recorded in the case log and posted to the
  guild's moderation-log channel when one is configured.
"""

import datetime
import math
from typing import Optional, Sequence

import discord
from discord import Option
from discord.ext import commands

from aegis.bot.runtime import AegisRuntime
from aegis.database.case_log import CASES_PER_PAGE, ModerationCaseLog
from aegis.datatypes.action_datatypes import CaseKind, ModerationCaseRecord
from aegis.datatypes.discord_datatypes import GuildID, UserID
from aegis.moderation.mod_log import ModLogNotifier
from aegis.util.discord_utils import (
    bot_can_moderate,
    discord_timestamp,
    has_permissions,
    join_within_limit,
    outranks,
)
from aegis.util.duration import DURATION_HELP, MAX_TIMEOUT_MS, parse_duration
from aegis.util.logger import get_logger

logger = get_logger("moderation_cog")

DEFAULT_REASON = "No reason provided"
WARNINGS_COLOR = 0xFFCC00
CASELOGS_COLOR = 0x5865F2


def total_pages(total_cases: int, per_page: int = CASES_PER_PAGE) -> int:
    return math.ceil(total_cases / per_page) if total_cases > 0 else 0


def select_case(records: Sequence[ModerationCaseRecord], case_number: int) -> Optional[ModerationCaseRecord]:
    """Pick a case by its 1-based position in a newest-first listing."""
    if case_number < 1 or case_number > len(records):
        return None
    return records[case_number - 1]


def format_warning_history(records: Sequence[ModerationCaseRecord]) -> str:
    blocks = []
    for number, record in enumerate(records, start=1):
        block = f"**Case {number}** - {discord_timestamp(record.created_at)}\n"
        block += f"**Moderator:** {record.moderator_tag}\n"
        block += f"**Reason:** {record.reason}\n"
        if record.edited_by:
            block += f"*Edited by {record.edited_by}*\n"
        blocks.append(block + "\n")
    return join_within_limit(blocks)


def format_case_page(records: Sequence[ModerationCaseRecord]) -> str:
    blocks = []
    for record in records:
        block = f"**Action:** {record.kind.value.upper()} {discord_timestamp(record.created_at, 'R')}\n"
        block += f"**Target:** {record.target_tag} ({record.target_id})\n"
        block += f"**Moderator:** {record.moderator_tag}\n"
        block += f"**Reason:** {record.reason}\n\n"
        blocks.append(block)
    return join_within_limit(blocks)


class ModerationActionCog(commands.Cog):
    """Cog containing moderation-related slash commands.

    Each command defers its response, runs permission and validation checks,
    then talks to the case log and Discord directly.
    """

    def __init__(self, discord_bot_instance, case_log: ModerationCaseLog, mod_log: ModLogNotifier):
        self.discord_bot_instance = discord_bot_instance
        self.case_log = case_log
        self.mod_log = mod_log
        logger.info("Moderation cog loaded")

    async def _check_moderator(self, ctx: discord.ApplicationContext) -> bool:
        """Defer the response and verify the invoker can moderate members."""
        await ctx.defer(ephemeral=True)
        if not ctx.guild:
            await ctx.send_followup("This command can only be used in a server.")
            return False
        if not has_permissions(ctx, moderate_members=True):
            await ctx.send_followup("You do not have permission to use this command.")
            return False
        return True

    async def _validate_mute_target(self, ctx: discord.ApplicationContext, target) -> Optional[str]:
        """Return an error message if ``target`` cannot be muted, else None."""
        if not isinstance(target, discord.Member):
            return "That user isn't in this server."
        if target.id == ctx.author.id:
            return "You can't mute yourself!"
        bot_user = getattr(self.discord_bot_instance, "user", None)
        if bot_user is not None and target.id == bot_user.id:
            return "You can't mute me!"
        if target.timed_out:
            return "This member is already muted."
        if ctx.author.id != ctx.guild.owner_id and not outranks(ctx.author, target):
            return "You can't mute a member with an equal or higher role than you."
        if not bot_can_moderate(ctx.guild, target):
            return "I don't have permission to mute that member. They may have a higher role than me."
        return None

    def _build_record(
        self,
        ctx: discord.ApplicationContext,
        kind: CaseKind,
        target: discord.abc.User,
        reason: str,
        duration_ms: Optional[int] = None,
    ) -> ModerationCaseRecord:
        return ModerationCaseRecord(
            guild_id=GuildID(ctx.guild.id),
            kind=kind,
            target_id=UserID(target.id),
            target_tag=str(target),
            moderator_id=UserID(ctx.author.id),
            moderator_tag=str(ctx.author),
            reason=reason,
            duration_ms=duration_ms,
        )

    @commands.slash_command(name="mute", description="Times out a member, preventing them from talking.")
    async def mute(
        self,
        ctx: discord.ApplicationContext,
        target: Option(discord.Member, "The member to mute", required=True),  # type: ignore
        duration: Option(str, "Duration of the mute (e.g., 10m, 1h, 7d)", required=True),  # type: ignore
        reason: Option(str, "The reason for muting the member", default=DEFAULT_REASON),  # type: ignore
    ) -> None:
        """Time out a member for a moderator-supplied duration."""
        if not await self._check_moderator(ctx):
            return

        error = await self._validate_mute_target(ctx, target)
        if error:
            await ctx.send_followup(error)
            return

        duration_ms = parse_duration(duration)
        if duration_ms is None:
            await ctx.send_followup(f"Invalid duration format. {DURATION_HELP}")
            return
        if duration_ms > MAX_TIMEOUT_MS:
            await ctx.send_followup("The timeout duration cannot be longer than 28 days.")
            return

        try:
            await target.send(
                f'You have been muted in **{ctx.guild.name}** for "{duration}" for the following reason: {reason}'
            )
        except discord.HTTPException:
            logger.debug("Could not DM %s about their mute", target.id)

        try:
            await target.timeout_for(datetime.timedelta(milliseconds=duration_ms), reason=reason)
        except Exception as e:
            logger.exception("Error muting %s in guild %s: %s", target.id, ctx.guild.id, e)
            await ctx.send_followup("An unexpected error occurred while trying to mute the member.")
            return

        record = self._build_record(ctx, CaseKind.MUTE, target, reason, duration_ms)
        content = "Mute Successful ✅"
        try:
            await self.case_log.append(record)
        except Exception as e:
            # the timeout already applied; only the history entry is missing
            logger.exception("Failed to record mute case for %s in guild %s: %s", target.id, ctx.guild.id, e)
            content = "Mute Successful ✅ (the case could not be saved to the moderation history)"

        embed = discord.Embed(
            title="User has been muted",
            description=(
                f'User: **{target}** has been muted in **{ctx.guild.name}** for "{duration}" '
                f"for the following reason:\n\n{reason}"
            ),
            color=discord.Color.blue(),
            timestamp=record.created_at,
        )
        await ctx.send_followup(content, embed=embed)
        await self.mod_log.notify(ctx.guild, record, "Mute", "Blue")

    @commands.slash_command(name="warnings", description="Checks a user's warning history.")
    async def warnings(
        self,
        ctx: discord.ApplicationContext,
        target: Option(discord.User, "The user to check warnings for", required=True),  # type: ignore
    ) -> None:
        if not await self._check_moderator(ctx):
            return
        try:
            records = await self.case_log.list_for_user(GuildID(ctx.guild.id), UserID(target.id))
        except Exception as e:
            logger.exception("Error fetching warnings: %s", e)
            await ctx.send_followup("An error occurred while fetching the user's warnings.")
            return

        if not records:
            await ctx.send_followup(f"No warnings found for **{target}**.")
            return

        embed = discord.Embed(
            description=format_warning_history(records),
            color=WARNINGS_COLOR,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
        )
        embed.set_author(name=f"Warning History for {target}", icon_url=target.display_avatar.url)
        embed.set_footer(text=f"Total Warnings: {len(records)}")
        await ctx.send_followup(embed=embed)

    @commands.slash_command(name="editwarn", description="Edits the reason for a specific warning.")
    async def editwarn(
        self,
        ctx: discord.ApplicationContext,
        target: Option(discord.User, "The user whose warning you want to edit", required=True),  # type: ignore
        case: Option(int, "The case number of the warning to edit (from /warnings)", required=True, min_value=1),  # type: ignore
        new_reason: Option(str, "The new reason for the warning", required=True),  # type: ignore
    ) -> None:
        if not await self._check_moderator(ctx):
            return
        try:
            records = await self.case_log.list_for_user(GuildID(ctx.guild.id), UserID(target.id))
            if not records:
                await ctx.send_followup(f"No warnings found for **{target}**.")
                return
            record = select_case(records, case)
            if record is None:
                await ctx.send_followup(
                    f"Invalid case number. **{target}** only has {len(records)} warning(s)."
                )
                return
            await self.case_log.edit_reason(record.case_id, new_reason, str(ctx.author))
        except Exception as e:
            logger.exception("Error editing warning: %s", e)
            await ctx.send_followup("An error occurred while trying to edit the warning.")
            return

        await ctx.send_followup(
            f"Successfully edited Case #{case} for **{target}**.\n"
            f'> **Old Reason:** "{record.reason}"\n'
            f'> **New Reason:** "{new_reason}"'
        )
        log_record = self._build_record(
            ctx,
            record.kind,
            target,
            f"Case #{case} edited.\n**Old:** {record.reason}\n**New:** {new_reason}",
        )
        log_record.case_id = record.case_id
        await self.mod_log.notify(ctx.guild, log_record, "Warning Edit", "Blurple")

    @commands.slash_command(name="delwarn", description="Deletes a specific warning for a member.")
    async def delwarn(
        self,
        ctx: discord.ApplicationContext,
        target: Option(discord.User, "The user whose warning you want to delete", required=True),  # type: ignore
        case: Option(int, "The case number of the warning to delete (from /warnings)", required=True, min_value=1),  # type: ignore
    ) -> None:
        if not await self._check_moderator(ctx):
            return
        try:
            records = await self.case_log.list_for_user(GuildID(ctx.guild.id), UserID(target.id))
            if not records:
                await ctx.send_followup(f"No warnings found for **{target}**.")
                return
            record = select_case(records, case)
            if record is None:
                await ctx.send_followup(
                    f"Invalid case number. **{target}** only has {len(records)} warning(s)."
                )
                return
            await self.case_log.delete(record.case_id)
        except Exception as e:
            logger.exception("Error deleting warning: %s", e)
            await ctx.send_followup("An error occurred while trying to delete the warning.")
            return

        await ctx.send_followup(
            f"Successfully deleted Case #{case} for **{target}**.\n> Reason was: \"{record.reason}\""
        )

    @commands.slash_command(name="caselogs", description="Checks the server's complete moderation history.")
    async def caselogs(
        self,
        ctx: discord.ApplicationContext,
        page: Option(int, "The page number to view", required=False, default=1, min_value=1),  # type: ignore
    ) -> None:
        if not await self._check_moderator(ctx):
            return
        guild_id = GuildID(ctx.guild.id)
        try:
            total_cases = await self.case_log.count(guild_id)
            if total_cases == 0:
                await ctx.send_followup("No moderation history found for this server.")
                return
            pages = total_pages(total_cases)
            if page > pages:
                await ctx.send_followup(f"Invalid page. This server only has {pages} page(s) of logs.")
                return
            records = await self.case_log.page(guild_id, page)
        except Exception as e:
            logger.exception("Error fetching mod history: %s", e)
            await ctx.send_followup("An error occurred while fetching the server's history.")
            return

        embed = discord.Embed(
            description=format_case_page(records),
            color=CASELOGS_COLOR,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
        )
        author_name = f"Server Moderation History - Page {page}/{pages}"
        if ctx.guild.icon:
            embed.set_author(name=author_name, icon_url=ctx.guild.icon.url)
        else:
            embed.set_author(name=author_name)
        embed.set_footer(text=f"Total Cases: {total_cases}")
        await ctx.send_followup(embed=embed)


def setup(discord_bot_instance, runtime: AegisRuntime):
    """Cog setup entry point.

    This function is used by the bot loader to register the cog with the
    running bot instance.
    """
    discord_bot_instance.add_cog(ModerationActionCog(discord_bot_instance, runtime.case_log, runtime.mod_log))
