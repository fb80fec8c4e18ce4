"""
Side effects of automod decisions.

Two action shapes exist:

- **timeout** (spam limiter tripped): time the member out, post a short-lived
  notice in the channel, record a ``timeout`` case and notify the mod log.
- **delete and warn** (content violation): delete the message, post a
  short-lived notice citing the reason, record an ``auto-warn`` case and
  notify the mod log.

Nothing here raises into the message pipeline and nothing is retried. A
failure to apply the timeout or delete the message abandons the rest of the
action.
"""

from __future__ import annotations

import datetime

import discord

from aegis.database.case_log import ModerationCaseLog
from aegis.datatypes.action_datatypes import CaseKind, ModerationCaseRecord
from aegis.datatypes.automod_datatypes import PolicyDecision, ViolationKind
from aegis.datatypes.discord_datatypes import GuildID, UserID
from aegis.moderation.mod_log import ModLogNotifier
from aegis.util.logger import get_logger

logger = get_logger("action_executor")

SPAM_TIMEOUT_MS = 5 * 60 * 1000
NOTICE_DELETE_AFTER_SECONDS = 5.0
SPAM_TIMEOUT_REASON = "Automatic spam detection."


class ModerationActionExecutor:
    """
    Applies automod decisions to Discord.

    Args:
        case_log: Where case records are appended.
        mod_log: Notifier for the guild's moderation-log channel.
        timeout_ms: Length of the spam timeout.
        notice_delete_after: Seconds before in-channel notices are removed.
    """

    def __init__(
        self,
        case_log: ModerationCaseLog,
        mod_log: ModLogNotifier,
        timeout_ms: int = SPAM_TIMEOUT_MS,
        notice_delete_after: float = NOTICE_DELETE_AFTER_SECONDS,
    ) -> None:
        self.case_log = case_log
        self.mod_log = mod_log
        self.timeout_ms = timeout_ms
        self.notice_delete_after = notice_delete_after

    async def execute(self, decision: PolicyDecision, message: discord.Message) -> bool:
        """Dispatch a decision to the matching action. Returns True if it completed."""
        if decision.kind is ViolationKind.NONE:
            return True
        if decision.kind is ViolationKind.RATE:
            return await self.timeout_member(decision, message)
        return await self.delete_and_warn(decision, message)

    async def _post_notice(self, channel: discord.abc.Messageable, text: str) -> None:
        try:
            await channel.send(text, delete_after=self.notice_delete_after)
        except discord.HTTPException as exc:
            logger.warning("[ACTION EXECUTOR] Failed to post automod notice: %s", exc)

    def _build_record(
        self,
        message: discord.Message,
        kind: CaseKind,
        reason: str,
        duration_ms: int | None = None,
    ) -> ModerationCaseRecord:
        guild = message.guild
        bot_member = guild.me
        return ModerationCaseRecord(
            guild_id=GuildID(guild.id),
            kind=kind,
            target_id=UserID(message.author.id),
            target_tag=str(message.author),
            moderator_id=UserID(bot_member.id),
            moderator_tag=str(bot_member),
            reason=reason,
            duration_ms=duration_ms,
        )

    async def timeout_member(self, decision: PolicyDecision, message: discord.Message) -> bool:
        """Time out a member who tripped the spam limiter."""
        member = message.author
        if not isinstance(member, discord.Member):
            logger.warning("[ACTION EXECUTOR] Cannot time out non-member author %s", member.id)
            return False
        if member.timed_out:
            logger.debug("[ACTION EXECUTOR] Member %s is already timed out; skipping spam timeout", member.id)
            return False

        try:
            await member.timeout_for(
                datetime.timedelta(milliseconds=self.timeout_ms),
                reason=SPAM_TIMEOUT_REASON,
            )
        except discord.Forbidden:
            logger.warning(
                "[ACTION EXECUTOR] Missing permission or role hierarchy to time out %s in guild %s",
                member.id,
                message.guild.id,
            )
            return False
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to time out %s: %s", member.id, exc)
            return False

        await self._post_notice(message.channel, f"{member.mention} has been automatically muted for spamming.")

        try:
            record = self._build_record(message, CaseKind.TIMEOUT, decision.reason, self.timeout_ms)
            await self.case_log.append(record)
        except Exception:
            logger.exception("[ACTION EXECUTOR] Failed to record spam timeout for %s", member.id)
            return False

        await self.mod_log.notify(message.guild, record, decision.log_action, decision.log_color)
        logger.info("[ACTION EXECUTOR] Timed out %s in guild %s for spam", member.id, message.guild.id)
        return True

    async def delete_and_warn(self, decision: PolicyDecision, message: discord.Message) -> bool:
        """Remove an offending message and record an automatic warning."""
        author = message.author
        try:
            await message.delete()
        except discord.NotFound:
            logger.debug("[ACTION EXECUTOR] Message %s already deleted; abandoning %s", message.id, decision.kind)
            return False
        except discord.Forbidden:
            logger.warning("[ACTION EXECUTOR] Missing permission to delete message %s", message.id)
            return False
        except discord.HTTPException as exc:
            logger.error("[ACTION EXECUTOR] Failed to delete message %s: %s", message.id, exc)
            return False

        await self._post_notice(message.channel, f"{author.mention}, your message was removed. Reason: {decision.reason}")

        try:
            record = self._build_record(message, CaseKind.AUTO_WARN, decision.reason)
            await self.case_log.append(record)
        except Exception:
            logger.exception("[ACTION EXECUTOR] Failed to record %s for %s", decision.log_action, author.id)
            return False

        await self.mod_log.notify(message.guild, record, decision.log_action, decision.log_color)
        logger.info(
            "[ACTION EXECUTOR] Removed message %s from %s (%s)",
            message.id,
            author.id,
            decision.kind,
        )
        return True
