"""
Automod decision engine.

For every guild message the engine runs, stopping at the first branch that
applies:

    skip (bot author, no guild, bypass permission)
      -> spam limiter   [tripped: timeout, stop]
      -> invite check   [match: delete + warn, stop]
      -> mention check  [match: delete + warn, stop]
      -> word check     [match: delete + warn, stop]
      -> no action

At most one action is taken per message, and a message that trips the spam
limiter is never checked for content. Any error while handling a message is
logged and the message is dropped, so one bad event never stops the stream.
"""

from __future__ import annotations

import asyncio

import discord

from aegis.automod.action_executor import ModerationActionExecutor
from aegis.automod.config_cache import GuildConfigCache
from aegis.automod.policy_matcher import RATE_VIOLATION, PolicyMatcher
from aegis.automod.spam_tracker import SpamRateTracker
from aegis.datatypes.automod_datatypes import NO_VIOLATION, MessageEvent, PolicyDecision
from aegis.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from aegis.util.clock import Clock, system_clock
from aegis.util.logger import get_logger

logger = get_logger("automod_engine")

# Members holding this guild permission are never moderated automatically
BYPASS_PERMISSION = "manage_messages"


def has_bypass_permission(author: discord.abc.User) -> bool:
    permissions = getattr(author, "guild_permissions", None)
    return bool(getattr(permissions, BYPASS_PERMISSION, False))


def event_from_message(message: discord.Message, now_ms: int) -> MessageEvent:
    """Build a :class:`MessageEvent` from a Discord message received at ``now_ms``."""
    guild = message.guild
    author = message.author
    return MessageEvent(
        guild_id=GuildID(guild.id) if guild else None,
        author_id=UserID(author.id),
        content=message.content or "",
        timestamp_ms=now_ms,
        author_is_bot=bool(author.bot),
        author_has_bypass_permission=has_bypass_permission(author),
        mentioned_user_ids=frozenset(UserID(user.id) for user in message.mentions),
        channel_id=ChannelID(message.channel.id),
        message_id=MessageID(message.id),
    )


class AutomodEngine:
    """
    Classifies messages and hands violations to the executor.

    All collaborators are injected so each can be replaced in tests.
    """

    def __init__(
        self,
        config_cache: GuildConfigCache,
        spam_tracker: SpamRateTracker,
        matcher: PolicyMatcher,
        executor: ModerationActionExecutor,
        clock: Clock = system_clock,
    ) -> None:
        self.config_cache = config_cache
        self.spam_tracker = spam_tracker
        self.matcher = matcher
        self.executor = executor
        self._clock = clock

    async def classify(self, event: MessageEvent) -> PolicyDecision:
        """Return the decision for one message without performing any action."""
        if event.guild_id is None or event.author_is_bot or event.author_has_bypass_permission:
            return NO_VIOLATION

        if self.spam_tracker.record_and_check(event.guild_id, event.author_id, event.timestamp_ms):
            return RATE_VIOLATION

        config = await self.config_cache.get(event.guild_id)
        return self.matcher.evaluate(event, config)

    async def handle_message(self, message: discord.Message) -> PolicyDecision:
        """
        Classify a Discord message and apply the resulting action.

        Returns:
            The decision taken, or ``NO_VIOLATION`` if processing failed.
        """
        try:
            event = event_from_message(message, self._clock.now_ms())
            decision = await self.classify(event)
            if decision.is_violation:
                logger.debug(
                    "[AUTOMOD] %s violation by %s in guild %s",
                    decision.kind,
                    event.author_id,
                    event.guild_id,
                )
                await self.executor.execute(decision, message)
            return decision
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[AUTOMOD] Failed to process message %s; dropping it", getattr(message, "id", "?"))
            return NO_VIOLATION

    async def shutdown(self) -> None:
        await self.spam_tracker.shutdown()
