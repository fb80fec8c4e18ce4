"""
Content policy checks.

Each check takes one message and the guild's configuration and returns a
:class:`PolicyDecision` or ``None``. :class:`PolicyMatcher` runs them in a fixed
priority order and returns the first violation found:

1. invite links (when the guild blocks invites)
2. mass mentions (when a limit is configured)
3. banned words (in the order the guild added them)
"""

from __future__ import annotations

import re
from typing import Callable, Optional, Sequence

from aegis.datatypes.automod_datatypes import (
    NO_VIOLATION,
    GuildAutomodConfig,
    MessageEvent,
    PolicyDecision,
    ViolationKind,
)

PolicyCheck = Callable[[MessageEvent, GuildAutomodConfig], Optional[PolicyDecision]]

INVITE_PATTERN = re.compile(r"(discord\.(gg|com)/(invite/)?[a-zA-Z0-9]{2,25})", re.IGNORECASE)

# Moderation-log labels and colour tags, passed through to the mod-log embed
INVITE_LOG_ACTION = "Auto-Warn (Invite Link)"
MENTION_LOG_ACTION = "Auto-Warn (Mass Mention)"
WORD_LOG_ACTION = "Auto-Warn (Banned Word)"
RATE_LOG_ACTION = "Auto-Mute (Spam)"

INVITE_LOG_COLOR = "DarkOrange"
MENTION_LOG_COLOR = "DarkOrange"
WORD_LOG_COLOR = "DarkRed"
RATE_LOG_COLOR = "DarkPurple"

RATE_VIOLATION = PolicyDecision(
    kind=ViolationKind.RATE,
    reason="User sent messages too quickly.",
    log_action=RATE_LOG_ACTION,
    log_color=RATE_LOG_COLOR,
)


def check_invite_link(event: MessageEvent, config: GuildAutomodConfig) -> Optional[PolicyDecision]:
    if not config.block_invites:
        return None
    if not INVITE_PATTERN.search(event.content):
        return None
    return PolicyDecision(
        kind=ViolationKind.INVITE,
        reason="Discord invites are not allowed here.",
        log_action=INVITE_LOG_ACTION,
        log_color=INVITE_LOG_COLOR,
    )


def check_mass_mention(event: MessageEvent, config: GuildAutomodConfig) -> Optional[PolicyDecision]:
    limit = config.mass_mention_limit
    if limit <= 0 or event.mention_count <= limit:
        return None
    return PolicyDecision(
        kind=ViolationKind.MENTION,
        reason=f"Mass mentions are not allowed (Limit: {limit}).",
        log_action=MENTION_LOG_ACTION,
        log_color=MENTION_LOG_COLOR,
    )


def check_banned_words(event: MessageEvent, config: GuildAutomodConfig) -> Optional[PolicyDecision]:
    for word, pattern in config.word_patterns:
        if pattern.search(event.content):
            return PolicyDecision(
                kind=ViolationKind.WORD,
                reason=f'Automatic detection of blacklisted word: "{word}"',
                log_action=WORD_LOG_ACTION,
                log_color=WORD_LOG_COLOR,
                word=word,
            )
    return None


DEFAULT_CHECKS: tuple[PolicyCheck, ...] = (
    check_invite_link,
    check_mass_mention,
    check_banned_words,
)


class PolicyMatcher:
    """Runs content checks in priority order; the first match wins."""

    def __init__(self, checks: Sequence[PolicyCheck] = DEFAULT_CHECKS) -> None:
        self.checks = tuple(checks)

    def evaluate(self, event: MessageEvent, config: GuildAutomodConfig) -> PolicyDecision:
        for check in self.checks:
            decision = check(event, config)
            if decision is not None and decision.is_violation:
                return decision
        return NO_VIOLATION
