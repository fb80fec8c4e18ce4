"""
Value types flowing through the automod pipeline.

- :class:`GuildAutomodConfig` is an immutable per-guild snapshot with its
  banned-word patterns compiled once at construction.
- :class:`MessageEvent` is the platform-neutral view of one incoming message.
- :class:`SpamTrackerEntry` is the mutable per-(guild, user) burst counter.
- :class:`PolicyDecision` is the verdict for one message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Tuple

from aegis.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID


def normalize_word(word: str) -> str:
    """Lower-case and trim a banned word for storage and matching."""
    return word.strip().lower()


def compile_word_pattern(word: str) -> re.Pattern[str]:
    """Return a case-insensitive whole-word pattern for ``word``."""
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class GuildAutomodConfig:
    """Automod configuration snapshot for one guild.

    Instances are never mutated; a configuration change produces a new
    snapshot the next time the cache refreshes.

    Attributes:
        banned_words: Lower-cased words in the order they were added.
        block_invites: Whether invite links are removed.
        mass_mention_limit: Maximum distinct user mentions per message (0 disables the check).
        word_patterns: Compiled ``(word, pattern)`` pairs, same order as ``banned_words``.
    """

    banned_words: Tuple[str, ...] = ()
    block_invites: bool = False
    mass_mention_limit: int = 0
    word_patterns: Tuple[Tuple[str, re.Pattern[str]], ...] = field(
        init=False, repr=False, compare=False, default=()
    )

    def __post_init__(self) -> None:
        words: list[str] = []
        for raw in self.banned_words:
            word = normalize_word(raw)
            if word and word not in words:
                words.append(word)
        object.__setattr__(self, "banned_words", tuple(words))
        object.__setattr__(self, "mass_mention_limit", max(0, int(self.mass_mention_limit)))
        object.__setattr__(self, "block_invites", bool(self.block_invites))
        object.__setattr__(
            self,
            "word_patterns",
            tuple((word, compile_word_pattern(word)) for word in words),
        )

    @classmethod
    def default(cls) -> "GuildAutomodConfig":
        """Configuration used for guilds with no stored record."""
        return cls()

    @classmethod
    def from_words(
        cls,
        banned_words: Iterable[str],
        block_invites: bool = False,
        mass_mention_limit: int = 0,
    ) -> "GuildAutomodConfig":
        return cls(
            banned_words=tuple(banned_words),
            block_invites=block_invites,
            mass_mention_limit=mass_mention_limit,
        )


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """Platform-neutral description of one guild message."""

    guild_id: Optional[GuildID]
    author_id: UserID
    content: str
    timestamp_ms: int
    author_is_bot: bool = False
    author_has_bypass_permission: bool = False
    mentioned_user_ids: FrozenSet[UserID] = frozenset()
    channel_id: Optional[ChannelID] = None
    message_id: Optional[MessageID] = None

    @property
    def mention_count(self) -> int:
        return len(self.mentioned_user_ids)


@dataclass(slots=True)
class SpamTrackerEntry:
    """Recent message velocity for one user in one guild."""

    message_count: int
    last_seen_at_ms: int


class ViolationKind(Enum):
    """Outcome categories for a classified message."""

    NONE = "none"
    RATE = "rate"
    INVITE = "invite"
    MENTION = "mention"
    WORD = "word"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class PolicyDecision:
    """Verdict for a single message.

    Attributes:
        kind: Which check fired, or ``ViolationKind.NONE``.
        reason: Human-readable explanation shown to the user and stored on the case.
        log_action: Category label for the moderation-log entry.
        log_color: Colour tag for the moderation-log entry.
        word: The banned word that matched, for word violations.
    """

    kind: ViolationKind = ViolationKind.NONE
    reason: str = ""
    log_action: str = ""
    log_color: str = ""
    word: Optional[str] = None

    @property
    def is_violation(self) -> bool:
        return self.kind is not ViolationKind.NONE


NO_VIOLATION = PolicyDecision()
