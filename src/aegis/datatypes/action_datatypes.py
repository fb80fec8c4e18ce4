"""
Case kinds and the moderation case record.

Every moderation action, automatic or manual, is written to the guild's
case log as one :class:`ModerationCaseRecord`.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from aegis.datatypes.discord_datatypes import GuildID, UserID


class CaseKind(Enum):
    """Enumeration of actions recorded in the case log."""

    MUTE = "mute"
    TIMEOUT = "timeout"
    WARN = "warn"
    AUTO_WARN = "auto-warn"

    def __str__(self) -> str:
        return self.value


# Case kinds listed by /warnings, /editwarn and /delwarn
WARNING_KINDS: tuple[CaseKind, ...] = (CaseKind.WARN, CaseKind.AUTO_WARN)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(slots=True)
class ModerationCaseRecord:
    """One entry in a guild's moderation history.

    Attributes:
        guild_id: Guild the case belongs to.
        kind: What was done.
        target_id: User the action was taken against.
        target_tag: Display tag of the target at the time of the action.
        moderator_id: Moderator (or the bot, for automatic actions).
        moderator_tag: Display tag of the moderator.
        reason: Why the action was taken.
        duration_ms: Length of a timeout or mute, if any.
        created_at: When the action happened (UTC).
        case_id: Database id, assigned when the record is appended.
        edited_at: When the reason was last edited.
        edited_by: Tag of the moderator who edited the reason.
    """

    guild_id: GuildID
    kind: CaseKind
    target_id: UserID
    target_tag: str
    moderator_id: UserID
    moderator_tag: str
    reason: str
    duration_ms: Optional[int] = None
    created_at: datetime.datetime = field(default_factory=utcnow)
    case_id: Optional[int] = None
    edited_at: Optional[datetime.datetime] = None
    edited_by: Optional[str] = None
