"""
Moderation case log: append-only history of moderation actions.

Records are written once by the automod executor or by moderation commands.
The only later mutations are explicit reason edits and deletions issued by
moderators. History queries are always newest-first.
"""

from __future__ import annotations

import datetime
import time
from typing import Iterable, List, Optional

import aiosqlite

from aegis.database.database import Database
from aegis.datatypes.action_datatypes import WARNING_KINDS, CaseKind, ModerationCaseRecord, utcnow
from aegis.datatypes.discord_datatypes import GuildID, UserID
from aegis.util.logger import get_logger

logger = get_logger("case_log")

CASES_PER_PAGE = 10

_SELECT_COLUMNS = """
    id, guild_id, action, target_id, target_tag, moderator_id, moderator_tag,
    reason, duration_ms, created_at, edited_at, edited_by
"""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    return datetime.datetime.fromisoformat(value)


def _row_to_record(row: aiosqlite.Row) -> ModerationCaseRecord:
    return ModerationCaseRecord(
        case_id=row["id"],
        guild_id=GuildID(row["guild_id"]),
        kind=CaseKind(row["action"]),
        target_id=UserID(row["target_id"]),
        target_tag=row["target_tag"],
        moderator_id=UserID(row["moderator_id"]),
        moderator_tag=row["moderator_tag"],
        reason=row["reason"],
        duration_ms=row["duration_ms"],
        created_at=_parse_timestamp(row["created_at"]) or utcnow(),
        edited_at=_parse_timestamp(row["edited_at"]),
        edited_by=row["edited_by"],
    )


class ModerationCaseLog:
    """Reads and writes :class:`ModerationCaseRecord` rows."""

    def __init__(self, database: Database):
        self._database = database

    async def append(self, record: ModerationCaseRecord) -> int:
        """
        Persist a new case and return its id.

        The id is also stored on ``record.case_id``.
        """
        start_time = time.time()
        async with self._database.transaction() as db:
            cursor = await db.execute(
                """
                INSERT INTO moderation_cases (
                    guild_id, action, target_id, target_tag, moderator_id, moderator_tag,
                    reason, duration_ms, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.guild_id.to_int(),
                    record.kind.value,
                    record.target_id.to_int(),
                    record.target_tag,
                    record.moderator_id.to_int(),
                    record.moderator_tag,
                    record.reason,
                    record.duration_ms,
                    record.created_at.isoformat(timespec="microseconds"),
                ),
            )
            case_id = cursor.lastrowid

        record.case_id = case_id
        logger.debug(
            "[CASE LOG] Logged %s on user %s in guild %s as case %s (%.1f ms)",
            record.kind.value,
            record.target_id,
            record.guild_id,
            case_id,
            (time.time() - start_time) * 1000,
        )
        return case_id

    async def list_for_user(
        self,
        guild_id: GuildID,
        user_id: UserID,
        kinds: Iterable[CaseKind] = WARNING_KINDS,
    ) -> List[ModerationCaseRecord]:
        """Return the user's cases of the given kinds, newest first."""
        kind_values = [kind.value for kind in kinds]
        if not kind_values:
            return []
        placeholders = ", ".join("?" for _ in kind_values)
        async with self._database.read() as db:
            cursor = await db.execute(
                f"""
                SELECT {_SELECT_COLUMNS} FROM moderation_cases
                WHERE guild_id = ? AND target_id = ? AND action IN ({placeholders})
                ORDER BY created_at DESC, id DESC
                """,
                (guild_id.to_int(), user_id.to_int(), *kind_values),
            )
            rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def count(self, guild_id: GuildID) -> int:
        async with self._database.read() as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM moderation_cases WHERE guild_id = ?", (guild_id.to_int(),)
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def page(self, guild_id: GuildID, page: int, per_page: int = CASES_PER_PAGE) -> List[ModerationCaseRecord]:
        """Return one page (1-based) of the guild's history, newest first."""
        if page < 1 or per_page < 1:
            return []
        async with self._database.read() as db:
            cursor = await db.execute(
                f"""
                SELECT {_SELECT_COLUMNS} FROM moderation_cases
                WHERE guild_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (guild_id.to_int(), per_page, (page - 1) * per_page),
            )
            rows = await cursor.fetchall()
        return [_row_to_record(row) for row in rows]

    async def edit_reason(
        self,
        case_id: int,
        new_reason: str,
        edited_by: str,
        edited_at: Optional[datetime.datetime] = None,
    ) -> bool:
        """Replace a case's reason. Returns False if the case does not exist."""
        edited_at = edited_at or utcnow()
        async with self._database.transaction() as db:
            cursor = await db.execute(
                "UPDATE moderation_cases SET reason = ?, edited_at = ?, edited_by = ? WHERE id = ?",
                (new_reason, edited_at.isoformat(timespec="microseconds"), edited_by, case_id),
            )
            updated = cursor.rowcount > 0
        if updated:
            logger.debug("[CASE LOG] Edited reason of case %s", case_id)
        return updated

    async def delete(self, case_id: int) -> bool:
        """Delete a case. Returns False if the case does not exist."""
        async with self._database.transaction() as db:
            cursor = await db.execute("DELETE FROM moderation_cases WHERE id = ?", (case_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.debug("[CASE LOG] Deleted case %s", case_id)
        return deleted
