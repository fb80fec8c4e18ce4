"""
Persistent per-guild automod configuration.

Responsibilities:
- Read a guild's automod configuration as an immutable snapshot
- Persist configuration changes made through the settings commands
- Store the channel that receives moderation-log notifications
- Store the role handed to members when they join (autorole)

This store is the system of record. The automod pipeline reads it through
:class:`aegis.automod.config_cache.GuildConfigCache`, so writes made here
reach the classifier only after the cached snapshot expires.

Database schema:
- guild_automod_settings: guild_id, block_invites, mass_mention_limit, log_channel_id, autorole_id
- guild_banned_words: guild_id, word (ordered by insertion id)
"""

from __future__ import annotations

from typing import List, Optional

import aiosqlite

from aegis.database.database import Database
from aegis.datatypes.automod_datatypes import GuildAutomodConfig, normalize_word
from aegis.datatypes.discord_datatypes import ChannelID, GuildID, RoleID
from aegis.util.logger import get_logger

logger = get_logger("guild_settings_store")


class GuildSettingsStore:
    """SQLite-backed storage for guild automod settings."""

    def __init__(self, database: Database):
        self._database = database

    # -------- Reads --------
    async def get_automod_config(self, guild_id: GuildID) -> Optional[GuildAutomodConfig]:
        """
        Load the automod configuration for a guild.

        Returns:
            The stored configuration, or ``None`` if the guild has never been configured.
        """
        async with self._database.read() as db:
            cursor = await db.execute(
                "SELECT block_invites, mass_mention_limit FROM guild_automod_settings WHERE guild_id = ?",
                (guild_id.to_int(),),
            )
            row = await cursor.fetchone()
            words = await self._fetch_words(db, guild_id)

        if row is None and not words:
            return None

        config = GuildAutomodConfig.from_words(
            words,
            block_invites=bool(row["block_invites"]) if row else False,
            mass_mention_limit=int(row["mass_mention_limit"]) if row else 0,
        )
        logger.debug(
            "[GUILD SETTINGS] Loaded automod config for guild %s (words=%d, invites=%s, mention_limit=%d)",
            guild_id,
            len(config.banned_words),
            config.block_invites,
            config.mass_mention_limit,
        )
        return config

    async def list_banned_words(self, guild_id: GuildID) -> List[str]:
        async with self._database.read() as db:
            return await self._fetch_words(db, guild_id)

    async def get_log_channel(self, guild_id: GuildID) -> Optional[ChannelID]:
        async with self._database.read() as db:
            cursor = await db.execute(
                "SELECT log_channel_id FROM guild_automod_settings WHERE guild_id = ?",
                (guild_id.to_int(),),
            )
            row = await cursor.fetchone()
        if row is None or row["log_channel_id"] is None:
            return None
        return ChannelID(row["log_channel_id"])

    async def get_autorole(self, guild_id: GuildID) -> Optional[RoleID]:
        """Return the role assigned to new members, or ``None`` when autorole is off."""
        async with self._database.read() as db:
            cursor = await db.execute(
                "SELECT autorole_id FROM guild_automod_settings WHERE guild_id = ?",
                (guild_id.to_int(),),
            )
            row = await cursor.fetchone()
        if row is None or row["autorole_id"] is None:
            return None
        return RoleID(row["autorole_id"])

    # -------- Writes --------
    async def set_block_invites(self, guild_id: GuildID, enabled: bool) -> None:
        await self._upsert_column(guild_id, "block_invites", 1 if enabled else 0)
        logger.info("[GUILD SETTINGS] Invite blocking %s for guild %s", "enabled" if enabled else "disabled", guild_id)

    async def set_mass_mention_limit(self, guild_id: GuildID, limit: int) -> None:
        if limit < 0:
            raise ValueError("mass mention limit must be >= 0")
        await self._upsert_column(guild_id, "mass_mention_limit", int(limit))
        logger.info("[GUILD SETTINGS] Mass mention limit set to %d for guild %s", limit, guild_id)

    async def set_log_channel(self, guild_id: GuildID, channel_id: Optional[ChannelID]) -> None:
        await self._upsert_column(guild_id, "log_channel_id", channel_id.to_int() if channel_id else None)
        logger.info("[GUILD SETTINGS] Log channel set to %s for guild %s", channel_id, guild_id)

    async def set_autorole(self, guild_id: GuildID, role_id: Optional[RoleID]) -> None:
        """Set the role given to new members; ``None`` disables autorole."""
        await self._upsert_column(guild_id, "autorole_id", role_id.to_int() if role_id else None)
        logger.info("[GUILD SETTINGS] Autorole set to %s for guild %s", role_id, guild_id)

    async def add_banned_word(self, guild_id: GuildID, word: str) -> bool:
        """
        Append a word to the guild's blacklist.

        Returns:
            False if the word is empty or already listed, True otherwise.
        """
        normalized = normalize_word(word)
        if not normalized:
            return False

        async with self._database.transaction() as db:
            await self._ensure_row(db, guild_id)
            cursor = await db.execute(
                "INSERT OR IGNORE INTO guild_banned_words (guild_id, word) VALUES (?, ?)",
                (guild_id.to_int(), normalized),
            )
            added = cursor.rowcount > 0

        if added:
            logger.info("[GUILD SETTINGS] Added banned word for guild %s", guild_id)
        return added

    async def remove_banned_word(self, guild_id: GuildID, word: str) -> bool:
        """Remove a word from the blacklist. Returns False if it was not listed."""
        normalized = normalize_word(word)
        async with self._database.transaction() as db:
            cursor = await db.execute(
                "DELETE FROM guild_banned_words WHERE guild_id = ? AND word = ?",
                (guild_id.to_int(), normalized),
            )
            removed = cursor.rowcount > 0

        if removed:
            logger.info("[GUILD SETTINGS] Removed banned word for guild %s", guild_id)
        return removed

    # -------- Helpers --------
    @staticmethod
    async def _fetch_words(db: aiosqlite.Connection, guild_id: GuildID) -> List[str]:
        cursor = await db.execute(
            "SELECT word FROM guild_banned_words WHERE guild_id = ? ORDER BY id",
            (guild_id.to_int(),),
        )
        rows = await cursor.fetchall()
        return [row["word"] for row in rows]

    @staticmethod
    async def _ensure_row(db: aiosqlite.Connection, guild_id: GuildID) -> None:
        await db.execute(
            "INSERT OR IGNORE INTO guild_automod_settings (guild_id) VALUES (?)",
            (guild_id.to_int(),),
        )

    async def _upsert_column(self, guild_id: GuildID, column: str, value) -> None:
        # column names come from the fixed set used by the setters above
        async with self._database.transaction() as db:
            await self._ensure_row(db, guild_id)
            await db.execute(
                f"UPDATE guild_automod_settings SET {column} = ? WHERE guild_id = ?",
                (value, guild_id.to_int()),
            )
