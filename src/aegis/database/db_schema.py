"""
Database schema initialization.

Handles creation of tables, indexes, triggers, and schema version tracking.
"""

import aiosqlite

from aegis.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 2


class SchemaManager:
    """Creates the tables backing guild automod settings and the case log."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all tables, indexes, and triggers if they do not exist yet.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._add_missing_columns(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._create_triggers(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_automod_settings (
                guild_id INTEGER PRIMARY KEY,
                block_invites INTEGER NOT NULL DEFAULT 0,
                mass_mention_limit INTEGER NOT NULL DEFAULT 0,
                log_channel_id INTEGER,
                autorole_id INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # id preserves insertion order, which is the order words are checked in
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_banned_words (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                word TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (guild_id, word),
                FOREIGN KEY (guild_id) REFERENCES guild_automod_settings(guild_id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS moderation_cases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                action TEXT NOT NULL,
                target_id INTEGER NOT NULL,
                target_tag TEXT NOT NULL DEFAULT '',
                moderator_id INTEGER NOT NULL,
                moderator_tag TEXT NOT NULL DEFAULT '',
                reason TEXT NOT NULL,
                duration_ms INTEGER,
                created_at TEXT NOT NULL,
                edited_at TEXT,
                edited_by TEXT
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _add_missing_columns(db: aiosqlite.Connection) -> None:
        """Bring tables created by an older schema version up to date."""
        cursor = await db.execute("PRAGMA table_info(guild_automod_settings)")
        columns = {row[1] for row in await cursor.fetchall()}
        if "autorole_id" not in columns:
            await db.execute("ALTER TABLE guild_automod_settings ADD COLUMN autorole_id INTEGER")
            logger.info("[SCHEMA] Added autorole_id to guild_automod_settings")

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_banned_words_guild ON guild_banned_words(guild_id, id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_cases_guild_time ON moderation_cases(guild_id, created_at DESC)")
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_cases_target ON moderation_cases(guild_id, target_id, action, created_at DESC)"
        )

    @staticmethod
    async def _create_triggers(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS update_guild_automod_settings_timestamp
            AFTER UPDATE ON guild_automod_settings
            FOR EACH ROW
            BEGIN
                UPDATE guild_automod_settings SET updated_at = CURRENT_TIMESTAMP
                WHERE guild_id = NEW.guild_id;
            END
        """)

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
