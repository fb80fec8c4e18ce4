"""
Database initialization and connection ownership for SQLite.

The :class:`Database` object is created once at startup and handed to the
repositories that need it (guild settings store, case log). It owns the
single aiosqlite connection and the schema bootstrap.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from aegis.database.db_connection import ConnectionManager
from aegis.database.db_schema import SchemaManager
from aegis.util.logger import get_logger

logger = get_logger("database")

DB_PATH = Path("./data/aegis.db").resolve()


class Database:
    """
    Central database coordinator.

    Lifecycle:
        1. ``await initialize()`` at program startup
        2. ``read()`` / ``transaction()`` from repositories
        3. ``await shutdown()`` at program end
    """

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = db_path
        self._connection = ConnectionManager()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """
        Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self._connection.open(self.db_path)
            await SchemaManager.initialize_schema(self._connection.connection)
        except Exception as e:
            logger.error("[DATABASE] Database initialization failed: %s", e)
            await self._connection.close()
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        """Close the connection. Safe to call when never initialized."""
        await self._connection.close()
        if self._initialized:
            self._initialized = False
            logger.info("[DATABASE] Database shutdown complete")

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self._connection.read() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self._connection.transaction() as conn:
            yield conn
