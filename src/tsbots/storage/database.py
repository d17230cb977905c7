"""SQLite database connection manager with schema creation."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from tsbots.log import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS {prefix}greetingbot (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT    NOT NULL DEFAULT '',
    description     TEXT    NOT NULL DEFAULT '',
    active          INTEGER NOT NULL DEFAULT 0,
    greeting_text   TEXT    NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS {prefix}chatbot (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT    NOT NULL DEFAULT '',
    description     TEXT    NOT NULL DEFAULT '',
    active          INTEGER NOT NULL DEFAULT 0,
    nickname        TEXT    NOT NULL DEFAULT '',
    channel_id      INTEGER NOT NULL DEFAULT 0,
    greeting_text   TEXT    NOT NULL DEFAULT ''
);
"""


class Database:
    """Async SQLite database manager."""

    def __init__(self, db_path: str, table_prefix: str = ""):
        self._db_path = db_path
        self._table_prefix = table_prefix
        self._conn: aiosqlite.Connection | None = None

    @property
    def table_prefix(self) -> str:
        return self._table_prefix

    async def initialize(self) -> None:
        """Open connection and create the bot tables."""
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.executescript(SCHEMA_SQL.format(prefix=self._table_prefix))
        await self._conn.commit()
        logger.info("database_initialized", path=self._db_path)

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._conn

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("database_closed")
