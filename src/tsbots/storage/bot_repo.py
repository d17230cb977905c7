"""Flat CRUD over bot tables, rows are plain field maps keyed by numeric id."""

from __future__ import annotations

import re
from typing import Any

from tsbots.core.errors import NoTableError
from tsbots.log import get_logger
from tsbots.storage.database import Database

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


class BotStore:
    """Table-agnostic row access used by bot models.

    Table names are given without the configured prefix.
    """

    def __init__(self, db: Database):
        self._db = db

    def _table(self, table: str) -> str:
        return _check_identifier(self._db.table_prefix + table)

    async def table_exists(self, table: str) -> bool:
        cursor = await self._db.conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (self._table(table),),
        )
        return await cursor.fetchone() is not None

    async def get_all_ids(self, table: str) -> list[int]:
        if not await self.table_exists(table):
            raise NoTableError(f"Table does not exist: {self._table(table)}")
        cursor = await self._db.conn.execute(
            f"SELECT id FROM {self._table(table)} ORDER BY id"
        )
        rows = await cursor.fetchall()
        return [row["id"] for row in rows]

    async def get_fields(self, table: str, row_id: int) -> dict[str, Any] | None:
        cursor = await self._db.conn.execute(
            f"SELECT * FROM {self._table(table)} WHERE id = ?", (row_id,)
        )
        row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def create_row(self, table: str, fields: dict[str, Any]) -> int:
        """Insert a row and return its ID."""
        columns = [_check_identifier(c) for c in fields if c != "id"]
        values = [fields[c] for c in columns]
        if columns:
            sql = (
                f"INSERT INTO {self._table(table)} ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)})"
            )
        else:
            sql = f"INSERT INTO {self._table(table)} DEFAULT VALUES"
        cursor = await self._db.conn.execute(sql, values)
        await self._db.conn.commit()
        logger.debug("row_created", table=table, id=cursor.lastrowid)
        return cursor.lastrowid  # type: ignore[return-value]

    async def update_row(self, table: str, row_id: int, fields: dict[str, Any]) -> bool:
        columns = [_check_identifier(c) for c in fields if c != "id"]
        if not columns:
            return False
        assignments = ", ".join(f"{c} = ?" for c in columns)
        cursor = await self._db.conn.execute(
            f"UPDATE {self._table(table)} SET {assignments} WHERE id = ?",
            [fields[c] for c in columns] + [row_id],
        )
        await self._db.conn.commit()
        return cursor.rowcount > 0

    async def delete_row(self, table: str, row_id: int) -> bool:
        cursor = await self._db.conn.execute(
            f"DELETE FROM {self._table(table)} WHERE id = ?", (row_id,)
        )
        await self._db.conn.commit()
        return cursor.rowcount > 0
