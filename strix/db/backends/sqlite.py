"""
Strix DB Backend - SQLite adapter via aiosqlite.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence

import aiosqlite

from .base import DatabaseAdapter, ExecuteResult, Row

logger = logging.getLogger("strix.db.backends.sqlite")

__all__ = ["SQLiteAdapter"]


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite adapter using aiosqlite.

    Features:
    - WAL journal mode for file databases
    - Foreign key enforcement
    - Autocommit outside explicit transactions
    """

    name = "sqlite"

    def __init__(self):
        self._connection: Optional[aiosqlite.Connection] = None
        self._connected = False
        self._lock = asyncio.Lock()
        self._in_transaction = False

    async def connect(self, url: str, **options) -> None:
        if self._connected:
            return
        async with self._lock:
            if self._connected:
                return
            db_path = self._parse_url(url)
            self._connection = await aiosqlite.connect(db_path, **options)
            if db_path != ":memory:":
                await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA foreign_keys=ON")
            self._connection.row_factory = aiosqlite.Row
            self._connected = True
            logger.info("SQLite connected: %s", db_path)

    async def disconnect(self) -> None:
        if not self._connected:
            return
        async with self._lock:
            if self._connection is not None:
                await self._connection.close()
                self._connection = None
            self._connected = False
            logger.info("SQLite disconnected")

    def _require_connection(self) -> aiosqlite.Connection:
        if not self._connected or self._connection is None:
            raise RuntimeError("Not connected")
        return self._connection

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecuteResult:
        conn = self._require_connection()
        cursor = await conn.execute(sql, list(params or []))
        result = ExecuteResult(lastrowid=cursor.lastrowid, rowcount=cursor.rowcount)
        await cursor.close()
        if not self._in_transaction:
            await conn.commit()
        return result

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Row]:
        conn = self._require_connection()
        async with conn.execute(sql, list(params or [])) as cursor:
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Row]:
        conn = self._require_connection()
        async with conn.execute(sql, list(params or [])) as cursor:
            row = await cursor.fetchone()
        return dict(row) if row is not None else None

    # ── Transactions ─────────────────────────────────────────────────

    async def begin(self) -> None:
        await self._require_connection().execute("BEGIN")
        self._in_transaction = True

    async def commit(self) -> None:
        await self._require_connection().commit()
        self._in_transaction = False

    async def rollback(self) -> None:
        await self._require_connection().rollback()
        self._in_transaction = False

    # ── Introspection ────────────────────────────────────────────────

    async def table_exists(self, table_name: str) -> bool:
        row = await self.fetch_one(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            [table_name],
        )
        return row is not None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @staticmethod
    def _parse_url(url: str) -> str:
        """Extract file path from sqlite URL."""
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                return url[len(prefix):] or ":memory:"
        return url.replace("sqlite:", "").lstrip("/") or ":memory:"
