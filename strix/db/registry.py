"""
Strix Connection Registry.

Owns the single ``Database`` of an application. Constructed once at
startup from a ``DatabaseConfig`` (or a URL), connected lazily, and closed
at shutdown. Query builders are handed out bound to its connection.

Usage:
    registry = ConnectionRegistry(config.database)
    async with registry:
        users = await registry.table("users").where("active", 1).get()
        rows = await registry.raw("SELECT COUNT(*) AS n FROM users")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Union

from .backends.base import Row
from .engine import Database
from .query import QueryBuilder

if TYPE_CHECKING:
    from ..config import DatabaseConfig

logger = logging.getLogger("strix.db")

__all__ = ["ConnectionRegistry"]


class ConnectionRegistry:
    """Explicitly owned connection handle shared by every query of the process."""

    def __init__(self, config: Union["DatabaseConfig", str], **options: Any):
        url = config if isinstance(config, str) else config.url
        self._config = None if isinstance(config, str) else config
        self._db = Database(url, **options)

    @property
    def database(self) -> Database:
        return self._db

    @property
    def config(self) -> Optional["DatabaseConfig"]:
        return self._config

    async def connect(self) -> "ConnectionRegistry":
        """
        Establish the connection now instead of on first query.

        Raises:
            DatabaseConnectionFault: the database is unreachable
        """
        await self._db.connect()
        return self

    async def close(self) -> None:
        await self._db.disconnect()

    def table(self, name: str) -> QueryBuilder:
        """Fresh builder for ``name`` bound to this connection."""
        return QueryBuilder(name, self._db)

    async def raw(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Row]:
        """Run arbitrary SQL with ``?`` parameters and return the rows."""
        return await self._db.fetch_all(sql, params)

    async def __aenter__(self) -> "ConnectionRegistry":
        return await self.connect()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<ConnectionRegistry {self._db!r}>"
