"""
Strix DB Backend - Base Adapter Interface.

Every backend holds exactly one connection and implements this
interface. SQL reaching an adapter always uses ``?`` placeholders; the
adapter translates to its driver's param style.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

logger = logging.getLogger("strix.db.backends")

__all__ = [
    "DatabaseAdapter",
    "ExecuteResult",
    "Row",
    "Value",
]

# Column value as delivered by the drivers
Value = Union[None, int, float, str, bool, bytes]
Row = Dict[str, Value]


@dataclass(frozen=True)
class ExecuteResult:
    """Outcome of a write statement."""

    lastrowid: Optional[int] = None
    rowcount: int = 0


class DatabaseAdapter(ABC):
    """
    Abstract database adapter interface.

    The ``Database`` engine uses this interface to run statements and
    manage transactions on its single connection.
    """

    name: str = "base"

    @abstractmethod
    async def connect(self, url: str, **options) -> None:
        """Open the connection."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection."""
        ...

    @abstractmethod
    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> ExecuteResult:
        """Run a statement, returning the generated id and affected rows."""
        ...

    @abstractmethod
    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Row]:
        ...

    @abstractmethod
    async def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Row]:
        ...

    async def fetch_val(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """First column of the first row, or None."""
        row = await self.fetch_one(sql, params)
        if row is None:
            return None
        return next(iter(row.values()), None)

    # ── Transaction management ───────────────────────────────────────

    @abstractmethod
    async def begin(self) -> None:
        ...

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...

    # ── Introspection ────────────────────────────────────────────────

    @abstractmethod
    async def table_exists(self, table_name: str) -> bool:
        ...

    # ── SQL adaptation ───────────────────────────────────────────────

    def adapt_sql(self, sql: str) -> str:
        """Translate ``?`` placeholders to the driver's param style."""
        return sql

    @property
    def is_connected(self) -> bool:
        return False

    @property
    def dialect(self) -> str:
        return self.name
