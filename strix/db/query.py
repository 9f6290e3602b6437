"""
Strix Query Builder - fluent, parameterized SQL over one table.

All values are bound as ``?`` parameters. Table names, column names,
operators and join conditions are interpolated verbatim and must come
from trusted code, never from request input.

The builder is consuming: configuration methods mutate and return the
same builder, and the first terminal operation (``get``, ``first``,
``find``, ``paginate``, ``count``, ``insert``, ``update``, ``delete``)
takes ownership of the accumulated state. Any further use raises
``BuilderConsumedFault``. Use ``clone()`` to reuse a configured query.

Usage:
    users = await (
        db.table("users")
        .select("id", "name")
        .where("active", 1)
        .or_where("role", "=", "admin")
        .order_by("name")
        .limit(10)
        .get()
    )
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..faults import BuilderConsumedFault
from .backends.base import Row, Value

if TYPE_CHECKING:
    from .engine import Database

logger = logging.getLogger("strix.db.query")

__all__ = [
    "QueryBuilder",
    "CompiledQuery",
    "Page",
    "Comparison",
    "SetMembership",
    "NullCheck",
    "Join",
]

# Largest LIMIT both SQLite and MySQL accept; used when only OFFSET is set.
_UNBOUNDED_LIMIT = 9223372036854775807

_DIRECTIONS = ("ASC", "DESC")


# ── Clause model ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Comparison:
    column: str
    operator: str
    value: Any
    connective: str = "AND"

    def render(self) -> Tuple[str, List[Any]]:
        return f"{self.column} {self.operator} ?", [self.value]


@dataclass(frozen=True)
class SetMembership:
    column: str
    values: Tuple[Any, ...]
    connective: str = "AND"

    def render(self) -> Tuple[str, List[Any]]:
        if not self.values:
            return "1 = 0", []
        placeholders = ", ".join("?" for _ in self.values)
        return f"{self.column} IN ({placeholders})", list(self.values)


@dataclass(frozen=True)
class NullCheck:
    column: str
    connective: str = "AND"

    def render(self) -> Tuple[str, List[Any]]:
        return f"{self.column} IS NULL", []


Clause = Union[Comparison, SetMembership, NullCheck]


@dataclass(frozen=True)
class Join:
    kind: str  # INNER | LEFT
    table: str
    left: str
    operator: str
    right: str

    def render(self) -> str:
        return f"{self.kind} JOIN {self.table} ON {self.left} {self.operator} {self.right}"


@dataclass(frozen=True)
class CompiledQuery:
    """Rendered SQL text plus its positional parameters."""

    sql: str
    params: List[Any] = field(default_factory=list)

    def __iter__(self):
        # Allows ``sql, params = builder.to_sql()``
        return iter((self.sql, self.params))


@dataclass
class Page:
    """One slice of a paginated result."""

    data: List[Row]
    total: int
    per_page: int
    current_page: int
    last_page: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "total": self.total,
            "per_page": self.per_page,
            "current_page": self.current_page,
            "last_page": self.last_page,
        }


_MISSING = object()


def _require_non_negative(name: str, n: int) -> int:
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {n!r}")
    return n


# ── Builder ──────────────────────────────────────────────────────────


class QueryBuilder:
    """
    Accumulates SELECT/INSERT/UPDATE/DELETE clauses for one table.

    A builder without a database can still render SQL (``to_sql`` and
    friends); terminal operations need one.
    """

    def __init__(self, table: str, db: Optional["Database"] = None):
        self._table = table
        self._db = db
        self._columns: List[str] = ["*"]
        self._wheres: List[Clause] = []
        self._joins: List[Join] = []
        self._order_by: List[str] = []
        self._group_by: List[str] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._consumed_by: Optional[str] = None

    @property
    def table(self) -> str:
        return self._table

    @property
    def consumed(self) -> bool:
        return self._consumed_by is not None

    def _check_open(self, operation: str) -> None:
        if self._consumed_by is not None:
            raise BuilderConsumedFault(table=self._table, operation=operation)

    def _consume(self, operation: str) -> None:
        self._check_open(operation)
        self._consumed_by = operation

    def clone(self) -> QueryBuilder:
        """Independent, unconsumed copy of the accumulated state."""
        self._check_open("clone")
        new = QueryBuilder(self._table, self._db)
        new._columns = list(self._columns)
        new._wheres = list(self._wheres)
        new._joins = list(self._joins)
        new._order_by = list(self._order_by)
        new._group_by = list(self._group_by)
        new._limit = self._limit
        new._offset = self._offset
        return new

    # ── Configuration ────────────────────────────────────────────────

    def select(self, *columns: str) -> QueryBuilder:
        self._check_open("select")
        self._columns = list(columns) or ["*"]
        return self

    def _add_comparison(self, operation: str, connective: str, column: str, args: tuple) -> QueryBuilder:
        self._check_open(operation)
        if len(args) == 1:
            operator, value = "=", args[0]
        elif len(args) == 2:
            operator, value = args
        else:
            raise TypeError(
                f"{operation}() takes (column, value) or (column, operator, value), "
                f"got {len(args) + 1} arguments"
            )
        self._wheres.append(Comparison(column, str(operator), value, connective))
        return self

    def where(self, column: str, *args: Any) -> QueryBuilder:
        """
        Add an AND comparison.

            .where("status", "active")        # status = ?
            .where("age", ">=", 18)           # age >= ?
            .where("deleted_at", "=", None)   # binds None
        """
        return self._add_comparison("where", "AND", column, args)

    def or_where(self, column: str, *args: Any) -> QueryBuilder:
        return self._add_comparison("or_where", "OR", column, args)

    def where_in(self, column: str, values: Sequence[Any]) -> QueryBuilder:
        """Add ``column IN (?, ...)``; an empty sequence matches nothing."""
        self._check_open("where_in")
        self._wheres.append(SetMembership(column, tuple(values)))
        return self

    def where_null(self, column: str) -> QueryBuilder:
        self._check_open("where_null")
        self._wheres.append(NullCheck(column))
        return self

    def where_like(self, column: str, pattern: str) -> QueryBuilder:
        """``column LIKE ?``. Wildcards are the caller's business."""
        return self._add_comparison("where_like", "AND", column, ("LIKE", pattern))

    def join(self, table: str, left: str, operator: str, right: str) -> QueryBuilder:
        self._check_open("join")
        self._joins.append(Join("INNER", table, left, operator, right))
        return self

    def left_join(self, table: str, left: str, operator: str, right: str) -> QueryBuilder:
        self._check_open("left_join")
        self._joins.append(Join("LEFT", table, left, operator, right))
        return self

    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        self._check_open("order_by")
        direction = direction.upper()
        if direction not in _DIRECTIONS:
            raise ValueError(f"order direction must be ASC or DESC, got {direction!r}")
        self._order_by.append(f"{column} {direction}")
        return self

    def group_by(self, *columns: str) -> QueryBuilder:
        self._check_open("group_by")
        self._group_by.extend(columns)
        return self

    def limit(self, n: int) -> QueryBuilder:
        self._check_open("limit")
        self._limit = _require_non_negative("limit", n)
        return self

    def offset(self, n: int) -> QueryBuilder:
        self._check_open("offset")
        self._offset = _require_non_negative("offset", n)
        return self

    # ── Rendering ────────────────────────────────────────────────────

    def _render_where(self, bindings: List[Any]) -> str:
        """WHERE body in accumulation order; the first connective is dropped."""
        parts: List[str] = []
        for i, clause in enumerate(self._wheres):
            text, values = clause.render()
            parts.append(text if i == 0 else f"{clause.connective} {text}")
            bindings.extend(values)
        return " ".join(parts)

    def _render_from(self, bindings: List[Any]) -> str:
        sql = f"FROM {self._table}"
        for join in self._joins:
            sql += " " + join.render()
        if self._wheres:
            sql += " WHERE " + self._render_where(bindings)
        if self._group_by:
            sql += " GROUP BY " + ", ".join(self._group_by)
        return sql

    def _render_select(self, limit: Any = _MISSING, offset: Any = _MISSING) -> CompiledQuery:
        limit = self._limit if limit is _MISSING else limit
        offset = self._offset if offset is _MISSING else offset
        bindings: List[Any] = []
        sql = f"SELECT {', '.join(self._columns)} " + self._render_from(bindings)
        if self._order_by:
            sql += " ORDER BY " + ", ".join(self._order_by)
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        elif offset is not None:
            sql += f" LIMIT {_UNBOUNDED_LIMIT}"
        if offset is not None:
            sql += f" OFFSET {int(offset)}"
        return CompiledQuery(sql, bindings)

    def to_sql(self) -> CompiledQuery:
        """SELECT statement for the current state."""
        self._check_open("to_sql")
        return self._render_select()

    def to_count_sql(self) -> CompiledQuery:
        """
        COUNT statement over the current filters and joins.

        Ordering, limit and offset never affect the count. With GROUP BY
        the groups are counted through a derived table.
        """
        self._check_open("to_count_sql")
        bindings: List[Any] = []
        if self._group_by:
            inner = f"SELECT {', '.join(self._group_by)} " + self._render_from(bindings)
            return CompiledQuery(
                f"SELECT COUNT(*) AS aggregate FROM ({inner}) AS grouped", bindings
            )
        return CompiledQuery("SELECT COUNT(*) AS aggregate " + self._render_from(bindings), bindings)

    def to_insert_sql(self, data: Mapping[str, Value]) -> CompiledQuery:
        self._check_open("to_insert_sql")
        if not data:
            raise ValueError("insert() needs at least one column")
        columns = ", ".join(data.keys())
        placeholders = ", ".join("?" for _ in data)
        return CompiledQuery(
            f"INSERT INTO {self._table} ({columns}) VALUES ({placeholders})",
            list(data.values()),
        )

    def to_update_sql(self, data: Mapping[str, Value]) -> CompiledQuery:
        """UPDATE with SET values first, then WHERE values. No filters means every row."""
        self._check_open("to_update_sql")
        if not data:
            raise ValueError("update() needs at least one column")
        bindings: List[Any] = list(data.values())
        sql = f"UPDATE {self._table} SET " + ", ".join(f"{col} = ?" for col in data)
        if self._wheres:
            sql += " WHERE " + self._render_where(bindings)
        return CompiledQuery(sql, bindings)

    def to_delete_sql(self) -> CompiledQuery:
        """DELETE over the current filters. No filters means every row."""
        self._check_open("to_delete_sql")
        bindings: List[Any] = []
        sql = f"DELETE FROM {self._table}"
        if self._wheres:
            sql += " WHERE " + self._render_where(bindings)
        return CompiledQuery(sql, bindings)

    # ── Terminals ────────────────────────────────────────────────────

    def _require_db(self, operation: str) -> "Database":
        if self._db is None:
            raise RuntimeError(f"{operation}() needs a database; build the query via db.table()")
        return self._db

    async def get(self) -> List[Row]:
        """Execute the SELECT and return every row."""
        query = self.to_sql()
        self._consume("get")
        return await self._require_db("get").fetch_all(query.sql, query.params, table=self._table)

    async def first(self) -> Optional[Row]:
        """First row (LIMIT 1) or None."""
        self._check_open("first")
        query = self._render_select(limit=1)
        self._consume("first")
        return await self._require_db("first").fetch_one(query.sql, query.params, table=self._table)

    async def find(self, id: Any) -> Optional[Row]:
        return await self.where("id", id).first()

    async def count(self) -> int:
        query = self.to_count_sql()
        self._consume("count")
        value = await self._require_db("count").fetch_val(query.sql, query.params, table=self._table)
        return int(value or 0)

    async def paginate(self, per_page: int = 15, page: int = 1) -> Page:
        """
        Count the matching rows, then fetch one page of them.

        The count is rendered from the filters alone, so any limit or
        offset set earlier does not distort it.
        """
        if per_page < 1 or page < 1:
            raise ValueError("per_page and page must be >= 1")
        count_query = self.to_count_sql()
        page_query = self._render_select(limit=per_page, offset=(page - 1) * per_page)
        self._consume("paginate")

        db = self._require_db("paginate")
        total = int(await db.fetch_val(count_query.sql, count_query.params, table=self._table) or 0)
        rows = await db.fetch_all(page_query.sql, page_query.params, table=self._table)
        return Page(
            data=rows,
            total=total,
            per_page=per_page,
            current_page=page,
            last_page=math.ceil(total / per_page),
        )

    async def insert(self, data: Mapping[str, Value]) -> Optional[int]:
        """Insert one row and return its generated id."""
        query = self.to_insert_sql(data)
        self._consume("insert")
        result = await self._require_db("insert").execute(query.sql, query.params, table=self._table)
        return result.lastrowid

    async def update(self, data: Mapping[str, Value]) -> int:
        """Update matching rows (all rows when unfiltered); returns the affected count."""
        query = self.to_update_sql(data)
        self._consume("update")
        if not self._wheres:
            logger.warning("Unfiltered UPDATE on %s affects every row", self._table)
        result = await self._require_db("update").execute(query.sql, query.params, table=self._table)
        return result.rowcount

    async def delete(self) -> int:
        """Delete matching rows (all rows when unfiltered); returns the affected count."""
        query = self.to_delete_sql()
        self._consume("delete")
        if not self._wheres:
            logger.warning("Unfiltered DELETE on %s removes every row", self._table)
        result = await self._require_db("delete").execute(query.sql, query.params, table=self._table)
        return result.rowcount

    def __repr__(self) -> str:
        state = f"consumed by {self._consumed_by}" if self._consumed_by else "open"
        return f"<QueryBuilder {self._table} ({state})>"
