"""
Strix DB - single-connection async database access.

- Database: engine over one aiosqlite / aiomysql connection
- ConnectionRegistry: the application's owned connection handle
- QueryBuilder: consuming fluent SQL builder with positional binding
"""

from .backends import DatabaseAdapter, ExecuteResult, Row, Value
from .engine import Database
from .query import (
    CompiledQuery,
    Comparison,
    Join,
    NullCheck,
    Page,
    QueryBuilder,
    SetMembership,
)
from .registry import ConnectionRegistry

__all__ = [
    "Database",
    "DatabaseAdapter",
    "ExecuteResult",
    "Row",
    "Value",
    "ConnectionRegistry",
    "QueryBuilder",
    "CompiledQuery",
    "Page",
    "Comparison",
    "SetMembership",
    "NullCheck",
    "Join",
]
