"""
Strix DB backends.
"""

from .base import DatabaseAdapter, ExecuteResult, Row, Value

__all__ = ["DatabaseAdapter", "ExecuteResult", "Row", "Value"]
