"""
Strix path patterns.

Example:
    >>> p = compile_pattern("/users/{id}")
    >>> match(p, "/users/42")
    {'id': '42'}
"""

from .compiler import (
    CompiledPattern,
    StaticPart,
    ParamPart,
    compile_pattern,
    parse_template,
)
from .matcher import match

__all__ = [
    "CompiledPattern",
    "StaticPart",
    "ParamPart",
    "compile_pattern",
    "parse_template",
    "match",
]
