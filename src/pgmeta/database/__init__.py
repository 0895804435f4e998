"""
Database integration package for pgmeta.

This package provides:
- Async PostgreSQL connection pooling (the SQL execution channel)
- Identifier and literal quoting
"""

from .connection import ConnectionConfig, ConnectionPool, QueryResult
from .quoting import quote_ident, quote_literal, qualified_name

__all__ = [
    "ConnectionConfig",
    "ConnectionPool",
    "QueryResult",
    "quote_ident",
    "quote_literal",
    "qualified_name",
]
