"""
Exception classes for pgmeta.
"""

from typing import Any, Dict, Optional


class PgMetaError(Exception):
    """Base exception for all pgmeta errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(PgMetaError):
    """Raised when there's an error in configuration."""

    pass


class ValidationError(PgMetaError):
    """Raised when there's a validation error."""

    pass


class ColumnValidationError(ValidationError):
    """Raised when a column reference or column change is rejected before any SQL runs."""

    pass


class DatabaseError(PgMetaError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when there's an error establishing or maintaining database connections."""

    pass


class DatabaseConfigurationError(DatabaseError):
    """Raised when there's an error in database configuration."""

    pass


class SchemaError(DatabaseError):
    """Raised when there's an error with database schema operations."""

    pass


class ColumnNotFoundError(SchemaError):
    """Raised when a column lookup matches no catalog row."""

    pass


class TableNotFoundError(SchemaError):
    """Raised when a table id does not resolve to a table."""

    def __init__(self, table_id: int) -> None:
        super().__init__(f"Cannot find a table with ID {table_id}")
        self.table_id = table_id


class UpstreamError(SchemaError):
    """Raised when the database rejects a statement.

    The message is the server's message, unchanged.
    """

    def __init__(self, message: str, sqlstate: Optional[str] = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate

    def __str__(self) -> str:
        return self.message
