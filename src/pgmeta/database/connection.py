"""
Database connection management for pgmeta.

Provides the asyncpg connection pool that serves as the SQL execution
channel for the column engine: every statement goes in as text and comes
back as decoded rows or as an error value.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, Optional, Any, AsyncIterator, List
from urllib.parse import urlparse, parse_qs

import asyncpg
from pydantic import BaseModel, Field, field_validator

from ..exceptions import DatabaseConnectionError, DatabaseConfigurationError


logger = logging.getLogger(__name__)

# Failures the channel reports as values rather than raising
_CHANNEL_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError, OSError)


class ConnectionConfig(BaseModel):
    """Database connection configuration."""

    host: str = Field(..., description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field(..., description="Database name")
    user: str = Field(..., description="Database user")
    password: str = Field(..., description="Database password")

    # Connection pool settings
    min_size: int = Field(1, description="Minimum connections in pool")
    max_size: int = Field(5, description="Maximum connections in pool")

    # Connection settings
    command_timeout: float = Field(60.0, description="Command timeout in seconds")
    server_settings: Dict[str, str] = Field(
        default_factory=lambda: {"application_name": "pgmeta"},
        description="PostgreSQL server settings"
    )

    ssl_mode: Optional[str] = Field(None, description="SSL mode")

    @field_validator('database')
    @classmethod
    def validate_database(cls, v):
        if not v or not v.strip():
            raise ValueError("Database name is required")
        return v

    @classmethod
    def from_url(cls, url: str, **overrides: Any) -> "ConnectionConfig":
        """Create configuration from database URL."""
        parsed = urlparse(url)

        if parsed.scheme not in ("postgresql", "postgres"):
            raise DatabaseConfigurationError(f"Invalid database URL scheme: {parsed.scheme}")

        if not parsed.path or parsed.path == "/":
            raise DatabaseConfigurationError("Database name is required")

        query_params = parse_qs(parsed.query) if parsed.query else {}

        config_data = {
            "host": parsed.hostname or "localhost",
            "port": parsed.port or 5432,
            "database": parsed.path.lstrip("/"),
            "user": parsed.username or "",
            "password": parsed.password or "",
            "ssl_mode": query_params["sslmode"][0] if "sslmode" in query_params else "prefer",
        }
        config_data.update(overrides)

        return cls(**config_data)

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """Convert to asyncpg connection kwargs."""
        kwargs = {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
            "command_timeout": self.command_timeout,
            "server_settings": self.server_settings,
        }
        if self.ssl_mode:
            kwargs["ssl"] = self.ssl_mode
        return kwargs


@dataclass
class QueryResult:
    """Outcome of one trip through the execution channel."""

    rows: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    sqlstate: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Check if the statement succeeded."""
        return self.error is None


class ConnectionPool:
    """Async PostgreSQL connection pool wrapper."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._pool is not None:
                return

            try:
                logger.info(
                    f"Initializing connection pool to {self.config.host}:{self.config.port}"
                    f"/{self.config.database} (min={self.config.min_size}, max={self.config.max_size})"
                )

                self._pool = await asyncpg.create_pool(
                    **self.config.to_connection_kwargs(),
                    min_size=self.config.min_size,
                    max_size=self.config.max_size,
                )

                logger.info("Connection pool initialized successfully")

            except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
                logger.error(f"Failed to initialize connection pool: {e}")
                raise DatabaseConnectionError(f"Failed to initialize connection pool: {e}") from e

    async def close(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._pool is not None:
                logger.info("Closing connection pool")
                await self._pool.close()
                self._pool = None

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection from the pool."""
        if self._pool is None:
            raise DatabaseConnectionError("Pool is not connected")

        async with self._pool.acquire() as connection:
            yield connection

    def _failed(self, error: BaseException) -> QueryResult:
        # asyncio.TimeoutError is an OSError subclass on 3.11+, check it first
        if isinstance(error, asyncio.TimeoutError):
            return QueryResult(
                error=f"Statement timed out after {self.config.command_timeout}s"
            )
        return QueryResult(error=str(error), sqlstate=getattr(error, "sqlstate", None))

    async def query(self, sql: str) -> QueryResult:
        """Run a single row-returning statement."""
        try:
            async with self.acquire() as conn:
                records = await conn.fetch(sql)
        except _CHANNEL_ERRORS as e:
            logger.warning(f"Query failed: {e!r}")
            return self._failed(e)
        return QueryResult(rows=[dict(record) for record in records])

    async def run_script(self, sql: str) -> QueryResult:
        """
        Run a multi-statement script.

        The script carries its own BEGIN/COMMIT. If any statement fails the
        transaction it opened is rolled back before the connection goes back
        to the pool.
        """
        try:
            async with self.acquire() as conn:
                try:
                    await conn.execute(sql)
                except _CHANNEL_ERRORS as e:
                    logger.warning(f"Script failed: {e!r}")
                    await self._rollback(conn)
                    return self._failed(e)
        except _CHANNEL_ERRORS as e:
            logger.warning(f"Script failed: {e!r}")
            return self._failed(e)
        return QueryResult()

    async def _rollback(self, conn: asyncpg.Connection) -> None:
        try:
            if conn.is_in_transaction():
                await conn.execute("ROLLBACK")
        except _CHANNEL_ERRORS as e:
            # Releasing to the pool resets the connection, which aborts the transaction
            logger.error(f"Rollback failed: {e!r}")

    async def test_connection(self) -> Dict[str, Any]:
        """Test the connection and return server info."""
        try:
            async with self.acquire() as conn:
                result = await conn.fetchrow("SELECT version(), current_database(), current_user")
            return {
                "status": "connected",
                "database": result["current_database"],
                "user": result["current_user"],
                "version": result["version"],
            }
        except (DatabaseConnectionError, *_CHANNEL_ERRORS) as e:
            logger.error(f"Connection test failed: {e}")
            return {
                "status": "failed",
                "error": str(e),
            }

    @property
    def is_initialized(self) -> bool:
        """Check if pool is initialized."""
        return self._pool is not None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
