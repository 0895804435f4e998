"""
Pytest configuration and shared fixtures for pgmeta tests.

This module provides catalog row factories and a mock execution channel
shared by the unit tests, plus the live database fixtures used by the
integration tests.
"""

import os
from typing import Any, Callable, Dict
from unittest.mock import AsyncMock

import pytest

from pgmeta.database.connection import QueryResult
from pgmeta.schema.models import Column


# ============================================================================
# Catalog Row Fixtures
# ============================================================================

def column_row(**overrides: Any) -> Dict[str, Any]:
    """A columns catalog row as the execution channel returns it."""
    row = {
        "id": "16384.2",
        "table_id": 16384,
        "schema": "public",
        "table": "users",
        "ordinal_position": 2,
        "name": "email",
        "default_value": None,
        "data_type": "text",
        "format": "text",
        "is_identity": False,
        "identity_generation": None,
        "is_generated": False,
        "is_nullable": True,
        "is_updatable": True,
        "is_unique": False,
        "is_primary_key": False,
        "enums": "[]",
        "check": None,
        "comment": None,
    }
    row.update(overrides)
    if "id" not in overrides:
        row["id"] = f"{row['table_id']}.{row['ordinal_position']}"
    return row


@pytest.fixture
def make_row() -> Callable[..., Dict[str, Any]]:
    """Factory for catalog rows."""
    return column_row


@pytest.fixture
def make_column() -> Callable[..., Column]:
    """Factory for decoded columns."""
    def factory(**overrides: Any) -> Column:
        return Column.model_validate(column_row(**overrides))
    return factory


@pytest.fixture
def table_row() -> Dict[str, Any]:
    """A row from the table-by-id query."""
    return {"id": 16384, "schema": "public", "table": "users", "name": "users"}


# ============================================================================
# Execution Channel Fixtures
# ============================================================================

@pytest.fixture
def channel() -> AsyncMock:
    """Mock execution channel; tests set query/run_script results."""
    mock = AsyncMock()
    mock.query.return_value = QueryResult()
    mock.run_script.return_value = QueryResult()
    return mock


# ============================================================================
# Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def setup_test_environment():
    """Keep PGMETA_ settings from the developer's shell out of unit tests."""
    original_env = dict(os.environ)

    for key in list(os.environ):
        if key.startswith("PGMETA_") and key != "PGMETA_TEST_DATABASE_URL":
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Integration Test Fixtures
# ============================================================================

@pytest.fixture
def test_database_url() -> str:
    """Database URL for integration tests; skips when unset."""
    url = os.environ.get("PGMETA_TEST_DATABASE_URL")
    if not url:
        pytest.skip("PGMETA_TEST_DATABASE_URL is not set")
    return url


@pytest.fixture
async def test_pool(test_database_url):
    """A live connection pool."""
    from pgmeta.database.connection import ConnectionConfig, ConnectionPool

    pool = ConnectionPool(ConnectionConfig.from_url(test_database_url))
    await pool.initialize()

    yield pool

    await pool.close()
