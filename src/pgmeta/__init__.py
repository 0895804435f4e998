"""
pgmeta: PostgreSQL column management.

pgmeta turns a desired column state into an ordered, transactional series
of ALTER TABLE statements against a live PostgreSQL catalog, and reads the
resulting column back.
"""

__version__ = "0.1.0"
__author__ = "pgmeta Contributors"

from .config import PgMetaConfig
from .exceptions import PgMetaError, ConfigurationError, DatabaseError, ValidationError

__all__ = [
    "__version__",
    "PgMetaConfig",
    "PgMetaError",
    "ConfigurationError",
    "DatabaseError",
    "ValidationError",
]
