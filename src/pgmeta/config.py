"""
Configuration system for pgmeta using Pydantic.
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, ConfigDict, model_validator
from pydantic_settings import BaseSettings

from .database.connection import ConnectionConfig
from .exceptions import ConfigurationError


class DatabaseConnection(BaseModel):
    """Database connection configuration."""

    url: Optional[str] = Field(None, description="postgresql:// URL; overrides the fields below")
    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("postgres", description="Database name")
    user: str = Field("postgres", description="Database user")
    password: str = Field("", description="Database password")
    ssl_mode: str = Field("prefer", description="SSL mode")
    command_timeout: int = Field(60, description="Command timeout in seconds")
    min_pool_size: int = Field(1, description="Minimum connections in pool")
    max_pool_size: int = Field(5, description="Maximum connections in pool")

    @model_validator(mode="after")
    def check_pool_sizes(self) -> "DatabaseConnection":
        if self.min_pool_size > self.max_pool_size:
            raise ValueError("min_pool_size cannot exceed max_pool_size")
        return self

    def to_connection_config(self) -> ConnectionConfig:
        """Build the pool configuration."""
        pool_settings = {
            "min_size": self.min_pool_size,
            "max_size": self.max_pool_size,
            "command_timeout": float(self.command_timeout),
        }
        if self.url:
            return ConnectionConfig.from_url(self.url, **pool_settings)
        return ConnectionConfig(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
            ssl_mode=self.ssl_mode,
            **pool_settings,
        )


class ColumnsConfig(BaseModel):
    """Defaults for column operations."""

    include_system_schemas: bool = Field(
        False, description="Include information_schema, pg_catalog and pg_toast in listings"
    )
    default_schema: str = Field("public", description="Schema used for lookups by name")
    default_limit: Optional[int] = Field(None, ge=0, description="Default listing limit")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Log level"
    )
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")
    max_size: int = Field(10485760, description="Max log file size in bytes")  # 10MB
    backup_count: int = Field(5, description="Number of backup log files")


class PgMetaConfig(BaseSettings):
    """Main pgmeta configuration."""

    service_name: str = Field("pgmeta", description="Service name")
    debug: bool = Field(False, description="Enable debug mode")

    database: DatabaseConnection = Field(
        default_factory=DatabaseConnection, description="Database connection"
    )
    columns: ColumnsConfig = Field(
        default_factory=ColumnsConfig, description="Column operation defaults"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_prefix="PGMETA_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "PgMetaConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

            data = cls._expand_env_vars(data)

            return cls(**data)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    @classmethod
    def _expand_env_vars(cls, data: Any) -> Any:
        """Recursively expand environment variables in configuration data."""
        if isinstance(data, dict):
            return {k: cls._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [cls._expand_env_vars(item) for item in data]
        elif isinstance(data, str):
            return os.path.expandvars(data)
        else:
            return data

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(exclude_none=True), f, default_flow_style=False, indent=2
            )


def setup_logging(config: LoggingConfig, debug: bool = False) -> None:
    """Configure the root logger from a LoggingConfig."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else config.level)

    formatter = logging.Formatter(config.format)
    handlers = [logging.StreamHandler()]
    if config.file:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                config.file, maxBytes=config.max_size, backupCount=config.backup_count
            )
        )

    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
