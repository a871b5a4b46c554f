"""
Centralized configuration management for the Grafana Cloud secrets engine.

This module provides a unified configuration system with support for:
- Environment variables
- Runtime configuration
- Validation using Pydantic

This is the process configuration of the engine itself (logging, HTTP,
storage). The Grafana Cloud connection settings are operator data written
through the ``config`` path and live in ``schemas.config_schema``.
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import (
    SCOPED_KEY_PREFIX,
    SCOPED_KEY_TTL_SECONDS,
    EnvironmentVariable,
    LogLevel,
)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class HttpClientConfig(BaseModel):
    """HTTP settings for calls to the Grafana Cloud API."""

    timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv(EnvironmentVariable.HTTP_TIMEOUT.value, "30")),
        gt=0,
        description="Upper bound for a single upstream round-trip in seconds",
    )
    verify_ssl: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.HTTP_VERIFY_SSL.value, "true").lower()
        != "false",
        description="Verify TLS certificates of the upstream API",
    )
    user_agent: str = Field(
        default="grafana-secrets-core", description="User-Agent header sent upstream"
    )


class StorageConfig(BaseModel):
    """Storage backend selection for standalone runs."""

    backend: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.STORAGE_BACKEND.value, "memory"),
        description="Storage backend: 'memory' or 'sql'",
    )
    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.DATABASE_URL.value, "sqlite:///./grafana_secrets.db"
        ),
        description="SQLAlchemy connection string used by the 'sql' backend",
    )

    @field_validator("backend")
    def validate_backend(cls, v: str) -> str:
        """Validate the storage backend name."""
        if v.lower() not in {"memory", "sql"}:
            raise ValueError(f"Invalid storage backend: {v}. Must be 'memory' or 'sql'")
        return v.lower()


class EngineConfig(BaseModel):
    """Parameters of the credential lifecycle engine."""

    scoped_key_ttl_seconds: int = Field(
        default=SCOPED_KEY_TTL_SECONDS,
        gt=0,
        description="Lifetime of the temporary stack admin key used for instance-scoped operations",
    )
    scoped_key_prefix: str = Field(
        default=SCOPED_KEY_PREFIX,
        min_length=1,
        description="Name prefix identifying temporary stack admin keys",
    )
    cleanup_timeout_seconds: float = Field(
        default=10,
        gt=0,
        description="Timeout for best-effort cleanup of a temporary key after cancellation",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    http: HttpClientConfig = Field(
        default_factory=HttpClientConfig, description="Upstream HTTP configuration"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig, description="Storage configuration"
    )
    engine: EngineConfig = Field(default_factory=EngineConfig, description="Engine parameters")

    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    def get_custom(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self.custom.get(key, default)

    def set_custom(self, key: str, value: Any) -> None:
        """Set a custom configuration value."""
        self.custom[key] = value


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
