"""
Constants and enums for the Grafana Cloud secrets engine.

This module centralizes the magic strings used across the engine:
storage paths, environment variable names, telemetry endpoint names
and the fixed parameters of the scoped administrative key protocol.
"""

from enum import Enum


class StoragePath(str, Enum):
    """Storage keys and prefixes owned by the engine."""

    CONFIG = "config"
    ROLES = "roles/"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    LOG_LEVEL = "LOG_LEVEL"
    DATABASE_URL = "DATABASE_URL"
    STORAGE_BACKEND = "STORAGE_BACKEND"
    HTTP_TIMEOUT = "GRAFANA_HTTP_TIMEOUT"
    HTTP_VERIFY_SSL = "GRAFANA_HTTP_VERIFY_SSL"


class TelemetryEndpoint(str, Enum):
    """Telemetry endpoints whose user/URL pairs are re-surfaced with every credential."""

    PROMETHEUS = "prometheus"
    LOKI = "loki"
    TEMPO = "tempo"
    ALERTMANAGER = "alertmanager"
    GRAPHITE = "graphite"


# Secret type registered with the host for issued keys
SECRET_TYPE = "GrafanaCloudKey"

# Scoped administrative keys: fixed lifetime and recognizable name prefix
SCOPED_KEY_TTL_SECONDS = 30
SCOPED_KEY_PREFIX = "grafana-secrets-core-admin-"
SCOPED_KEY_ROLE = "Admin"

# Suffix stripped from the configured URL; the client expects the platform root
API_ROOT_SEGMENT = "api"

# Pattern for role names in request paths
ROLE_NAME_PATTERN = r"\w(?:[\w.-]*\w)?"
