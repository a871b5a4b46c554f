"""Utility modules for the Grafana Cloud secrets engine."""

from .logger import (
    ContextAwareLogger,
    RequestContextFilter,
    configure_logging,
    get_logger,
    reset_logging,
)
from .rwlock import ReadWriteLock
from .url_utils import is_absolute_url, normalize_base_url, parse_duration_seconds

__all__ = [
    "ContextAwareLogger",
    "RequestContextFilter",
    "configure_logging",
    "get_logger",
    "reset_logging",
    "ReadWriteLock",
    "is_absolute_url",
    "normalize_base_url",
    "parse_duration_seconds",
]
