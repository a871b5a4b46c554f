"""
SQLAlchemy models and connection management for durable storage.
"""

from .db_base import JSON, TimestampMixin, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    close_db,
    get_db_manager,
    get_development_config,
    get_production_config,
    import_all_models,
    initialize_db,
    set_db_manager,
)
from .db_storage_models import StorageEntryRecord

__all__ = [
    "Base",
    "JSON",
    "TimestampMixin",
    "utc_now",
    "DatabaseConfig",
    "DatabaseManager",
    "close_db",
    "get_db_manager",
    "get_development_config",
    "get_production_config",
    "import_all_models",
    "initialize_db",
    "set_db_manager",
    "StorageEntryRecord",
]
