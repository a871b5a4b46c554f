"""Storage adapters for the host's key/value storage."""

from typing import Optional

from ..config import get_config
from .memory_storage import InMemoryStorage
from .sql_storage import SQLStorage
from .storage_interface import Storage, StorageEntry


def create_storage(backend: Optional[str] = None) -> Storage:
    """
    Build the storage selected in configuration.

    Args:
        backend: 'memory' or 'sql'; defaults to config.storage.backend

    Returns:
        A ready-to-use storage instance
    """
    backend = (backend or get_config().storage.backend).lower()
    if backend == "sql":
        from ..db.db_config import initialize_db

        return SQLStorage(initialize_db())
    return InMemoryStorage()


__all__ = ["Storage", "StorageEntry", "InMemoryStorage", "SQLStorage", "create_storage"]
