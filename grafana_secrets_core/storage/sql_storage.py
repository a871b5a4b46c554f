"""
SQLAlchemy-backed storage.

Each call runs in its own short session so the storage object can be
shared across request threads.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.db_config import DatabaseManager
from ..db.db_storage_models import StorageEntryRecord
from ..exceptions import StorageError
from ..utils.logger import get_logger
from .storage_interface import Storage, StorageEntry, child_names


class SQLStorage(Storage):
    """Storage on the ``storage_entries`` table."""

    def __init__(self, db_manager: DatabaseManager):
        """
        Initialize with a database manager.

        Args:
            db_manager: Manager whose engine already has the tables created
        """
        self.db_manager = db_manager
        self.logger = get_logger()

    @contextmanager
    def _session(self, action: str, key: str) -> Iterator[Session]:
        session = self.db_manager.get_session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            self.logger.error(
                f"Storage {action} failed",
                extra={"key": key, "error": str(e), "error_type": type(e).__name__},
            )
            raise StorageError(f"Failed to {action} storage entry", cause=e, key=key) from e
        finally:
            session.close()

    def get(self, key: str) -> Optional[StorageEntry]:
        with self._session("read", key) as session:
            record = session.get(StorageEntryRecord, key)
            if record is None:
                return None
            return StorageEntry(key=record.key, value=record.value)

    def put(self, entry: StorageEntry) -> None:
        with self._session("write", entry.key) as session:
            record = session.get(StorageEntryRecord, entry.key)
            if record is None:
                session.add(StorageEntryRecord(key=entry.key, value=entry.value))
            else:
                record.value = entry.value

    def delete(self, key: str) -> None:
        with self._session("delete", key) as session:
            record = session.get(StorageEntryRecord, key)
            if record is not None:
                session.delete(record)

    def list(self, prefix: str) -> List[str]:
        with self._session("list", prefix) as session:
            keys = session.scalars(
                select(StorageEntryRecord.key).where(StorageEntryRecord.key.startswith(prefix))
            ).all()
            return child_names(keys, prefix)
