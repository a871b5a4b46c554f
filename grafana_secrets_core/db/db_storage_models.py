"""
Storage entry model backing the SQL storage adapter.

Just the data structure - keys are host storage paths such as
``config`` or ``roles/<name>``, values are JSON documents.
"""

from sqlalchemy import Column, String

from .db_base import JSON, TimestampMixin
from .db_config import Base


class StorageEntryRecord(Base, TimestampMixin):
    """One key/value entry of the engine's storage view."""

    __tablename__ = "storage_entries"

    key = Column(String(512), primary_key=True)
    value = Column(JSON, nullable=False)
