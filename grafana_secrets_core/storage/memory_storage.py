"""
In-memory storage for tests and standalone runs.
"""

import copy
import threading
from typing import Dict, List, Optional

from .storage_interface import Storage, StorageEntry, child_names


class InMemoryStorage(Storage):
    """Thread-safe dictionary storage that copies documents in and out."""

    def __init__(self) -> None:
        self._data: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[StorageEntry]:
        with self._lock:
            value = self._data.get(key)
            if value is None:
                return None
            return StorageEntry(key=key, value=copy.deepcopy(value))

    def put(self, entry: StorageEntry) -> None:
        with self._lock:
            self._data[entry.key] = copy.deepcopy(entry.value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list(self, prefix: str) -> List[str]:
        with self._lock:
            return child_names(list(self._data), prefix)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
