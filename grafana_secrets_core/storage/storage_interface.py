"""
Storage boundary between the engine and its host.

The host owns durability and encryption at rest; the engine only needs
get/put/delete/list of JSON documents under string keys.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field

TModel = TypeVar("TModel", bound=BaseModel)


class StorageEntry(BaseModel):
    """A single stored document."""

    key: str = Field(..., min_length=1, description="Storage path, e.g. 'config' or 'roles/reader'")
    value: Dict[str, Any] = Field(default_factory=dict, description="JSON-encodable document")

    @classmethod
    def from_model(cls, key: str, model: BaseModel) -> "StorageEntry":
        """Build an entry from a pydantic model using its JSON-mode dump."""
        return cls(key=key, value=model.model_dump(mode="json"))

    def decode(self, model_class: Type[TModel]) -> TModel:
        """Validate the stored document back into a model."""
        return model_class.model_validate(self.value)


class Storage(ABC):
    """Key/value storage supplied by the host."""

    @abstractmethod
    def get(self, key: str) -> Optional[StorageEntry]:
        """Return the entry stored under ``key`` or None."""

    @abstractmethod
    def put(self, entry: StorageEntry) -> None:
        """Store ``entry``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""

    @abstractmethod
    def list(self, prefix: str) -> List[str]:
        """
        List the immediate children under ``prefix``.

        Keys nested deeper are reported once as ``<child>/``, mirroring
        a directory listing. Results are sorted.
        """


def child_names(keys, prefix: str) -> List[str]:
    """Collapse full keys under ``prefix`` into sorted immediate child names."""
    children = set()
    for key in keys:
        if not key.startswith(prefix):
            continue
        remainder = key[len(prefix) :]
        if not remainder:
            continue
        head, sep, _ = remainder.partition("/")
        children.add(head + sep)
    return sorted(children)
