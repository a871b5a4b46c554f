"""
Base service implementation with common functionality for all services.

Services read and write pydantic models through the host-supplied
``Storage``; this base keeps the load/store plumbing and the storage
error translation in one place.
"""

from typing import NoReturn, Optional, Type, TypeVar

from pydantic import BaseModel

from ..exceptions import ErrorCode, ServiceError, StorageError
from ..storage.storage_interface import Storage, StorageEntry
from ..utils.logger import ContextAwareLogger, get_logger

TModel = TypeVar("TModel", bound=BaseModel)


class BaseService:
    """Base service with common functionality for all services."""

    def __init__(self, storage: Storage, logger: Optional[ContextAwareLogger] = None):
        """
        Initialize the base service.

        Args:
            storage: Host storage for engine documents
            logger: Optional logger instance
        """
        self.storage = storage
        self.logger = logger or get_logger()

    def _handle_service_exception(
        self, operation: str, exception: Exception, key: Optional[str] = None
    ) -> NoReturn:
        """
        Handle and log storage exceptions consistently.

        Args:
            operation: Operation being performed
            exception: Exception that occurred
            key: Storage key involved, if any

        Raises:
            ServiceError wrapping the original exception
        """
        error_msg = f"Error in {operation}: {str(exception)}"
        self.logger.error(
            error_msg,
            extra={
                "operation": operation,
                "key": key,
                "error_type": type(exception).__name__,
                "error_details": str(exception),
            },
        )
        raise ServiceError(
            error_msg,
            error_code=ErrorCode.STORAGE_ERROR,
            operation=operation,
            key=key,
            cause=exception,
        ) from exception

    def _load_entry(self, key: str) -> Optional[StorageEntry]:
        try:
            return self.storage.get(key)
        except StorageError as e:
            self._handle_service_exception(f"load {key}", e, key)

    def _load(self, key: str, model_class: Type[TModel]) -> Optional[TModel]:
        """Read and decode the document under ``key``; None when absent."""
        entry = self._load_entry(key)
        if entry is None:
            return None
        return entry.decode(model_class)

    def _store(self, key: str, model: BaseModel) -> None:
        try:
            self.storage.put(StorageEntry.from_model(key, model))
        except StorageError as e:
            self._handle_service_exception(f"store {key}", e, key)

    def _remove(self, key: str) -> None:
        try:
            self.storage.delete(key)
        except StorageError as e:
            self._handle_service_exception(f"delete {key}", e, key)
