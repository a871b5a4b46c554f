"""
Service for the Grafana Cloud connection configuration stored under ``config``.

Writes merge the supplied fields onto the stored document, validate the
result and replace the document wholesale. Every successful write or
delete calls the change callback so the cached upstream client is dropped.
"""

from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..constants import StoragePath, TelemetryEndpoint
from ..context.operation_context import operation
from ..exceptions import InvalidConfigurationError, StorageError
from ..schemas.config_schema import ConfigWrite, GrafanaCloudConfig, TelemetryEndpointConfig
from ..storage.storage_interface import Storage, StorageEntry
from ..utils.logger import ContextAwareLogger
from ..utils.url_utils import is_absolute_url
from .base_service import BaseService


class ConfigService(BaseService):
    """Reads, writes and deletes the engine configuration."""

    def __init__(
        self,
        storage: Storage,
        on_change: Optional[Callable[[], None]] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        """
        Initialize the config service.

        Args:
            storage: Host storage
            on_change: Called after every successful write or delete
            logger: Optional logger instance
        """
        super().__init__(storage, logger)
        self._on_change = on_change

    def exists(self) -> bool:
        return self._load_entry(StoragePath.CONFIG.value) is not None

    def get_config(self) -> Optional[GrafanaCloudConfig]:
        """Return the stored configuration, or None when never written."""
        entry = self._load_entry(StoragePath.CONFIG.value)
        if entry is None:
            return None
        return GrafanaCloudConfig.from_stored(entry.value)

    def read(self) -> Optional[Dict[str, str]]:
        """Flat configuration fields for a read response, None when unset."""
        config = self.get_config()
        if config is None:
            return None
        return config.to_stored()

    @operation()
    def write(self, fields: Dict[str, Any], is_create: bool) -> GrafanaCloudConfig:
        """
        Merge ``fields`` onto the stored configuration and persist it.

        Args:
            fields: Raw field data from the request
            is_create: True for a create operation, False for an update

        Returns:
            The configuration as stored

        Raises:
            InvalidConfigurationError: If required fields are missing, a URL
                is not absolute, or an update targets a missing configuration
        """
        try:
            update = ConfigWrite.model_validate(fields or {})
        except PydanticValidationError as e:
            raise InvalidConfigurationError(str(e), cause=e) from e

        config = self.get_config()
        if config is None:
            if not is_create:
                raise InvalidConfigurationError("config not found during update operation")
            config = GrafanaCloudConfig()

        config = self._merge(config, update)

        if is_create:
            for field in ("organisation", "key", "url"):
                if not getattr(config, field):
                    raise InvalidConfigurationError(f"missing {field} in configuration", field=field)

        self._put_config(config)
        self.logger.info(
            "Configuration written",
            extra={"organisation": config.organisation, "url": config.url, "is_create": is_create},
        )
        self._notify_change()
        return config

    @operation()
    def delete(self) -> None:
        self._remove(StoragePath.CONFIG.value)
        self.logger.info("Configuration deleted")
        self._notify_change()

    def _put_config(self, config: GrafanaCloudConfig) -> None:
        try:
            self.storage.put(StorageEntry(key=StoragePath.CONFIG.value, value=config.to_stored()))
        except StorageError as e:
            self._handle_service_exception("store config", e, StoragePath.CONFIG.value)

    def _merge(self, config: GrafanaCloudConfig, update: ConfigWrite) -> GrafanaCloudConfig:
        merged = config.model_copy(deep=True)

        if update.organisation is not None:
            merged.organisation = update.organisation
        if update.key is not None:
            merged.key = update.key
        if update.url is not None:
            _require_absolute("url", update.url)
            merged.url = update.url
        if update.user is not None:
            merged.user = update.user

        for name in TelemetryEndpoint:
            user = update.endpoint_field(name, "user")
            url = update.endpoint_field(name, "url")
            if user is None and url is None:
                continue

            pair = merged.endpoint(name).model_copy()
            if user is not None:
                pair.user = user
                # The top-level user mirrors the Prometheus user
                if name is TelemetryEndpoint.PROMETHEUS:
                    merged.user = user
            if url is not None:
                _require_absolute(f"{name.value}_url", url)
                pair.url = url
            merged.endpoints[name] = TelemetryEndpointConfig(user=pair.user, url=pair.url)

        return merged

    def _notify_change(self) -> None:
        if self._on_change is not None:
            self._on_change()


def _require_absolute(field: str, value: str) -> None:
    if not is_absolute_url(value):
        raise InvalidConfigurationError(f"invalid {field} in configuration", field=field)
