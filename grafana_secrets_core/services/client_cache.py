"""
Shared upstream client, built lazily from the stored configuration.

One client is shared by every concurrent request. Readers take the read
lock on the fast path; building and invalidating take the write lock, so
an ``invalidate()`` always happens-before the next ``get()`` builds a
fresh client.

Callers making upstream calls hold the client through ``lease()``. A
client dropped by ``invalidate()`` is closed once its last lease ends.
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..client.grafana_client import GrafanaCloudClient
from ..config import HttpClientConfig, get_config
from ..context.request_context import RequestContext
from ..schemas.config_schema import GrafanaCloudConfig
from ..utils.logger import ContextAwareLogger, get_logger
from ..utils.rwlock import ReadWriteLock
from ..utils.url_utils import normalize_base_url

ClientFactory = Callable[[str, str], Any]
ConfigLoader = Callable[[], Optional[GrafanaCloudConfig]]


def default_client_factory(base_url: str, api_key: str) -> GrafanaCloudClient:
    """Build a requests-backed client using the HTTP settings from AppConfig."""
    http: HttpClientConfig = get_config().http
    return GrafanaCloudClient(
        base_url,
        api_key,
        timeout=http.timeout_seconds,
        verify_ssl=http.verify_ssl,
        user_agent=http.user_agent,
    )


class UpstreamClientCache:
    """Caches one client bound to the current configuration."""

    def __init__(
        self,
        config_loader: ConfigLoader,
        client_factory: Optional[ClientFactory] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        """
        Initialize the cache.

        Args:
            config_loader: Returns the stored configuration, or None if unset
            client_factory: Builds a client from (base_url, api_key)
            logger: Optional logger instance
        """
        self._config_loader = config_loader
        self._client_factory = client_factory or default_client_factory
        self._lock = ReadWriteLock()
        self._client: Optional[Any] = None
        self._leases: Dict[int, int] = {}
        self._retired: List[Any] = []
        self._leases_lock = threading.Lock()
        self.logger = logger or get_logger()

    def get(self, ctx: Optional[RequestContext] = None) -> Any:
        """
        Return the cached client, building it on first use.

        A missing configuration is treated as an empty one: the client is
        still built and fails on its first call. The returned client is not
        leased; use ``lease()`` to keep it open across an invalidation.

        Args:
            ctx: Request context; a cancelled request does not build a client

        Returns:
            The shared client instance
        """
        return self._get(ctx, take_lease=False)

    @contextmanager
    def lease(self, ctx: Optional[RequestContext] = None) -> Iterator[Any]:
        """
        Hold the cached client for the duration of the block.

        Args:
            ctx: Request context; a cancelled request does not build a client

        Yields:
            The shared client instance
        """
        client = self._get(ctx, take_lease=True)
        try:
            yield client
        finally:
            self._release(client)

    def _get(self, ctx: Optional[RequestContext], take_lease: bool) -> Any:
        with self._lock.read_locked():
            if self._client is not None:
                return self._take(self._client, take_lease)

        if ctx is not None:
            ctx.raise_if_cancelled("building Grafana Cloud client")

        with self._lock.write_locked():
            # Another writer may have built it while we waited
            if self._client is not None:
                return self._take(self._client, take_lease)

            config = self._config_loader() or GrafanaCloudConfig()
            base_url = normalize_base_url(config.url)
            self._client = self._client_factory(base_url, config.key)

            self.logger.info(
                "Grafana Cloud client created",
                extra={"base_url": base_url, "organisation": config.organisation},
            )
            return self._take(self._client, take_lease)

    def _take(self, client: Any, take_lease: bool) -> Any:
        # Called under the read or write lock, so invalidate() cannot interleave
        if take_lease:
            with self._leases_lock:
                self._leases[id(client)] = self._leases.get(id(client), 0) + 1
        return client

    def _release(self, client: Any) -> None:
        with self._leases_lock:
            remaining = self._leases[id(client)] - 1
            if remaining:
                self._leases[id(client)] = remaining
                return
            del self._leases[id(client)]
            if not any(retired is client for retired in self._retired):
                return
            self._retired = [retired for retired in self._retired if retired is not client]
        self._close(client)

    def invalidate(self) -> None:
        """Drop the cached client; the next get() rebuilds it."""
        with self._lock.write_locked():
            client, self._client = self._client, None
            if client is None:
                return
            with self._leases_lock:
                in_use = id(client) in self._leases
                if in_use:
                    self._retired.append(client)
        self.logger.debug("Grafana Cloud client invalidated", extra={"in_use": in_use})
        if not in_use:
            self._close(client)

    def _close(self, client: Any) -> None:
        client.close()
        self.logger.debug("Grafana Cloud client closed")

    @property
    def is_cached(self) -> bool:
        with self._lock.read_locked():
            return self._client is not None
