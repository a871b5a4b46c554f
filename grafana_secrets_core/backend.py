"""
Host-facing backend for the Grafana Cloud secrets engine.

The host hands every request to ``GrafanaCloudBackend.handle_request``
and calls ``invalidate(key)`` when a stored key changes underneath it.
Paths:

- ``config``: read, create, update, delete the connection configuration
- ``roles/``: list role names
- ``roles/<name>``: read, create, update, delete a role
- ``creds/<name>``: read (or update) issues a key for the role

Renew and revoke act on the lease envelope carried in ``Request.secret``.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .config import EngineConfig
from .constants import ROLE_NAME_PATTERN, StoragePath
from .context.request_context import RequestContext
from .enums import Operation
from .exceptions import ValidationError, clear_correlation_id, set_correlation_id
from .schemas.credential_schema import SecretResponse
from .services.client_cache import ClientFactory, UpstreamClientCache
from .services.config_service import ConfigService
from .services.credential_service import CredentialService
from .services.role_service import RoleService
from .storage import Storage, create_storage
from .utils.logger import ContextAwareLogger, get_logger

_ROLE_PATH = re.compile(rf"^roles/(?P<name>{ROLE_NAME_PATTERN})$")
_ROLE_LIST_PATHS = ("roles", "roles/")
_CREDS_PATH = re.compile(rf"^creds/(?P<name>{ROLE_NAME_PATTERN})$")


class Request(BaseModel):
    """A request routed to the backend by the host."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    operation: Operation
    path: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)
    secret: Optional[SecretResponse] = Field(
        default=None, description="Lease envelope for renew and revoke"
    )
    context: RequestContext = Field(default_factory=RequestContext.background)


class Response(BaseModel):
    """A response handed back to the host."""

    data: Optional[Dict[str, Any]] = None
    keys: Optional[List[str]] = None
    secret: Optional[SecretResponse] = None
    error: Optional[str] = None
    status_code: int = 200

    @classmethod
    def error_response(cls, message: str, status_code: int = 400) -> "Response":
        return cls(error=message, status_code=status_code)

    @property
    def is_error(self) -> bool:
        return self.error is not None


class GrafanaCloudBackend:
    """Wires storage, services and the shared client together for the host."""

    def __init__(
        self,
        storage: Optional[Storage] = None,
        client_factory: Optional[ClientFactory] = None,
        engine_config: Optional[EngineConfig] = None,
        logger: Optional[ContextAwareLogger] = None,
    ):
        """
        Initialize the backend.

        Args:
            storage: Host storage; defaults to the backend from AppConfig.storage
            client_factory: Builds a Grafana Cloud client from (base_url, api_key)
            engine_config: Engine parameters; defaults to AppConfig.engine
            logger: Optional logger instance
        """
        self.logger = logger or get_logger()
        self.storage = storage if storage is not None else create_storage()

        self.config_service = ConfigService(self.storage, on_change=self.reset, logger=self.logger)
        self.role_service = RoleService(self.storage, logger=self.logger)
        self.client_cache = UpstreamClientCache(
            self.config_service.get_config, client_factory=client_factory, logger=self.logger
        )
        self.credential_service = CredentialService(
            self.role_service,
            self.config_service,
            self.client_cache,
            engine_config=engine_config,
            logger=self.logger,
        )

    def reset(self) -> None:
        """Drop the cached Grafana Cloud client."""
        self.client_cache.invalidate()

    def invalidate(self, key: str) -> None:
        """Host callback for a stored key changed outside this backend."""
        if key == StoragePath.CONFIG.value:
            self.reset()

    def handle_request(self, request: Request) -> Optional[Response]:
        """
        Dispatch a host request.

        Validation failures become error responses; every other error
        propagates to the host.

        Args:
            request: The request to handle

        Returns:
            The response, or None for operations without a payload
        """
        set_correlation_id(request.context.correlation_id)
        try:
            return self._dispatch(request)
        except ValidationError as e:
            return Response.error_response(e.message, e.status_code)
        finally:
            clear_correlation_id()

    def _dispatch(self, request: Request) -> Optional[Response]:
        op = request.operation

        if op in (Operation.RENEW, Operation.REVOKE):
            if request.secret is None:
                raise ValidationError(f"{op.value} request carries no secret", field="secret")
            if op is Operation.RENEW:
                return Response(secret=self.credential_service.renew(request.secret))
            self.credential_service.revoke(request.secret, request.context)
            return None

        path = request.path.strip()

        if path == StoragePath.CONFIG.value:
            return self._handle_config(request)

        if path in _ROLE_LIST_PATHS:
            if op is Operation.LIST:
                return Response(keys=self.role_service.list())
            return self._unsupported(request)

        match = _ROLE_PATH.match(path)
        if match:
            return self._handle_role(request, match.group("name"))

        match = _CREDS_PATH.match(path)
        if match:
            if op in (Operation.READ, Operation.UPDATE):
                secret = self.credential_service.issue(match.group("name").lower(), request.context)
                return Response(data=secret.data, secret=secret)
            return self._unsupported(request)

        return Response.error_response(f"unsupported path: {request.path}", status_code=404)

    def _handle_config(self, request: Request) -> Optional[Response]:
        op = request.operation
        if op is Operation.READ:
            data = self.config_service.read()
            return Response(data=data) if data is not None else None
        if op in (Operation.CREATE, Operation.UPDATE):
            self.config_service.write(request.data, is_create=op is Operation.CREATE)
            return None
        if op is Operation.DELETE:
            self.config_service.delete()
            return None
        return self._unsupported(request)

    def _handle_role(self, request: Request, name: str) -> Optional[Response]:
        op = request.operation
        if op is Operation.READ:
            data = self.role_service.read(name)
            return Response(data=data) if data is not None else None
        if op in (Operation.CREATE, Operation.UPDATE):
            self.role_service.write(name, request.data, is_create=op is Operation.CREATE)
            return None
        if op is Operation.DELETE:
            self.role_service.delete(name)
            return None
        return self._unsupported(request)

    @staticmethod
    def _unsupported(request: Request) -> Response:
        return Response.error_response(
            f"unsupported operation {request.operation.value} on {request.path}", status_code=405
        )
