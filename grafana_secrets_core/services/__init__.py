"""Service layer for configuration, roles and the credential lifecycle."""

from .base_service import BaseService
from .client_cache import UpstreamClientCache, default_client_factory
from .config_service import ConfigService
from .credential_service import CredentialService, generate_key_name
from .role_service import RoleService, role_key
from .stack_scope import stack_scoped_client

__all__ = [
    "BaseService",
    "UpstreamClientCache",
    "default_client_factory",
    "ConfigService",
    "CredentialService",
    "generate_key_name",
    "RoleService",
    "role_key",
    "stack_scoped_client",
]
