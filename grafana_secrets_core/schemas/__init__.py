"""Pydantic schemas for configuration, roles and issued credentials."""

from .config_schema import ConfigWrite, GrafanaCloudConfig, TelemetryEndpointConfig
from .credential_schema import IssuedCredential, LeaseMetadata, SecretResponse
from .role_schema import RoleEntry, RoleWrite

__all__ = [
    "ConfigWrite",
    "GrafanaCloudConfig",
    "TelemetryEndpointConfig",
    "IssuedCredential",
    "LeaseMetadata",
    "SecretResponse",
    "RoleEntry",
    "RoleWrite",
]
