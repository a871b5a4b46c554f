"""
Enums used across the grafana_secrets_core package.

This module contains enum definitions that are used by multiple modules
to avoid circular import issues.
"""

import enum
from typing import FrozenSet


class CredentialKind(str, enum.Enum):
    """
    Kinds of credentials the engine can issue.

    The values are the ones persisted in role and lease records, so they
    must not change.
    """

    ORGANISATION_SCOPED = "Cloud"
    INSTANCE_SCOPED = "Grafana"

    @property
    def authorization_levels(self) -> FrozenSet[str]:
        """Authorization levels the remote platform accepts for this kind."""
        if self is CredentialKind.INSTANCE_SCOPED:
            return INSTANCE_AUTHORIZATION_LEVELS
        return ORGANISATION_AUTHORIZATION_LEVELS


class Operation(str, enum.Enum):
    """Request operations the host dispatches to the backend."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    RENEW = "renew"
    REVOKE = "revoke"


ORGANISATION_AUTHORIZATION_LEVELS: FrozenSet[str] = frozenset(
    {"Viewer", "Editor", "Admin", "MetricsPublisher", "PluginPublisher"}
)
INSTANCE_AUTHORIZATION_LEVELS: FrozenSet[str] = frozenset({"Viewer", "Editor", "Admin"})
