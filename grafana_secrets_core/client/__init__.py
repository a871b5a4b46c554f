"""Grafana Cloud API client."""

from .grafana_client import GrafanaCloudClient, StackCleanup, StackScopedClient
from .models import CloudAPIKey, Stack, StackAPIKey, TemporaryStackKey

__all__ = [
    "GrafanaCloudClient",
    "StackCleanup",
    "StackScopedClient",
    "CloudAPIKey",
    "Stack",
    "StackAPIKey",
    "TemporaryStackKey",
]
