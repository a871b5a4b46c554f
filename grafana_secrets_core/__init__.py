"""
Grafana Cloud secrets engine.

Issues, renews and revokes short-lived Grafana Cloud API keys for a
secrets-management host.
"""

from .backend import GrafanaCloudBackend, Request, Response
from .enums import CredentialKind, Operation

__version__ = "0.1.0"

__all__ = [
    "GrafanaCloudBackend",
    "Request",
    "Response",
    "CredentialKind",
    "Operation",
    "__version__",
]
