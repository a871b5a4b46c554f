"""
Schemas for issued credentials and the lease envelope handed to the host.

``IssuedCredential`` is the only place the secret token lives; the host
persists ``LeaseMetadata`` (identifiers only) and hands it back on renew
and revoke.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, SecretStr

from ..constants import SECRET_TYPE
from ..enums import CredentialKind


class LeaseMetadata(BaseModel):
    """Non-secret identifiers of an issued key, persisted by the host."""

    external_id: str = Field(default="", description="Identifier assigned by Grafana Cloud")
    external_name: str = Field(default="", description="Key name chosen by the engine")
    credential_kind: CredentialKind = Field(default=CredentialKind.ORGANISATION_SCOPED)
    target_instance: Optional[str] = Field(default=None, description="Stack slug, instance keys only")
    role: str = Field(default="", description="Role the key was issued for")

    @classmethod
    def from_internal_data(cls, data: Optional[Dict[str, Any]]) -> "LeaseMetadata":
        """
        Decode lease internal data.

        Reads the current keys first and falls back to the legacy keys
        (``id``, ``name``, ``type``, ``stack_slug``). Records that predate
        the kind field carry none and are organisation-scoped keys.
        """
        data = data or {}

        raw_kind = data.get("credential_kind") or data.get("type")
        if raw_kind:
            kind = CredentialKind(raw_kind)
        else:
            kind = CredentialKind.ORGANISATION_SCOPED

        external_id = data.get("external_id", data.get("id"))
        return cls(
            external_id="" if external_id is None else str(external_id),
            external_name=data.get("external_name") or data.get("name") or "",
            credential_kind=kind,
            target_instance=data.get("target_instance") or data.get("stack_slug") or None,
            role=data.get("role") or "",
        )

    def to_internal_data(self) -> Dict[str, Any]:
        data = {
            "external_id": self.external_id,
            "external_name": self.external_name,
            "credential_kind": self.credential_kind.value,
        }
        if self.target_instance:
            data["target_instance"] = self.target_instance
        if self.role:
            data["role"] = self.role
        return data


class IssuedCredential(BaseModel):
    """A user-facing key freshly minted for a role."""

    external_id: str = Field(default="", description="Identifier assigned by Grafana Cloud")
    external_name: str = Field(..., min_length=1, description="'<role>_<uuid>' key name")
    token: SecretStr = Field(..., description="Bearer token, only ever returned once")
    credential_kind: CredentialKind
    target_instance: Optional[str] = None
    role: str = ""
    telemetry: Dict[str, str] = Field(
        default_factory=dict, description="Configured telemetry users/URLs at issue time"
    )

    def response_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "token": self.token.get_secret_value(),
            "credential_kind": self.credential_kind.value,
        }
        data.update(self.telemetry)
        return data

    def lease_metadata(self) -> LeaseMetadata:
        return LeaseMetadata(
            external_id=self.external_id,
            external_name=self.external_name,
            credential_kind=self.credential_kind,
            target_instance=self.target_instance,
            role=self.role,
        )


class SecretResponse(BaseModel):
    """Lease envelope: response data for the caller, internal data for the host."""

    secret_type: str = SECRET_TYPE
    data: Dict[str, Any] = Field(default_factory=dict)
    internal_data: Dict[str, Any] = Field(default_factory=dict)
    ttl: Optional[int] = Field(default=None, description="Advisory lease in seconds")
    max_ttl: Optional[int] = Field(default=None, description="Advisory maximum lease in seconds")

    def apply_role_ttls(self, ttl: int, max_ttl: int) -> "SecretResponse":
        """Advise the role's durations; zero leaves the host defaults in place."""
        if ttl > 0:
            self.ttl = ttl
        if max_ttl > 0:
            self.max_ttl = max_ttl
        return self
