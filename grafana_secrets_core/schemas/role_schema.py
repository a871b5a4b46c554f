"""
Pydantic schemas for roles.

A role names the kind of key to issue, the authorization level it
carries and the advisory lease durations. Roles are stored under
``roles/<name>``.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..enums import CredentialKind
from ..utils.url_utils import parse_duration_seconds


class RoleEntry(BaseModel):
    """A stored role."""

    credential_kind: CredentialKind = Field(
        default=CredentialKind.ORGANISATION_SCOPED, description="Kind of key issued for the role"
    )
    target_instance: str = Field(
        default="", description="Stack slug; required for instance-scoped keys"
    )
    authorization_level: str = Field(default="", description="Role carried by issued keys")
    ttl: int = Field(default=0, ge=0, description="Default lease in seconds, 0 = host default")
    max_ttl: int = Field(default=0, ge=0, description="Maximum lease in seconds, 0 = host default")

    def to_response_data(self) -> Dict[str, Any]:
        """Presentable role fields, durations in seconds."""
        return {
            "credential_kind": self.credential_kind.value,
            "target_instance": self.target_instance,
            "authorization_level": self.authorization_level,
            "ttl": self.ttl,
            "max_ttl": self.max_ttl,
        }


class RoleWrite(BaseModel):
    """
    Fields accepted by a role write.

    Every field is optional; the role service merges the supplied fields
    onto the stored role and validates the result as a whole.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    credential_kind: Optional[str] = None
    target_instance: Optional[str] = None
    authorization_level: Optional[str] = None
    ttl: Optional[int] = None
    max_ttl: Optional[int] = None

    @field_validator("ttl", "max_ttl", mode="before")
    @classmethod
    def parse_duration(cls, v):
        """Accept seconds or duration strings such as '120s' or '1h'."""
        if v is None:
            return v
        return parse_duration_seconds(v)
