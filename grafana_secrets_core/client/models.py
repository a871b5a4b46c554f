"""
Response models for the Grafana Cloud API.

Only the fields the engine uses are declared; anything else in the
payload is ignored.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CloudAPIKey(_ApiModel):
    """An organisation-level (Cloud) API key."""

    id: Optional[int] = None
    name: str
    role: str = ""
    token: SecretStr


class StackAPIKey(_ApiModel):
    """An API key created inside one Grafana stack."""

    id: int
    name: str
    key: SecretStr


class Stack(_ApiModel):
    """The parts of a stack (instance) description the engine needs."""

    id: Optional[int] = None
    slug: str
    url: str = Field(..., min_length=1)


class TemporaryStackKey(_ApiModel):
    """
    The short-lived admin key minted to act on a stack.

    Kept as its own type so it can never be mistaken for, or returned as,
    a user-facing credential.
    """

    id: int
    name: str
    stack_slug: str
