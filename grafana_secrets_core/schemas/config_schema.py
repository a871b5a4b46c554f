"""
Pydantic schemas for the Grafana Cloud connection configuration.

The configuration is stored under ``config`` as a flat JSON document
(``organisation``, ``key``, ``url``, ``user``, ``<endpoint>_user``,
``<endpoint>_url``) and exposed to the engine as a typed model with the
telemetry endpoints grouped per endpoint.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import TelemetryEndpoint


class TelemetryEndpointConfig(BaseModel):
    """User/URL pair for one telemetry endpoint."""

    user: str = Field(default="", description="User (instance ID) for the endpoint")
    url: str = Field(default="", description="URL at which the endpoint is reachable")


class GrafanaCloudConfig(BaseModel):
    """Connection configuration for the Grafana Cloud API."""

    organisation: str = Field(default="", description="Organisation slug")
    key: str = Field(default="", description="Admin API key used to mint and delete keys")
    url: str = Field(default="", description="Grafana Cloud API URL")
    user: str = Field(
        default="",
        description="(Deprecated) Prometheus user returned with every credential",
    )
    endpoints: Dict[TelemetryEndpoint, TelemetryEndpointConfig] = Field(
        default_factory=dict, description="Telemetry endpoint user/URL pairs"
    )

    def __repr__(self) -> str:
        """String representation with the admin key masked."""
        return (
            f"GrafanaCloudConfig(organisation='{self.organisation}', "
            f"url='{self.url}', key='***')"
        )

    __str__ = __repr__

    def endpoint(self, name: TelemetryEndpoint) -> TelemetryEndpointConfig:
        """Return the pair for ``name``, empty when never configured."""
        return self.endpoints.get(name) or TelemetryEndpointConfig()

    @classmethod
    def from_stored(cls, value: Dict[str, Any]) -> "GrafanaCloudConfig":
        """Decode the flat stored document."""
        endpoints = {}
        for name in TelemetryEndpoint:
            user = value.get(f"{name.value}_user") or ""
            url = value.get(f"{name.value}_url") or ""
            if user or url:
                endpoints[name] = TelemetryEndpointConfig(user=user, url=url)
        return cls(
            organisation=value.get("organisation") or "",
            key=value.get("key") or "",
            url=value.get("url") or "",
            user=value.get("user") or "",
            endpoints=endpoints,
        )

    def to_stored(self) -> Dict[str, str]:
        """Encode as the flat document kept in storage and returned on read."""
        data = {
            "organisation": self.organisation,
            "key": self.key,
            "url": self.url,
            "user": self.user,
        }
        for name in TelemetryEndpoint:
            pair = self.endpoint(name)
            data[f"{name.value}_user"] = pair.user
            data[f"{name.value}_url"] = pair.url
        return data

    def telemetry_response_data(self) -> Dict[str, str]:
        """Non-empty user/URL values re-surfaced alongside every issued credential."""
        data = {}
        if self.user:
            data["user"] = self.user
        for name in TelemetryEndpoint:
            pair = self.endpoint(name)
            if pair.user:
                data[f"{name.value}_user"] = pair.user
            if pair.url:
                data[f"{name.value}_url"] = pair.url
        return data


class ConfigWrite(BaseModel):
    """Fields accepted by a configuration write; unset fields keep their stored value."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    organisation: Optional[str] = None
    key: Optional[str] = None
    url: Optional[str] = None
    user: Optional[str] = None
    prometheus_user: Optional[str] = None
    prometheus_url: Optional[str] = None
    loki_user: Optional[str] = None
    loki_url: Optional[str] = None
    tempo_user: Optional[str] = None
    tempo_url: Optional[str] = None
    alertmanager_user: Optional[str] = None
    alertmanager_url: Optional[str] = None
    graphite_user: Optional[str] = None
    graphite_url: Optional[str] = None

    def endpoint_field(self, name: TelemetryEndpoint, part: str) -> Optional[str]:
        """Value of ``<endpoint>_<part>`` when it was supplied."""
        return getattr(self, f"{name.value}_{part}")
