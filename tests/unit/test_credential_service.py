"""
Unit tests for CredentialService: issue, renew and revoke.
"""

import json
import threading
from unittest.mock import Mock

import pytest
import requests

from grafana_secrets_core.client.grafana_client import GrafanaCloudClient
from grafana_secrets_core.enums import CredentialKind
from grafana_secrets_core.exceptions import (
    GrafanaClientError,
    InternalError,
    InvalidConfigurationError,
    RequestCancelledError,
    RoleNotFoundError,
)
from grafana_secrets_core.context.request_context import RequestContext
from grafana_secrets_core.schemas.credential_schema import LeaseMetadata, SecretResponse
from grafana_secrets_core.services.client_cache import UpstreamClientCache
from grafana_secrets_core.services.config_service import ConfigService
from grafana_secrets_core.services.credential_service import CredentialService, generate_key_name
from grafana_secrets_core.services.role_service import RoleService

R1 = {"credential_kind": "Cloud", "authorization_level": "Viewer", "ttl": 300, "max_ttl": 3600}
R2 = {
    "credential_kind": "Grafana",
    "target_instance": "stack1",
    "authorization_level": "Viewer",
    "ttl": 120,
    "max_ttl": 300,
}


@pytest.fixture
def services(storage, fake_cloud):
    config_service = ConfigService(storage)
    role_service = RoleService(storage)
    cache = UpstreamClientCache(config_service.get_config, client_factory=fake_cloud.factory)
    config_service._on_change = cache.invalidate

    config_service.write(
        {
            "organisation": "acme",
            "key": "glc_admin",
            "url": "https://grafana.com/api/",
            "prometheus_user": "123",
            "loki_url": "https://logs.grafana.net",
        },
        is_create=True,
    )
    role_service.write("r1", R1, is_create=True)
    role_service.write("r2", R2, is_create=True)
    return role_service, config_service, cache


@pytest.fixture
def credential_service(services):
    role_service, config_service, cache = services
    return CredentialService(role_service, config_service, cache)


class TestIssue:
    """Test key issuance."""

    def test_issue_organisation_key(self, credential_service, fake_cloud, ctx):
        """Test the r1 scenario."""
        secret = credential_service.issue("r1", ctx)

        assert secret.data["token"]
        assert secret.data["credential_kind"] == "Cloud"
        assert secret.data["user"] == "123"
        assert secret.data["prometheus_user"] == "123"
        assert secret.data["loki_url"] == "https://logs.grafana.net"
        assert "tempo_user" not in secret.data
        assert secret.internal_data["credential_kind"] == CredentialKind.ORGANISATION_SCOPED.value
        assert "target_instance" not in secret.internal_data
        assert secret.internal_data["role"] == "r1"
        assert secret.ttl == 300
        assert secret.max_ttl == 3600

        (call,) = fake_cloud.calls_named("create_cloud_api_key")
        assert call[1] == "acme"
        assert call[2] == secret.internal_data["external_name"]
        assert call[3] == "Viewer"
        assert fake_cloud.calls_named("acquire") == []

    def test_issue_instance_key(self, credential_service, fake_cloud, ctx):
        """Test the r2 scenario."""
        secret = credential_service.issue("r2", ctx)

        assert secret.internal_data["target_instance"] == "stack1"
        assert secret.internal_data["external_id"]
        assert secret.internal_data["credential_kind"] == "Grafana"
        assert secret.data["token"].startswith("glsa_")

        (create,) = fake_cloud.calls_named("create_api_key")
        assert create == ("create_api_key", "stack1", secret.internal_data["external_name"], "Viewer", 120)
        assert len(fake_cloud.calls_named("acquire")) == 1
        assert len(fake_cloud.calls_named("cleanup")) == 1
        assert fake_cloud.live_admin_keys() == 0

    def test_issue_twice_yields_distinct_keys(self, credential_service, ctx):
        first = credential_service.issue("r1", ctx)
        second = credential_service.issue("r1", ctx)

        assert first.data["token"] != second.data["token"]
        assert first.internal_data["external_name"] != second.internal_data["external_name"]

    def test_key_name_format(self):
        name = generate_key_name("reader")

        prefix, _, suffix = name.partition("_")
        assert prefix == "reader"
        assert len(suffix) == 36

    def test_zero_ttls_leave_host_defaults(self, credential_service, services, ctx):
        role_service, _, _ = services
        role_service.write("r0", {"authorization_level": "Admin"}, is_create=True)

        secret = credential_service.issue("r0", ctx)

        assert secret.ttl is None
        assert secret.max_ttl is None

    def test_missing_role(self, credential_service, fake_cloud, ctx):
        with pytest.raises(RoleNotFoundError) as exc_info:
            credential_service.issue("ghost", ctx)

        assert exc_info.value.role_name == "ghost"
        assert fake_cloud.calls == []

    def test_empty_role_name(self, credential_service, ctx):
        with pytest.raises(InvalidConfigurationError):
            credential_service.issue("", ctx)

    def test_upstream_failure_is_internal_error(self, credential_service, fake_cloud, ctx):
        fake_cloud.fail_on["create_cloud_api_key"] = 500

        with pytest.raises(InternalError, match="error creating Grafana Cloud token") as exc_info:
            credential_service.issue("r1", ctx)

        assert not isinstance(exc_info.value, RoleNotFoundError)
        assert isinstance(exc_info.value.cause, GrafanaClientError)

    def test_instance_failure_still_cleans_up(self, credential_service, fake_cloud, ctx):
        fake_cloud.fail_on["create_api_key"] = 500

        with pytest.raises(InternalError):
            credential_service.issue("r2", ctx)

        assert len(fake_cloud.calls_named("cleanup")) == 1
        assert fake_cloud.live_admin_keys() == 0

    def test_cancelled_request(self, credential_service, fake_cloud):
        ctx = RequestContext()
        ctx.cancel()

        with pytest.raises(RequestCancelledError):
            credential_service.issue("r1", ctx)

        assert fake_cloud.calls_named("create_cloud_api_key") == []

    def test_unconfigured_backend(self, storage, fake_cloud, ctx):
        config_service = ConfigService(storage)
        role_service = RoleService(storage)
        role_service.write("r1", R1, is_create=True)
        cache = UpstreamClientCache(config_service.get_config, client_factory=fake_cloud.factory)
        service = CredentialService(role_service, config_service, cache)

        service.issue("r1", ctx)

        assert fake_cloud.clients[0].base_url == ""
        assert fake_cloud.calls_named("create_cloud_api_key")[0][1] == ""


class TestIssueOverHttp:
    """Test issuance through the requests client with a mocked session."""

    @pytest.fixture
    def session(self):
        return Mock(spec=requests.Session)

    @pytest.fixture
    def http_service(self, storage, session):
        config_service = ConfigService(storage)
        role_service = RoleService(storage)
        cache = UpstreamClientCache(
            config_service.get_config,
            client_factory=lambda base_url, api_key: GrafanaCloudClient(base_url, api_key, session=session),
        )
        config_service.write(
            {"organisation": "acme", "key": "glc_admin", "url": "https://grafana.com/api/"},
            is_create=True,
        )
        role_service.write("r1", R1, is_create=True)
        yield CredentialService(role_service, config_service, cache)
        cache.invalidate()

    def _reply(self, payload):
        response = Mock(spec=requests.Response)
        response.status_code = 200
        response.text = json.dumps(payload)
        response.content = response.text.encode()
        response.json.return_value = payload
        return response

    def test_reply_without_token_is_internal_error(self, http_service, session, ctx):
        session.request.return_value = self._reply({"name": "r1_x", "role": "Viewer"})

        with pytest.raises(InternalError, match="error creating Grafana Cloud token") as exc_info:
            http_service.issue("r1", ctx)

        assert isinstance(exc_info.value.cause, GrafanaClientError)
        assert "unexpected body" in str(exc_info.value.cause)

    def test_issue_returns_upstream_token(self, http_service, session, ctx):
        session.request.return_value = self._reply({"id": 7, "name": "r1_x", "token": "glc_new"})

        secret = http_service.issue("r1", ctx)

        assert secret.data["token"] == "glc_new"
        method, url = session.request.call_args[0]
        assert method == "POST"
        assert url == "https://grafana.com/api/orgs/acme/api-keys"

    def test_cancel_while_upstream_call_runs(self, http_service, session):
        release = threading.Event()
        ctx = RequestContext()

        def slow(*args, **kwargs):
            ctx.cancel()
            release.wait(timeout=5)
            return self._reply({"name": "r1_x", "token": "glc_new"})

        session.request.side_effect = slow

        try:
            with pytest.raises(RequestCancelledError, match="during create Cloud API key"):
                http_service.issue("r1", ctx)
        finally:
            release.set()


class TestRenew:
    """Test lease renewal."""

    def test_renew_reasserts_role_ttls(self, credential_service, services, fake_cloud, ctx):
        role_service, _, _ = services
        secret = credential_service.issue("r1", ctx)
        calls_before = len(fake_cloud.calls)

        role_service.write("r1", {"ttl": 600}, is_create=False)
        renewed = credential_service.renew(secret)

        assert renewed.ttl == 600
        assert renewed.max_ttl == 3600
        assert renewed.internal_data == secret.internal_data
        assert len(fake_cloud.calls) == calls_before

    def test_renew_without_role(self, credential_service):
        secret = SecretResponse(internal_data={"external_name": "r1_x", "credential_kind": "Cloud"})

        with pytest.raises(InternalError, match="secret is missing role internal data"):
            credential_service.renew(secret)

    def test_renew_after_role_deleted(self, credential_service, services, ctx):
        role_service, _, _ = services
        secret = credential_service.issue("r1", ctx)
        role_service.delete("r1")

        with pytest.raises(RoleNotFoundError):
            credential_service.renew(secret)


class TestRevoke:
    """Test revocation."""

    def test_revoke_organisation_key_by_name(self, credential_service, fake_cloud, ctx):
        secret = credential_service.issue("r1", ctx)

        credential_service.revoke(secret, ctx)

        assert fake_cloud.calls_named("delete_cloud_api_key") == [
            ("delete_cloud_api_key", "acme", secret.internal_data["external_name"])
        ]
        assert fake_cloud.org_keys == {}

    def test_revoke_instance_key_by_id(self, credential_service, fake_cloud, ctx):
        """Test the r2 revoke: one acquire/cleanup pair and one delete-by-id."""
        secret = credential_service.issue("r2", ctx)
        fake_cloud.calls.clear()

        credential_service.revoke(secret, ctx)

        assert fake_cloud.calls_named("delete_api_key") == [
            ("delete_api_key", "stack1", int(secret.internal_data["external_id"]))
        ]
        assert len(fake_cloud.calls_named("acquire")) == 1
        assert fake_cloud.calls_named("acquire")[0][1] == "stack1"
        assert len(fake_cloud.calls_named("cleanup")) == 1
        assert fake_cloud.stack_keys["stack1"] == {}

    def test_revoke_legacy_record_defaults_to_organisation(self, credential_service, fake_cloud, ctx):
        fake_cloud.org_keys[("acme", "r1_legacy")] = "glc_old"
        secret = SecretResponse(internal_data={"name": "r1_legacy"})

        credential_service.revoke(secret, ctx)

        assert fake_cloud.calls_named("delete_cloud_api_key") == [
            ("delete_cloud_api_key", "acme", "r1_legacy")
        ]

    def test_second_revoke_surfaces_not_found(self, credential_service, ctx):
        secret = credential_service.issue("r1", ctx)
        credential_service.revoke(secret, ctx)

        with pytest.raises(InternalError) as exc_info:
            credential_service.revoke(secret, ctx)

        assert exc_info.value.cause.is_not_found

    def test_revoke_does_not_need_the_role(self, credential_service, services, fake_cloud, ctx):
        role_service, _, _ = services
        secret = credential_service.issue("r2", ctx)
        role_service.delete("r2")

        credential_service.revoke(secret, ctx)

        assert len(fake_cloud.calls_named("delete_api_key")) == 1

    def test_revoke_instance_key_with_bad_id(self, credential_service, ctx):
        lease = LeaseMetadata(
            external_id="not-a-number",
            external_name="r2_x",
            credential_kind=CredentialKind.INSTANCE_SCOPED,
            target_instance="stack1",
        )

        with pytest.raises(InternalError, match="non-numeric key id"):
            credential_service.revoke(SecretResponse(internal_data=lease.to_internal_data()), ctx)

    def test_revoke_with_unknown_kind(self, credential_service, ctx):
        secret = SecretResponse(internal_data={"name": "x", "type": "Loki"})

        with pytest.raises(InternalError, match="invalid lease internal data"):
            credential_service.revoke(secret, ctx)

    def test_config_change_reaches_revoke(self, credential_service, services, fake_cloud, ctx):
        _, config_service, _ = services
        secret = credential_service.issue("r1", ctx)

        config_service.write({"key": "glc_rotated"}, is_create=False)
        credential_service.revoke(secret, ctx)

        assert len(fake_cloud.clients) == 2
        assert fake_cloud.clients[-1].api_key == "glc_rotated"
