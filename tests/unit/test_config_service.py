"""
Unit tests for ConfigService.
"""

from unittest.mock import Mock

import pytest

from grafana_secrets_core.constants import TelemetryEndpoint
from grafana_secrets_core.exceptions import InvalidConfigurationError, ServiceError, StorageError
from grafana_secrets_core.services.config_service import ConfigService

BASE_FIELDS = {"organisation": "acme", "key": "glc_admin", "url": "https://grafana.com/api"}


@pytest.fixture
def on_change():
    return Mock()


@pytest.fixture
def config_service(storage, on_change):
    return ConfigService(storage, on_change=on_change)


class TestConfigWrite:
    """Test configuration writes."""

    def test_create(self, config_service, on_change):
        """Test a create with the required fields."""
        config = config_service.write(BASE_FIELDS, is_create=True)

        assert config.organisation == "acme"
        assert config.key == "glc_admin"
        assert config.url == "https://grafana.com/api"
        assert config_service.exists()
        on_change.assert_called_once_with()

    @pytest.mark.parametrize("missing", ["organisation", "key", "url"])
    def test_create_requires_fields(self, config_service, storage, on_change, missing):
        """Test create rejects a configuration without a required field."""
        fields = {k: v for k, v in BASE_FIELDS.items() if k != missing}

        with pytest.raises(InvalidConfigurationError, match=f"missing {missing} in configuration"):
            config_service.write(fields, is_create=True)

        assert storage.get("config") is None
        on_change.assert_not_called()

    def test_create_rejects_empty_organisation(self, config_service):
        with pytest.raises(InvalidConfigurationError, match="missing organisation"):
            config_service.write({**BASE_FIELDS, "organisation": ""}, is_create=True)

    @pytest.mark.parametrize("field", ["url", "prometheus_url", "loki_url", "graphite_url"])
    def test_urls_must_be_absolute(self, config_service, storage, field):
        """Test relative URLs are rejected and nothing is stored."""
        with pytest.raises(InvalidConfigurationError, match=f"invalid {field} in configuration"):
            config_service.write({**BASE_FIELDS, field: "grafana.net/path"}, is_create=True)

        assert storage.get("config") is None

    def test_update_of_missing_config(self, config_service, on_change):
        """Test update requires an existing configuration."""
        with pytest.raises(InvalidConfigurationError, match="config not found during update operation"):
            config_service.write({"organisation": "acme"}, is_create=False)

        on_change.assert_not_called()

    def test_update_merges(self, config_service, on_change):
        """Test update keeps fields that were not supplied."""
        config_service.write({**BASE_FIELDS, "loki_user": "42"}, is_create=True)

        config = config_service.write({"key": "glc_rotated"}, is_create=False)

        assert config.key == "glc_rotated"
        assert config.organisation == "acme"
        assert config.endpoint(TelemetryEndpoint.LOKI).user == "42"
        assert on_change.call_count == 2

    def test_prometheus_user_sets_legacy_user(self, config_service):
        """Test prometheus_user is mirrored into the deprecated user field."""
        config = config_service.write({**BASE_FIELDS, "prometheus_user": "123"}, is_create=True)

        assert config.user == "123"
        assert config.endpoint(TelemetryEndpoint.PROMETHEUS).user == "123"

    def test_explicit_user_without_prometheus_user(self, config_service):
        config = config_service.write({**BASE_FIELDS, "user": "legacy"}, is_create=True)

        assert config.user == "legacy"
        assert config.endpoint(TelemetryEndpoint.PROMETHEUS).user == ""

    def test_fields_are_stripped(self, config_service):
        config = config_service.write({**BASE_FIELDS, "organisation": "  acme  "}, is_create=True)

        assert config.organisation == "acme"

    def test_wrong_field_type(self, config_service):
        with pytest.raises(InvalidConfigurationError):
            config_service.write({**BASE_FIELDS, "organisation": ["acme"]}, is_create=True)


class TestConfigReadDelete:
    """Test reads and deletes."""

    def test_read_missing(self, config_service):
        assert config_service.read() is None
        assert config_service.get_config() is None
        assert not config_service.exists()

    def test_read_returns_flat_fields(self, config_service):
        config_service.write(
            {**BASE_FIELDS, "tempo_user": "7", "tempo_url": "https://tempo.grafana.net"},
            is_create=True,
        )

        data = config_service.read()

        assert data["organisation"] == "acme"
        assert data["tempo_user"] == "7"
        assert data["tempo_url"] == "https://tempo.grafana.net"
        assert data["loki_user"] == ""
        assert data["user"] == ""
        assert set(data) == {
            "organisation",
            "key",
            "url",
            "user",
            *(f"{name.value}_{part}" for name in TelemetryEndpoint for part in ("user", "url")),
        }

    def test_delete(self, config_service, on_change):
        config_service.write(BASE_FIELDS, is_create=True)

        config_service.delete()

        assert config_service.read() is None
        assert on_change.call_count == 2

    def test_storage_failure_does_not_invalidate(self, on_change):
        storage = Mock()
        storage.get.return_value = None
        storage.put.side_effect = StorageError("disk full")
        service = ConfigService(storage, on_change=on_change)

        with pytest.raises(ServiceError):
            service.write(BASE_FIELDS, is_create=True)

        on_change.assert_not_called()
