"""
Shared test fixtures.

Tests run against real implementations: in-memory and SQLite storage,
and a recording fake of the Grafana Cloud API. Mocks are used only for
the requests.Session seam of the HTTP client.
"""

import pytest

from fixtures.fake_grafana import FakeGrafanaCloud
from grafana_secrets_core.backend import GrafanaCloudBackend, Request
from grafana_secrets_core.config import reset_config
from grafana_secrets_core.context.request_context import RequestContext
from grafana_secrets_core.db.db_config import (
    DatabaseManager,
    get_development_config,
    import_all_models,
    set_db_manager,
)
from grafana_secrets_core.enums import Operation
from grafana_secrets_core.exceptions import clear_correlation_id
from grafana_secrets_core.storage import InMemoryStorage
from grafana_secrets_core.utils.logger import reset_logging

VALID_CONFIG = {
    "organisation": "acme",
    "key": "glc_admin_key",
    "url": "https://grafana.com/api/",
    "prometheus_user": "123456",
    "prometheus_url": "https://prometheus-prod-01.grafana.net",
    "loki_user": "654321",
}


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset process-wide configuration, logger and correlation state."""
    reset_config()
    reset_logging()
    clear_correlation_id()
    yield
    reset_config()
    reset_logging()
    clear_correlation_id()
    set_db_manager(None)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture(scope="function")
def db_manager():
    """In-memory SQLite database with the storage table created."""
    import_all_models()
    manager = DatabaseManager(get_development_config())
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.close()


@pytest.fixture
def fake_cloud() -> FakeGrafanaCloud:
    return FakeGrafanaCloud()


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext.background()


@pytest.fixture
def backend(storage, fake_cloud) -> GrafanaCloudBackend:
    """Backend over in-memory storage with the fake Grafana Cloud client."""
    return GrafanaCloudBackend(storage, client_factory=fake_cloud.factory)


@pytest.fixture
def configured_backend(backend) -> GrafanaCloudBackend:
    """Backend with a valid configuration already written."""
    response = backend.handle_request(
        Request(operation=Operation.CREATE, path="config", data=dict(VALID_CONFIG))
    )
    assert response is None
    return backend
