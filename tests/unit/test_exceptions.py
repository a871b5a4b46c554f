"""
Unit tests for the exception system.

Tests the base error, the engine-specific errors the host relies on to
tell user mistakes from internal faults, and the factory helpers.
"""

from grafana_secrets_core.exceptions import (
    BaseError,
    ErrorCode,
    ExternalServiceError,
    GrafanaClientError,
    InternalError,
    InvalidConfigurationError,
    RequestCancelledError,
    RoleNotFoundError,
    ValidationError,
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
    validation_failed,
)


class TestBaseError:
    """Test BaseError class."""

    def test_basic_error_creation(self):
        """Test creating a basic error."""
        error = BaseError("Test error message")

        assert error.message == "Test error message"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.cause is None
        assert error.context["error_id"] == error.error_id
        assert str(error) == "Test error message"

    def test_error_with_cause(self):
        """Test error with underlying cause."""
        original_error = ValueError("Original error")
        error = BaseError("Wrapped error", cause=original_error)

        assert error.cause is original_error
        assert error.context["cause"]["type"] == "ValueError"
        assert error.context["cause"]["message"] == "Original error"
        assert error.error_chain == [error, original_error]

    def test_error_with_correlation_id(self):
        """Test error includes correlation ID when available."""
        set_correlation_id("test-correlation-123")

        try:
            error = BaseError("Test error")
            assert error.context["correlation_id"] == "test-correlation-123"
            assert error.to_dict()["error"]["correlation_id"] == "test-correlation-123"
        finally:
            clear_correlation_id()

    def test_to_dict_hides_cause_by_default(self):
        """Test the cause only appears in to_dict when asked for."""
        error = BaseError("Wrapped", cause=KeyError("k"), role_name="reader")

        plain = error.to_dict()
        assert "cause" not in plain["error"]
        assert plain["error"]["context"]["role_name"] == "reader"

        detailed = error.to_dict(include_cause=True)
        assert detailed["error"]["cause"]["type"] == "KeyError"

    def test_add_context_fluent_interface(self):
        """Test adding context using fluent interface."""
        error = BaseError("Test error").add_context(stage="create key")

        assert error.context["stage"] == "create key"


class TestEngineErrors:
    """Test errors surfaced to the host."""

    def test_invalid_configuration_is_user_facing(self):
        """Test configuration errors are 4xx validation errors."""
        error = InvalidConfigurationError("missing key in configuration")

        assert isinstance(error, ValidationError)
        assert error.status_code == 400
        assert error.error_code == ErrorCode.CONFIGURATION_ERROR
        assert error.message == "invalid configuration: missing key in configuration"

    def test_internal_error_prefix(self):
        """Test internal errors carry the 'internal error:' prefix."""
        error = InternalError("error creating Grafana Cloud token")

        assert error.status_code == 500
        assert error.message == "internal error: error creating Grafana Cloud token"

    def test_role_not_found_is_distinct_internal_error(self):
        """Test a missing role is an internal error with its own code."""
        error = RoleNotFoundError("reader")

        assert isinstance(error, InternalError)
        assert error.error_code == ErrorCode.NOT_FOUND
        assert error.role_name == "reader"
        assert error.message == "internal error: error retrieving role: role 'reader' not found"

    def test_grafana_client_error(self):
        """Test upstream errors keep the HTTP status and body."""
        error = GrafanaClientError("delete failed", http_status=404, response_body='{"message":"x"}')

        assert isinstance(error, ExternalServiceError)
        assert error.status_code == 502
        assert error.is_not_found
        assert error.response_body == '{"message":"x"}'
        assert error.context["service_name"] == "grafana_cloud"

    def test_grafana_client_error_without_status(self):
        """Test transport failures have no HTTP status."""
        error = GrafanaClientError("connection refused")

        assert error.http_status is None
        assert not error.is_not_found

    def test_request_cancelled(self):
        """Test cancellation error code and status."""
        error = RequestCancelledError("request cancelled before create key")

        assert error.error_code == ErrorCode.CANCELLED
        assert error.status_code == 499


class TestFactories:
    """Test factory helpers."""

    def test_validation_failed(self):
        """Test the validation_failed factory."""
        error = validation_failed("ttl", 600, "ttl cannot be greater than max_ttl")

        assert error.status_code == 400
        assert error.context["field"] == "ttl"
        assert error.context["value"] == "600"
        assert "ttl cannot be greater than max_ttl" in error.message


class TestCorrelationId:
    """Test thread-local correlation IDs."""

    def test_set_get_clear(self):
        """Test the correlation ID lifecycle."""
        assert get_correlation_id() is None

        set_correlation_id("abc")
        assert get_correlation_id() == "abc"

        clear_correlation_id()
        assert get_correlation_id() is None
