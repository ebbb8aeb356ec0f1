"""Unit tests for atlassian_client.errors module."""

import pytest
from src.atlassian_client.errors import (
    AtlassianError,
    ConfigurationError,
    TransportError,
    EntityNotFoundError,
    APIUnreachableError,
)
from src.text_mirror.errors import SaveError


class TestAtlassianError:
    """Test cases for AtlassianError base exception."""

    def test_is_exception(self):
        """AtlassianError should inherit from Exception."""
        assert issubclass(AtlassianError, Exception)

    def test_message_is_preserved(self):
        """AtlassianError preserves the error message."""
        with pytest.raises(AtlassianError) as exc_info:
            raise AtlassianError("custom message")
        assert str(exc_info.value) == "custom message"


class TestConfigurationError:
    """Test cases for ConfigurationError."""

    def test_message_lists_missing_settings(self):
        """Default message names every missing setting."""
        error = ConfigurationError(["ATLASSIAN_EMAIL", "ATLASSIAN_API_TOKEN"])
        assert str(error) == (
            "Atlassian is not configured (missing: ATLASSIAN_EMAIL, ATLASSIAN_API_TOKEN)"
        )
        assert error.missing == ["ATLASSIAN_EMAIL", "ATLASSIAN_API_TOKEN"]

    def test_custom_message(self):
        """An explicit message replaces the default one."""
        error = ConfigurationError([], "Cannot read settings file x.yaml")
        assert str(error) == "Cannot read settings file x.yaml"
        assert error.missing == []


class TestTransportError:
    """Test cases for TransportError."""

    def test_message_format(self):
        """Message is '<Service> API error: <status> - <text>'."""
        error = TransportError(409, '{"message":"Version must be incremented"}', service="Confluence")
        assert str(error) == 'Confluence API error: 409 - {"message":"Version must be incremented"}'

    def test_stores_attributes(self):
        """All request context is kept on the exception."""
        error = TransportError(500, "boom", method="PUT", path="/x", service="Jira")
        assert error.status_code == 500
        assert error.response_text == "boom"
        assert error.method == "PUT"
        assert error.path == "/x"
        assert error.service == "Jira"


class TestEntityNotFoundError:
    """Test cases for EntityNotFoundError."""

    def test_is_transport_error(self):
        """EntityNotFoundError can be caught as TransportError."""
        assert issubclass(EntityNotFoundError, TransportError)

    def test_wraps_transport_error(self):
        """Message names the identifier and keeps the status."""
        cause = TransportError(404, "Issue does not exist", service="Jira")
        error = EntityNotFoundError("PROJ-9", cause)

        assert error.identifier == "PROJ-9"
        assert error.status_code == 404
        assert "Jira entity PROJ-9 not found" in str(error)
        assert "Issue does not exist" in str(error)


class TestAPIUnreachableError:
    """Test cases for APIUnreachableError."""

    def test_message_with_reason(self):
        error = APIUnreachableError("https://x.atlassian.net", "Timeout")
        assert str(error) == "API is not available at https://x.atlassian.net: Timeout"
        assert error.endpoint == "https://x.atlassian.net"

    def test_message_without_reason(self):
        error = APIUnreachableError("https://x.atlassian.net")
        assert str(error) == "API is not available at https://x.atlassian.net"


class TestSaveError:
    """Test cases for SaveError."""

    def test_inherits_from_atlassian_error(self):
        assert issubclass(SaveError, AtlassianError)

    def test_message_and_attributes(self):
        error = SaveError("42", "Confluence API error: 409 - stale", version_conflict=True)
        assert str(error) == "Failed to save 42: Confluence API error: 409 - stale"
        assert error.identifier == "42"
        assert error.version_conflict is True
