"""Typed exception hierarchy for Atlassian client errors.

This module defines all custom exceptions raised by the Jira and Confluence
clients. All exceptions inherit from AtlassianError so callers can catch any
client failure in one place, and each carries enough context (status code,
identifier, endpoint) to build a useful message at the UI boundary.
"""

from typing import List, Optional


class AtlassianError(Exception):
    """Base exception for all atlassian-text-mirror errors."""
    pass


class ConfigurationError(AtlassianError):
    """Raised when required connection settings are missing or unreadable."""

    def __init__(self, missing: List[str], message: Optional[str] = None):
        super().__init__(
            message or f"Atlassian is not configured (missing: {', '.join(missing)})"
        )
        self.missing = missing


class TransportError(AtlassianError):
    """Raised when the remote API answers with a non-2xx status.

    The raw response text is kept verbatim. Callers pattern-match known error
    substrings themselves (see text_mirror.coordinator.is_version_conflict).
    """

    def __init__(
        self,
        status_code: int,
        response_text: str,
        method: str = "GET",
        path: str = "",
        service: str = "Atlassian",
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"{service} API error: {status_code} - {response_text}"
        )
        self.status_code = status_code
        self.response_text = response_text
        self.method = method
        self.path = path
        self.service = service


class EntityNotFoundError(TransportError):
    """Raised when a requested issue or page does not exist (404)."""

    def __init__(self, identifier: str, error: TransportError):
        super().__init__(
            status_code=error.status_code,
            response_text=error.response_text,
            method=error.method,
            path=error.path,
            service=error.service,
            message=f"{error.service} entity {identifier} not found: {error}",
        )
        self.identifier = identifier


class APIUnreachableError(AtlassianError):
    """Raised when the API endpoint cannot be reached at all."""

    def __init__(self, endpoint: str, reason: Optional[str] = None):
        message = f"API is not available at {endpoint}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.endpoint = endpoint
        self.reason = reason
