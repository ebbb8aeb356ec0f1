"""Atlassian client library for the text mirror.

This package provides a shared authenticated request executor and thin
accessors over the Jira Cloud REST API v3 and the Confluence Cloud content
API, with a typed exception hierarchy for every failure they can report.
"""

from .errors import (
    AtlassianError,
    ConfigurationError,
    TransportError,
    EntityNotFoundError,
    APIUnreachableError,
)

__all__ = [
    "AtlassianError",
    "ConfigurationError",
    "TransportError",
    "EntityNotFoundError",
    "APIUnreachableError",
]
