"""Editable text mirrors of Jira issues and Confluence pages.

This package serializes remote entities to preamble/body text documents,
parses edited documents back, and saves them with the concurrency rules of
each remote API (single retry on a stale page version).
"""

from .coordinator import SaveResult, UpdateCoordinator, is_version_conflict
from .errors import SaveError
from .serializer import TextMirrorSerializer
from .workspace import DocumentSession, MirrorWorkspace

__all__ = [
    'SaveResult',
    'UpdateCoordinator',
    'is_version_conflict',
    'SaveError',
    'TextMirrorSerializer',
    'DocumentSession',
    'MirrorWorkspace',
]
