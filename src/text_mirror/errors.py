"""Exceptions raised while saving a text mirror back to the remote."""

from src.atlassian_client.errors import AtlassianError


class SaveError(AtlassianError):
    """Raised when a create or update of an edited document fails.

    Attributes:
        identifier: Issue key, page id, or "new" for a failed create
        reason: Transport or validation message
        version_conflict: True if the final failure was a version conflict
    """

    def __init__(self, identifier: str, reason: str, version_conflict: bool = False):
        super().__init__(f"Failed to save {identifier}: {reason}")
        self.identifier = identifier
        self.reason = reason
        self.version_conflict = version_conflict
