"""Save an edited text mirror back to Jira or Confluence.

The coordinator parses the document, decides between create and update from
the identifier sentinel, and runs the update with the concurrency rules of the
target API:

- Pages are version-checked. The update is sent with the document's version
  (or the fetched one) + 1. If the server rejects it as stale, the current
  version is fetched and the update is retried exactly once.
- Issues have no client-visible version. The editable fields are sent in one
  unconditional PUT and never retried.

Any failure is raised as SaveError naming the entity.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from src.atlassian_client.confluence_client import ConfluenceClient
from src.atlassian_client.errors import APIUnreachableError, TransportError
from src.atlassian_client.jira_client import JiraClient, text_to_adf
from src.models.entities import EntityKind, RemoteEntity
from src.models.text_document import NEW_IDENTIFIER, PartialIssue, PartialPage
from .errors import SaveError
from .serializer import TextMirrorSerializer

logger = logging.getLogger(__name__)

VERSION_CONFLICT_SIGNATURE = "version must be incremented"

DEFAULT_ISSUE_SUMMARY = "New Issue"
DEFAULT_ISSUE_TYPE = "Task"
DEFAULT_PAGE_TITLE = "Untitled"


def is_version_conflict(error: Exception) -> bool:
    """True if a transport error means the submitted page version was stale.

    Confluence reports this as a 409 whose text mentions the version, and
    some deployments only as "Version must be incremented" in the body.
    """
    if not isinstance(error, TransportError):
        return False
    text = (error.response_text or "").lower()
    if VERSION_CONFLICT_SIGNATURE in text:
        return True
    return error.status_code == 409 and "version" in text


def description_to_adf(body: str) -> Dict[str, Any]:
    """Issue body text to an ADF description.

    A body that is already an ADF document (as written by the serializer) is
    sent unchanged. Anything else is wrapped as paragraphs.
    """
    stripped = (body or "").strip()
    if stripped.startswith("{"):
        try:
            parsed = json.loads(stripped)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict) and parsed.get("type") == "doc":
            return parsed
    return text_to_adf(body)


@dataclass
class SaveResult:
    """Outcome of a successful save.

    Attributes:
        kind: Entity kind that was saved
        identifier: Real issue key or page id (the new one after a create)
        message: Human-readable summary
        entity: Freshly fetched entity (None if the re-fetch failed)
        created: True if the document created a new entity
        auto_resolved: True if a version conflict was resolved by the retry
        update_attempts: Number of update requests sent (0 for creates)
        version: Page version after the update (pages only)
    """

    kind: EntityKind
    identifier: str
    message: str
    entity: Optional[RemoteEntity] = None
    created: bool = False
    auto_resolved: bool = False
    update_attempts: int = 0
    version: Optional[int] = None


class UpdateCoordinator:
    """Runs the create/update state machine for one document at a time.

    Example:
        >>> coordinator = UpdateCoordinator(JiraClient(), ConfluenceClient())
        >>> result = coordinator.save(open("page-42.confluence.md").read())
        >>> result.auto_resolved
        False
    """

    def __init__(self, jira: JiraClient, confluence: ConfluenceClient):
        self._jira = jira
        self._confluence = confluence

    def save(self, text: str, kind: Optional[EntityKind] = None) -> SaveResult:
        """Parse an edited document and write it to the remote.

        Args:
            text: Full document text (preamble + body)
            kind: Kind to assume when the preamble does not declare one

        Returns:
            SaveResult describing what happened

        Raises:
            SaveError: If the document has no identifier or the remote call fails
            ConfigurationError: If connection settings are missing
        """
        partial = TextMirrorSerializer.deserialize(text, kind)
        if not partial.identifier:
            raise SaveError(
                "(unknown)",
                f"The document has no {'key' if partial.kind is EntityKind.ISSUE else 'id'}",
            )

        identifier = partial.identifier
        logger.debug(f"Saving {partial.kind.value} {identifier}")

        try:
            if partial.is_new:
                if isinstance(partial, PartialIssue):
                    return self._create_issue(partial)
                return self._create_page(partial)
            if isinstance(partial, PartialIssue):
                return self._update_issue(partial)
            return self._update_page(partial)
        except (TransportError, APIUnreachableError, ValueError) as e:
            raise SaveError(
                identifier,
                str(e),
                version_conflict=isinstance(partial, PartialPage) and is_version_conflict(e),
            ) from e

    # ----- create -----

    def _create_issue(self, partial: PartialIssue) -> SaveResult:
        if not partial.project_key:
            raise SaveError(NEW_IDENTIFIER, "Project key is required to create an issue")

        fields: Dict[str, Any] = {
            "project": {"key": partial.project_key},
            "summary": partial.title or DEFAULT_ISSUE_SUMMARY,
            "issuetype": {"name": partial.issue_type or DEFAULT_ISSUE_TYPE},
        }
        if partial.body and partial.body.strip():
            fields["description"] = description_to_adf(partial.body)
        fields.update(self._optional_issue_fields(partial))

        created = self._jira.create_issue(fields)
        key = created["key"]
        logger.info(f"Created issue {key}")

        return SaveResult(
            kind=EntityKind.ISSUE,
            identifier=key,
            message=f"Created issue {key}",
            entity=self._refetch(EntityKind.ISSUE, key),
            created=True,
        )

    def _create_page(self, partial: PartialPage) -> SaveResult:
        if not partial.space_key:
            raise SaveError(NEW_IDENTIFIER, "Space key is required to create a page")

        title = partial.title or DEFAULT_PAGE_TITLE
        page = self._confluence.create_page(
            partial.space_key,
            title,
            partial.body or "",
            parent_id=partial.parent_id,
        )
        logger.info(f"Created page {page.id} '{title}'")

        return SaveResult(
            kind=EntityKind.PAGE,
            identifier=page.id,
            message=f"Created page: {title}",
            entity=self._refetch(EntityKind.PAGE, page.id),
            created=True,
            version=page.version,
        )

    # ----- update -----

    def _update_issue(self, partial: PartialIssue) -> SaveResult:
        key = partial.identifier
        fields: Dict[str, Any] = {}
        if partial.title:
            fields["summary"] = partial.title
        if partial.body is not None:
            fields["description"] = description_to_adf(partial.body)
        fields.update(self._optional_issue_fields(partial))

        self._jira.update_issue(key, fields)
        logger.info(f"Updated issue {key}")

        return SaveResult(
            kind=EntityKind.ISSUE,
            identifier=key,
            message=f"Updated issue {key}",
            entity=self._refetch(EntityKind.ISSUE, key),
            update_attempts=1,
        )

    def _update_page(self, partial: PartialPage) -> SaveResult:
        page_id = partial.identifier
        version = partial.version
        title = partial.title

        if not version or not title:
            current = self._confluence.get_page(page_id)
            version = version or current.version
            title = title or current.title

        body = partial.body or ""
        attempts = 1
        auto_resolved = False
        try:
            updated = self._confluence.update_page(page_id, title, body, version)
        except TransportError as e:
            if not is_version_conflict(e):
                raise
            version = self._confluence.get_page_version(page_id)
            logger.warning(
                f"Version conflict on page {page_id}, retrying once from version {version}"
            )
            attempts += 1
            updated = self._confluence.update_page(page_id, title, body, version)
            auto_resolved = True

        # A response without a version block parses as version 1
        new_version = max(updated.version, version + 1)
        logger.info(f"Updated page {page_id} to version {new_version}")

        message = f"Updated page: {title} (version {new_version})"
        if auto_resolved:
            message += ", resolved a version conflict"

        return SaveResult(
            kind=EntityKind.PAGE,
            identifier=page_id,
            message=message,
            entity=self._refetch(EntityKind.PAGE, page_id),
            auto_resolved=auto_resolved,
            update_attempts=attempts,
            version=new_version,
        )

    # ----- helpers -----

    @staticmethod
    def _optional_issue_fields(partial: PartialIssue) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if partial.priority:
            fields["priority"] = {"name": partial.priority}
        if partial.assignee_account_id:
            fields["assignee"] = {"accountId": partial.assignee_account_id}
        if partial.labels:
            fields["labels"] = partial.labels
        return fields

    def _refetch(self, kind: EntityKind, identifier: str) -> Optional[RemoteEntity]:
        """Re-read the saved entity; a failure here does not undo the save."""
        try:
            if kind is EntityKind.ISSUE:
                return self._jira.get_issue(identifier)
            return self._confluence.get_page(identifier)
        except (TransportError, APIUnreachableError) as e:
            logger.warning(f"Saved {kind.value} {identifier} but could not re-fetch it: {e}")
            return None
