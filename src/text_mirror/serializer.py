"""Round-trip serialization between remote entities and text documents.

A text document is a YAML preamble between two ``---`` marker lines, a blank
line, then the free-form body:

    ---
    entityType: page
    id: '42'
    title: Spec
    version: 3
    ---

    <p>hello</p>

Only editable metadata is read back. Read-only fields (status names,
timestamps, reporter) are written for context and dropped on parse. Parsing
never raises: a document without two marker lines, or with a preamble that is
not a YAML mapping, degrades to an empty preamble.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import yaml

from src.models.entities import EntityKind, Issue, Page, RemoteEntity
from src.models.text_document import (
    MARKER,
    NEW_IDENTIFIER,
    PartialEntity,
    PartialIssue,
    PartialPage,
    TextDocument,
)

logger = logging.getLogger(__name__)


class TextMirrorSerializer:
    """Converts RemoteEntity <-> TextDocument.

    Preamble key order is fixed (ISSUE_KEYS / PAGE_KEYS) so repeated
    serialization of an unchanged entity is byte-identical and diffs between
    saves stay small.
    """

    ISSUE_KEYS = (
        "entityType",
        "key",
        "id",
        "projectKey",
        "summary",
        "status",
        "issuetype",
        "priority",
        "assignee",
        "assigneeEmail",
        "assigneeAccountId",
        "reporter",
        "labels",
        "created",
        "updated",
    )

    PAGE_KEYS = (
        "entityType",
        "id",
        "title",
        "type",
        "status",
        "spaceKey",
        "spaceName",
        "parentId",
        "version",
        "updated",
    )

    NEW_ISSUE_BODY = "Issue description here..."

    NEW_PAGE_BODY = (
        "<h1>New Page</h1>\n"
        "<p>Start editing your Confluence page here...</p>\n"
        "<p>You can use HTML or Confluence storage format.</p>"
    )

    @classmethod
    def serialize(cls, entity: RemoteEntity) -> TextDocument:
        """Build the text document for a fetched entity.

        Args:
            entity: A fully fetched Issue or Page

        Returns:
            TextDocument with the fixed-order preamble and raw body

        Raises:
            ValueError: If entity is None or not an Issue/Page
        """
        if entity is None:
            raise ValueError("Cannot serialize a missing entity")
        if isinstance(entity, Issue):
            return cls._serialize_issue(entity)
        if isinstance(entity, Page):
            return cls._serialize_page(entity)
        raise ValueError(f"Unsupported entity type: {type(entity).__name__}")

    @classmethod
    def _serialize_issue(cls, issue: Issue) -> TextDocument:
        f = issue.fields
        assignee = f.assignee
        values = {
            "entityType": EntityKind.ISSUE.value,
            "key": issue.key,
            "id": issue.id,
            "projectKey": f.project_key,
            "summary": f.summary,
            "status": f.status.name if f.status else "",
            "issuetype": f.issue_type.name if f.issue_type else "",
            "priority": f.priority.name if f.priority else "",
            "assignee": assignee.display_name if assignee else "",
            "assigneeEmail": (assignee.email or "") if assignee else "",
            "assigneeAccountId": (assignee.account_id or "") if assignee else "",
            "reporter": f.reporter.display_name if f.reporter else "",
            "labels": list(f.labels),
            "created": f.created,
            "updated": f.updated,
        }
        preamble = {key: values[key] for key in cls.ISSUE_KEYS}
        return TextDocument(
            kind=EntityKind.ISSUE,
            preamble=preamble,
            body=cls.flatten_body(f.description),
        )

    @classmethod
    def _serialize_page(cls, page: Page) -> TextDocument:
        values = {
            "entityType": EntityKind.PAGE.value,
            "id": page.id,
            "title": page.title,
            "type": page.type,
            "status": page.status,
            "spaceKey": page.space_key,
            "spaceName": page.space_name,
            "parentId": page.parent_id or "",
            "version": page.version,
            "updated": page.updated,
        }
        preamble = {key: values[key] for key in cls.PAGE_KEYS}
        return TextDocument(
            kind=EntityKind.PAGE,
            preamble=preamble,
            body=cls.flatten_body(page.body),
        )

    @staticmethod
    def flatten_body(content: Any) -> str:
        """Flatten a body value to text without lossy conversion.

        Strings pass through unchanged. Structured documents (Jira ADF) are
        written as indented JSON, which parses back to the same document.
        """
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        return json.dumps(content, indent=2, ensure_ascii=False)

    @classmethod
    def split(cls, text: str) -> Tuple[Dict[str, Any], str]:
        """Split raw text into (preamble, body).

        Only the first two marker lines delimit the preamble; marker lines in
        the body are left alone. The single blank line after the second marker
        is not part of the body.

        Args:
            text: Raw document text

        Returns:
            Tuple of (preamble dict, body). ({}, text) if there are fewer than
            two marker lines.
        """
        lines = text.splitlines(keepends=True)
        markers = [i for i, line in enumerate(lines) if line.rstrip() == MARKER]
        if len(markers) < 2:
            return {}, text

        first, second = markers[0], markers[1]
        preamble_text = "".join(lines[first + 1:second])
        body = "".join(lines[second + 1:])
        if body.startswith("\r\n"):
            body = body[2:]
        elif body.startswith("\n"):
            body = body[1:]

        try:
            preamble = yaml.safe_load(preamble_text)
        except (yaml.YAMLError, ValueError) as e:
            logger.debug(f"Ignoring unreadable preamble: {e}")
            return {}, body

        if not isinstance(preamble, dict):
            return {}, body
        return preamble, body

    @classmethod
    def deserialize(
        cls,
        text: str,
        kind: Optional[EntityKind] = None,
    ) -> PartialEntity:
        """Parse a text document into a partial entity.

        The kind is taken from the preamble's entityType, then from ``kind``,
        and defaults to a page.

        Args:
            text: Raw document text
            kind: Fallback kind when the preamble does not name one

        Returns:
            PartialIssue or PartialPage with only the fields that were present
        """
        preamble, body = cls.split(text or "")
        resolved = cls._resolve_kind(preamble.get("entityType"), kind)

        if resolved is EntityKind.ISSUE:
            return PartialIssue(
                identifier=_identifier(preamble.get("key")) or _identifier(preamble.get("id")),
                title=_text(preamble.get("summary", preamble.get("title"))),
                body=body,
                project_key=_identifier(preamble.get("projectKey")),
                issue_type=_text(preamble.get("issuetype")),
                priority=_text(preamble.get("priority")),
                assignee_account_id=_identifier(preamble.get("assigneeAccountId")),
                labels=_labels(preamble.get("labels")),
            )

        return PartialPage(
            identifier=_identifier(preamble.get("id")),
            title=_text(preamble.get("title")),
            body=body,
            space_key=_identifier(preamble.get("spaceKey")),
            parent_id=_identifier(preamble.get("parentId")),
            version=_version(preamble.get("version")),
            status=_text(preamble.get("status")),
        )

    @staticmethod
    def _resolve_kind(declared: Any, fallback: Optional[EntityKind]) -> EntityKind:
        if isinstance(declared, str):
            for candidate in EntityKind:
                if declared.strip().lower() == candidate.value:
                    return candidate
        return fallback or EntityKind.PAGE

    @classmethod
    def new_document_template(
        cls,
        kind: EntityKind,
        container: str,
        parent_id: Optional[str] = None,
    ) -> TextDocument:
        """Build a create-intent document.

        Args:
            kind: Entity kind to create
            container: Project key (issues) or space key (pages)
            parent_id: Optional parent page id (pages only)

        Returns:
            TextDocument whose identifier is the "new" sentinel

        Raises:
            ValueError: If container is empty
        """
        if not container or not str(container).strip():
            raise ValueError("A project or space key is required for a new document")
        container = str(container).strip()

        if kind is EntityKind.ISSUE:
            preamble = {
                "entityType": EntityKind.ISSUE.value,
                "key": NEW_IDENTIFIER,
                "projectKey": container,
                "summary": "New Issue Title",
                "issuetype": "Task",
                "priority": "Medium",
                "assigneeAccountId": "",
                "labels": [],
            }
            return TextDocument(kind=kind, preamble=preamble, body=cls.NEW_ISSUE_BODY)

        preamble = {
            "entityType": EntityKind.PAGE.value,
            "id": NEW_IDENTIFIER,
            "title": "New Page Title",
            "type": "page",
            "status": "current",
            "spaceKey": container,
            "parentId": parent_id or "",
            "version": 1,
        }
        return TextDocument(kind=kind, preamble=preamble, body=cls.NEW_PAGE_BODY)


def _text(value: Any) -> Optional[str]:
    """Scalar to string; None and blank values are unset."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text if text.strip() else None


def _identifier(value: Any) -> Optional[str]:
    """Identifier-like scalar to a stripped string (``id: 42`` -> "42")."""
    text = _text(value)
    return text.strip() if text is not None else None


def _version(value: Any) -> Optional[int]:
    """Positive integer version, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(str(value).strip())
    except ValueError:
        return None
    return number if number > 0 else None


def _labels(value: Any) -> Optional[List[str]]:
    """Label list from a YAML list or a comma-separated string."""
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = [str(item) for item in value if item is not None]
    else:
        return None
    labels = [item.strip() for item in items if item.strip()]
    return labels or None
