"""Remote entity data models for Jira issues and Confluence pages.

RemoteEntity is a tagged union of Issue and Page. Both are built from raw API
JSON with ``from_api`` and only carry what the mirror and the formatters need.
Jira custom fields are kept verbatim in an open extension map.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class EntityKind(Enum):
    """Discriminator for the two remote entity kinds."""

    ISSUE = "issue"
    PAGE = "page"


@dataclass
class NamedRef:
    """A named metadata value (status, priority, issue type) with optional id."""

    name: str
    id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> Optional["NamedRef"]:
        if not data or not data.get("name"):
            return None
        ref_id = data.get("id")
        return cls(name=data["name"], id=str(ref_id) if ref_id is not None else None)


@dataclass
class UserRef:
    """A Jira user reference."""

    display_name: str
    account_id: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> Optional["UserRef"]:
        if not data:
            return None
        return cls(
            display_name=data.get("displayName", ""),
            account_id=data.get("accountId"),
            email=data.get("emailAddress"),
        )


@dataclass
class IssueFields:
    """Fields of a Jira issue.

    Attributes:
        summary: Issue summary (the title)
        description: ADF document dict, plain string, or None
        status: Workflow status
        priority: Priority
        issue_type: Issue type
        assignee: Assigned user (None if unassigned)
        reporter: Reporting user
        project_key: Key of the owning project
        labels: Label names
        created: Creation timestamp (opaque string)
        updated: Last update timestamp (opaque string)
        custom_fields: customfield_* values passed through untouched
    """

    summary: str = ""
    description: Any = None
    status: Optional[NamedRef] = None
    priority: Optional[NamedRef] = None
    issue_type: Optional[NamedRef] = None
    assignee: Optional[UserRef] = None
    reporter: Optional[UserRef] = None
    project_key: str = ""
    labels: List[str] = field(default_factory=list)
    created: str = ""
    updated: str = ""
    custom_fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Issue:
    """A Jira issue. Issues have no client-visible version."""

    key: str
    id: str
    fields: IssueFields

    @property
    def kind(self) -> EntityKind:
        return EntityKind.ISSUE

    @property
    def identifier(self) -> str:
        return self.key

    @property
    def title(self) -> str:
        return self.fields.summary

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Issue":
        """Build an Issue from a /rest/api/3/issue response."""
        raw = data.get("fields") or {}
        project = raw.get("project") or {}
        fields = IssueFields(
            summary=raw.get("summary") or "",
            description=raw.get("description"),
            status=NamedRef.from_api(raw.get("status")),
            priority=NamedRef.from_api(raw.get("priority")),
            issue_type=NamedRef.from_api(raw.get("issuetype")),
            assignee=UserRef.from_api(raw.get("assignee")),
            reporter=UserRef.from_api(raw.get("reporter")),
            project_key=project.get("key", ""),
            labels=list(raw.get("labels") or []),
            created=raw.get("created") or "",
            updated=raw.get("updated") or "",
            custom_fields={
                name: value
                for name, value in raw.items()
                if name.startswith("customfield_")
            },
        )
        return cls(key=data.get("key", ""), id=str(data.get("id", "")), fields=fields)


@dataclass
class Page:
    """A Confluence page with storage-format body.

    Attributes:
        id: Numeric page id
        title: Page title
        type: Content type (usually "page")
        status: Content status (usually "current")
        space_key: Space key (e.g., "TEAM")
        space_name: Space display name
        version: Current version number (required for updates)
        body: Storage format XHTML
        parent_id: Direct parent page id (None at space root)
        updated: Timestamp of the current version (opaque string)
        web_url: Relative web UI link
    """

    id: str
    title: str
    version: int
    body: str = ""
    type: str = "page"
    status: str = "current"
    space_key: str = ""
    space_name: str = ""
    parent_id: Optional[str] = None
    updated: str = ""
    web_url: str = ""

    @property
    def kind(self) -> EntityKind:
        return EntityKind.PAGE

    @property
    def identifier(self) -> str:
        return self.id

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Page":
        """Build a Page from a /wiki/rest/api/content response."""
        body = data.get("body") or {}
        body_value = (
            (body.get("storage") or {}).get("value")
            or (body.get("view") or {}).get("value")
            or ""
        )
        space = data.get("space") or {}
        version = data.get("version") or {}
        ancestors = data.get("ancestors") or []
        links = data.get("_links") or {}

        return cls(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            version=int(version.get("number", 1) or 1),
            body=body_value,
            type=data.get("type", "page"),
            status=data.get("status", "current"),
            space_key=space.get("key", ""),
            space_name=space.get("name", ""),
            parent_id=str(ancestors[-1]["id"]) if ancestors else None,
            updated=version.get("when", ""),
            web_url=links.get("webui", ""),
        )


RemoteEntity = Union[Issue, Page]
