"""Text mirror data models.

TextDocument is the flat editable artifact (preamble + body). PartialIssue and
PartialPage are what a document parses back into: the identifier plus the
editable fields that were actually present. Absent fields stay None and are
left out of any update payload.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import yaml

from .entities import EntityKind

MARKER = "---"
NEW_IDENTIFIER = "new"


def is_new_identifier(identifier: Optional[str]) -> bool:
    """True if the identifier is the create-intent sentinel."""
    return identifier is not None and identifier.strip().lower() == NEW_IDENTIFIER


@dataclass
class TextDocument:
    """A preamble/body text document derived from one remote entity.

    Attributes:
        kind: Entity kind the document mirrors
        preamble: Ordered metadata mapping (the editable metadata surface)
        body: Raw body text (the editable content surface)
    """

    kind: EntityKind
    preamble: Dict[str, Any] = field(default_factory=dict)
    body: str = ""

    def render(self) -> str:
        """Render the document as marker, YAML preamble, marker, blank line, body."""
        yaml_str = yaml.safe_dump(
            self.preamble,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=float("inf"),
        )
        return f"{MARKER}\n{yaml_str}{MARKER}\n\n{self.body}"


@dataclass
class PartialIssue:
    """Editable issue fields parsed from a text document."""

    identifier: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    project_key: Optional[str] = None
    issue_type: Optional[str] = None
    priority: Optional[str] = None
    assignee_account_id: Optional[str] = None
    labels: Optional[List[str]] = None

    @property
    def kind(self) -> EntityKind:
        return EntityKind.ISSUE

    @property
    def is_new(self) -> bool:
        return is_new_identifier(self.identifier)


@dataclass
class PartialPage:
    """Editable page fields parsed from a text document."""

    identifier: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    space_key: Optional[str] = None
    parent_id: Optional[str] = None
    version: Optional[int] = None
    status: Optional[str] = None

    @property
    def kind(self) -> EntityKind:
        return EntityKind.PAGE

    @property
    def is_new(self) -> bool:
        return is_new_identifier(self.identifier)


PartialEntity = Union[PartialIssue, PartialPage]
