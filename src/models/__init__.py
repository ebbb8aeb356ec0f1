"""Data models for remote entities and their text mirrors."""

from src.models.entities import EntityKind, Issue, IssueFields, Page, RemoteEntity
from src.models.text_document import PartialIssue, PartialPage, TextDocument

__all__ = [
    'EntityKind',
    'Issue',
    'IssueFields',
    'Page',
    'RemoteEntity',
    'PartialIssue',
    'PartialPage',
    'TextDocument',
]
