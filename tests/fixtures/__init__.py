"""Test fixtures for the Jira and Confluence clients and the text mirror.

This module provides sample API payloads:
- Jira issues (REST v3, ADF description)
- Confluence pages (v1 content with storage body)
"""

from .sample_entities import (
    SAMPLE_ADF_DESCRIPTION,
    SAMPLE_PAGE_BODY,
    issue_payload,
    page_payload,
)

__all__ = [
    "SAMPLE_ADF_DESCRIPTION",
    "SAMPLE_PAGE_BODY",
    "issue_payload",
    "page_payload",
]
