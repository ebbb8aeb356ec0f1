"""Jira Cloud REST API v3 accessor.

One method per remote operation, all built on RequestExecutor. Issue reads
return Issue models; auxiliary reads (comments, transitions, projects) return
the raw JSON since nothing downstream interprets them.
"""

import logging
from typing import Any, Dict, List, Optional

from .auth import Authenticator
from .errors import (
    APIUnreachableError,
    AtlassianError,
    EntityNotFoundError,
    TransportError,
)
from .request_executor import RequestExecutor
from src.models.entities import Issue

logger = logging.getLogger(__name__)

ISSUE_PATH = "/rest/api/3/issue"
SEARCH_PATH = "/rest/api/3/search/jql"

MY_ISSUES_JQL = "assignee = currentUser() AND resolution = Unresolved ORDER BY updated DESC"


def text_to_adf(text: str) -> Dict[str, Any]:
    """Wrap plain text in an Atlassian Document Format document.

    Each blank-line-separated block becomes one paragraph. Empty text yields a
    document with no content.

    Args:
        text: Plain text

    Returns:
        ADF "doc" dict
    """
    blocks = [block.strip() for block in (text or "").replace("\r\n", "\n").split("\n\n")]
    content = [
        {"type": "paragraph", "content": [{"type": "text", "text": block}]}
        for block in blocks
        if block
    ]
    return {"type": "doc", "version": 1, "content": content}


class JiraClient:
    """Client for Jira issues, comments, transitions and projects.

    Example:
        >>> jira = JiraClient(Authenticator())
        >>> issue = jira.get_issue("PROJ-123")
        >>> print(issue.fields.summary)
    """

    def __init__(
        self,
        authenticator: Optional[Authenticator] = None,
        executor: Optional[RequestExecutor] = None,
    ):
        """Initialize the client.

        Args:
            authenticator: Authenticator for settings (default: a new one)
            executor: Optional pre-built executor (mainly for tests)
        """
        self._executor = executor or RequestExecutor(
            authenticator or Authenticator(), service_name="Jira"
        )

    # ----- issues -----

    def get_issue(self, issue_key: str) -> Issue:
        """Fetch a single issue with all fields.

        Raises:
            EntityNotFoundError: If the issue does not exist (404)
            TransportError: On any other API error
        """
        try:
            data = self._executor.request(
                f"{ISSUE_PATH}/{issue_key}",
                params={"fields": "*all", "expand": "renderedFields"},
            )
        except TransportError as e:
            if e.status_code == 404:
                raise EntityNotFoundError(issue_key, e) from e
            raise
        return Issue.from_api(data)

    def search_issues(
        self,
        jql: str,
        max_results: int = 50,
        start_at: int = 0,
    ) -> List[Issue]:
        """Search issues with JQL.

        The /search/jql endpoint returns only ids unless fields are requested,
        so every field is asked for.
        """
        data = self._executor.request(
            SEARCH_PATH,
            params={
                "jql": jql,
                "maxResults": max_results,
                "startAt": start_at,
                "fields": "*all",
            },
        )
        issues = data.get("issues", []) if isinstance(data, dict) else []
        return [Issue.from_api(raw) for raw in issues]

    def get_my_issues(self, max_results: int = 50) -> List[Issue]:
        """Unresolved issues assigned to the current user, most recent first."""
        return self.search_issues(MY_ISSUES_JQL, max_results)

    def create_issue(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create an issue.

        Args:
            fields: Jira "fields" payload (project, summary, issuetype, ...)

        Returns:
            Create response with "id", "key" and "self"
        """
        logger.debug(f"Creating issue in project {fields.get('project', {}).get('key')}")
        result = self._executor.request(ISSUE_PATH, method="POST", body={"fields": fields})
        if not isinstance(result, dict) or not result.get("key"):
            raise AtlassianError(f"Jira did not return a key for the created issue: {result!r}")
        return result

    def update_issue(self, issue_key: str, fields: Dict[str, Any]) -> None:
        """Overwrite the given fields of an issue. No version check is made."""
        self._executor.request(
            f"{ISSUE_PATH}/{issue_key}", method="PUT", body={"fields": fields}
        )

    # ----- comments -----

    def add_comment(self, issue_key: str, comment: str) -> Dict[str, Any]:
        """Add a plain-text comment (sent as an ADF document)."""
        return self._executor.request(
            f"{ISSUE_PATH}/{issue_key}/comment",
            method="POST",
            body={"body": text_to_adf(comment)},
        )

    def get_comments(
        self,
        issue_key: str,
        start_at: int = 0,
        max_results: int = 50,
        order_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"startAt": start_at, "maxResults": max_results}
        if order_by:
            params["orderBy"] = order_by
        return self._executor.request(f"{ISSUE_PATH}/{issue_key}/comment", params=params)

    # ----- workflow -----

    def get_transitions(self, issue_key: str) -> List[Dict[str, Any]]:
        data = self._executor.request(f"{ISSUE_PATH}/{issue_key}/transitions")
        return data.get("transitions", []) if isinstance(data, dict) else []

    def transition_issue(self, issue_key: str, transition_id: str) -> None:
        self._executor.request(
            f"{ISSUE_PATH}/{issue_key}/transitions",
            method="POST",
            body={"transition": {"id": str(transition_id)}},
        )

    # ----- account / site -----

    def get_current_user(self) -> Dict[str, Any]:
        return self._executor.request("/rest/api/3/myself")

    def check_connection(self) -> bool:
        """Return True if the current user can be read.

        Raises:
            ConfigurationError: If connection settings are missing
        """
        try:
            self.get_current_user()
        except (TransportError, APIUnreachableError) as e:
            logger.debug(f"Jira connection check failed: {e}")
            return False
        return True

    def get_all_projects(self) -> List[Dict[str, Any]]:
        data = self._executor.request("/rest/api/3/project")
        return data if isinstance(data, list) else []

    # ----- related issues -----

    def get_sub_tasks(self, issue_key: str) -> List[Issue]:
        return self.search_issues(f"parent = {issue_key} ORDER BY created ASC", 100)

    def get_issue_links(self, issue_key: str) -> List[Dict[str, Any]]:
        """Raw issuelinks of an issue."""
        data = self._executor.request(
            f"{ISSUE_PATH}/{issue_key}", params={"fields": "issuelinks"}
        )
        fields = data.get("fields", {}) if isinstance(data, dict) else {}
        return fields.get("issuelinks") or []

    def gather_issue_context(self, issue_key: str) -> Dict[str, Any]:
        """Collect an issue with its sub-tasks and linked issues.

        Linked issues that cannot be fetched are skipped with a warning.

        Returns:
            Dict with "main_issue", "sub_tasks", "linked_issues" and
            "all_issues"
        """
        main_issue = self.get_issue(issue_key)
        sub_tasks = self.get_sub_tasks(issue_key)

        linked_issues = []
        for link in self.get_issue_links(issue_key):
            linked = link.get("outwardIssue") or link.get("inwardIssue")
            if not linked or not linked.get("key"):
                continue
            try:
                linked_issues.append(self.get_issue(linked["key"]))
            except TransportError as e:
                logger.warning(f"Skipping linked issue {linked['key']}: {e}")

        return {
            "main_issue": main_issue,
            "sub_tasks": sub_tasks,
            "linked_issues": linked_issues,
            "all_issues": [main_issue] + sub_tasks + linked_issues,
        }
