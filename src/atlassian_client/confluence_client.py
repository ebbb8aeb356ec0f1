"""Confluence Cloud REST accessor.

Pages are read and written through the v1 content API (storage format body,
version number on every update); footer comments use the v2 API. All calls go
through RequestExecutor.
"""

import html
import logging
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from .auth import Authenticator
from .errors import APIUnreachableError, EntityNotFoundError, TransportError
from .request_executor import RequestExecutor
from src.models.entities import Page

logger = logging.getLogger(__name__)

CONTENT_PATH = "/wiki/rest/api/content"
PAGE_EXPAND = "body.storage,version,space,ancestors"
SEARCH_EXPAND = "space,version,body.storage"
CDATA_PATTERN = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)


class ConfluenceClient:
    """Client for Confluence pages, spaces and comments.

    Example:
        >>> confluence = ConfluenceClient(Authenticator())
        >>> page = confluence.get_page("123456")
        >>> print(page.title, page.version)
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
            authenticator or Authenticator(), service_name="Confluence"
        )

    def _validate_page_id(self, page_id: str) -> str:
        """Validate that a page ID is numeric and return it stripped.

        Raises:
            ValueError: If page_id is empty or not numeric
        """
        if page_id is None or not str(page_id).strip():
            raise ValueError("page_id cannot be empty")

        page_id_str = str(page_id).strip()
        if not re.match(r'^\d+$', page_id_str):
            raise ValueError(
                f"Invalid page_id format: '{page_id}'. "
                f"Page IDs must contain only numeric characters."
            )
        return page_id_str

    # ----- pages -----

    def get_page(self, page_id: str, expand: Optional[str] = None) -> Page:
        """Fetch a page with its storage body, version, space and ancestors.

        Raises:
            ValueError: If page_id is not numeric
            EntityNotFoundError: If the page does not exist (404)
            TransportError: On any other API error
        """
        page_id = self._validate_page_id(page_id)
        try:
            data = self._executor.request(
                f"{CONTENT_PATH}/{page_id}",
                params={"expand": expand or PAGE_EXPAND},
            )
        except TransportError as e:
            if e.status_code == 404:
                raise EntityNotFoundError(page_id, e) from e
            raise
        return Page.from_api(data)

    def get_page_version(self, page_id: str) -> int:
        """Read only the current version number of a page."""
        return self.get_page(page_id, expand="version").version

    def create_page(
        self,
        space_key: str,
        title: str,
        content: str,
        parent_id: Optional[str] = None,
    ) -> Page:
        """Create a page in storage format.

        Args:
            space_key: Target space key
            title: Page title
            content: Storage format XHTML body
            parent_id: Optional parent page id

        Returns:
            Page built from the create response
        """
        body: Dict[str, Any] = {
            "type": "page",
            "title": title,
            "space": {"key": space_key},
            "body": {"storage": {"value": content, "representation": "storage"}},
        }
        if parent_id:
            body["ancestors"] = [{"id": self._validate_page_id(parent_id)}]

        logger.debug(f"Creating page '{title}' in space {space_key}")
        return Page.from_api(self._executor.request(CONTENT_PATH, method="POST", body=body))

    def update_page(
        self,
        page_id: str,
        title: str,
        content: str,
        version: int,
    ) -> Page:
        """Replace a page's title and body.

        Args:
            page_id: Page to update
            title: New title
            content: New storage format XHTML body
            version: Version the edit is based on; version + 1 is sent

        Returns:
            Page built from the update response

        Raises:
            TransportError: On API errors, including a stale version (409)
        """
        page_id = self._validate_page_id(page_id)
        body = {
            "version": {"number": version + 1},
            "title": title,
            "type": "page",
            "body": {"storage": {"value": content, "representation": "storage"}},
        }
        logger.debug(f"Updating page {page_id} to version {version + 1}")
        data = self._executor.request(f"{CONTENT_PATH}/{page_id}", method="PUT", body=body)
        return Page.from_api(data)

    def delete_page(self, page_id: str) -> None:
        page_id = self._validate_page_id(page_id)
        self._executor.request(f"{CONTENT_PATH}/{page_id}", method="DELETE")

    # ----- search -----

    def search_content(self, cql: str, limit: int = 25, start: int = 0) -> List[Page]:
        """Search content with CQL."""
        data = self._executor.request(
            f"{CONTENT_PATH}/search",
            params={"cql": cql, "limit": limit, "start": start, "expand": SEARCH_EXPAND},
        )
        results = data.get("results", []) if isinstance(data, dict) else []
        return [Page.from_api(raw) for raw in results]

    def get_pages_in_space(self, space_key: str, limit: int = 25) -> List[Page]:
        cql = f'space = "{space_key}" AND type = page ORDER BY lastmodified DESC'
        return self.search_content(cql, limit)

    def search_by_title(self, title: str, limit: int = 10) -> List[Page]:
        cql = f'type = page AND title ~ "{title}" ORDER BY lastmodified DESC'
        return self.search_content(cql, limit)

    def search_by_jira_key(self, jira_key: str, limit: int = 20) -> List[Page]:
        """Pages whose text mentions a Jira issue key."""
        cql = f'type = page AND text ~ "{jira_key}" ORDER BY lastmodified DESC'
        return self.search_content(cql, limit)

    def get_recently_updated(self, limit: int = 10) -> List[Page]:
        return self.search_content("type = page ORDER BY lastmodified DESC", limit)

    # ----- account / site -----

    def get_current_user(self) -> Dict[str, Any]:
        return self._executor.request("/wiki/rest/api/user/current")

    def check_connection(self) -> bool:
        """Return True if the current user can be read.

        Raises:
            ConfigurationError: If connection settings are missing
        """
        try:
            self.get_current_user()
        except (TransportError, APIUnreachableError) as e:
            logger.debug(f"Confluence connection check failed: {e}")
            return False
        return True

    def get_all_spaces(self, limit: int = 500) -> List[Dict[str, Any]]:
        data = self._executor.request("/wiki/rest/api/space", params={"limit": limit})
        return data.get("results", []) if isinstance(data, dict) else []

    # ----- comments (v2) -----

    def get_page_footer_comments(
        self,
        page_id: str,
        sort: Optional[str] = None,
        limit: int = 25,
    ) -> Dict[str, Any]:
        page_id = self._validate_page_id(page_id)
        params: Dict[str, Any] = {"limit": limit}
        if sort:
            params["sort"] = sort
        return self._executor.request(
            f"/wiki/api/v2/pages/{page_id}/footer-comments", params=params
        )

    def create_footer_comment(
        self,
        page_id: str,
        body: str,
        parent_comment_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Add a footer comment, or a reply when parent_comment_id is given."""
        payload: Dict[str, Any] = {
            "body": {"representation": "storage", "value": body},
        }
        if parent_comment_id:
            payload["parentCommentId"] = parent_comment_id
        else:
            payload["pageId"] = self._validate_page_id(page_id)
        return self._executor.request("/wiki/api/v2/footer-comments", method="POST", body=payload)

    @staticmethod
    def extract_text_content(page: Page) -> str:
        """Plain text of a page's storage body with whitespace collapsed.

        CDATA sections (code and plain-text macro bodies) are kept as text;
        the HTML parser would otherwise drop them.
        """
        if not page.body:
            return ""
        body = CDATA_PATTERN.sub(lambda m: html.escape(m.group(1)), page.body)
        soup = BeautifulSoup(body, "lxml")
        text = soup.get_text(separator=" ", strip=True).replace("\xa0", " ")
        return re.sub(r"\s+", " ", text).strip()
