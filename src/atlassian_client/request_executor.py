"""Authenticated request executor shared by the Jira and Confluence clients.

This module wraps atlassian-python-api's AtlassianRestAPI in advanced mode so
that every call returns the raw requests.Response. Status handling is done
here rather than in the library: 2xx bodies are parsed as JSON (falling back
to raw text, or an empty dict for an empty body) and any other status raises
TransportError carrying the status code and the response text verbatim.

There are no retries and no timeout policy beyond the configured timeout.
"""

import json
import logging
from typing import Any, Dict, Optional

from atlassian.rest_client import AtlassianRestAPI
from requests.exceptions import ConnectionError, Timeout

from .auth import Authenticator, DEFAULT_TIMEOUT
from .errors import APIUnreachableError, TransportError

logger = logging.getLogger(__name__)


class RequestExecutor:
    """Issues one authenticated HTTP request and returns the parsed result.

    The underlying client is created lazily on first use, so a missing
    configuration is reported by the first request rather than at import or
    construction time.

    Example:
        >>> executor = RequestExecutor(Authenticator(), service_name="Jira")
        >>> me = executor.request("/rest/api/3/myself")
    """

    def __init__(
        self,
        authenticator: Authenticator,
        service_name: str = "Atlassian",
    ):
        """Initialize the executor.

        Args:
            authenticator: Authenticator used to resolve base URL and credentials
            service_name: Name used in error messages ("Jira", "Confluence")
        """
        self._authenticator = authenticator
        self.service_name = service_name
        self._client: Optional[AtlassianRestAPI] = None
        self._base_url: Optional[str] = None

    def _get_client(self) -> AtlassianRestAPI:
        """Get or create the REST client.

        Returns:
            AtlassianRestAPI: Client with a Basic-auth session for the base URL

        Raises:
            ConfigurationError: If connection settings are missing
        """
        if self._client is None:
            settings = self._authenticator.get_settings()
            creds = settings.credentials
            self._base_url = creds.url
            self._client = AtlassianRestAPI(
                url=creds.url,
                username=creds.email,
                password=creds.api_token,
                cloud=True,
                timeout=settings.timeout or DEFAULT_TIMEOUT,
            )
        return self._client

    def request(
        self,
        path: str,
        method: str = "GET",
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the parsed response body.

        Args:
            path: API path relative to the base URL (e.g., "/rest/api/3/issue/ABC-1")
            method: HTTP method
            body: Optional JSON-serializable request body
            params: Optional query parameters

        Returns:
            Parsed JSON body, the raw text if it is not JSON, or {} if empty

        Raises:
            ConfigurationError: If connection settings are missing
            TransportError: On any non-2xx status
            APIUnreachableError: If the host cannot be reached
        """
        client = self._get_client()

        logger.debug(f"{self.service_name} {method} {path}")
        try:
            response = client.request(
                method=method,
                path=path,
                json=body,
                params=params,
                advanced_mode=True,
            )
        except (ConnectionError, Timeout) as e:
            raise APIUnreachableError(
                endpoint=self._base_url or "unknown",
                reason=type(e).__name__,
            ) from e

        text = response.text or ""
        status = response.status_code

        if not 200 <= status < 300:
            logger.debug(f"  {self.service_name} {method} {path} -> {status}")
            raise TransportError(
                status_code=status,
                response_text=text,
                method=method,
                path=path,
                service=self.service_name,
            )

        if not text.strip():
            return {}

        try:
            return json.loads(text)
        except ValueError:
            return text
