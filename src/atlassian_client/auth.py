"""Authentication module for loading Atlassian connection settings.

This module resolves the Atlassian Cloud base URL, account email and API token
used for HTTP Basic authentication. Settings are looked up in an optional YAML
settings file first and fall back to environment variables (a .env file is
loaded with python-dotenv). Missing settings raise ConfigurationError before
any network call is made.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, NamedTuple, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_SETTINGS_FILE = ".atlassian-mirror.yaml"
DEFAULT_TIMEOUT = 30


class Credentials(NamedTuple):
    """Atlassian API credentials."""
    url: str
    email: str
    api_token: str


@dataclass
class Settings:
    """Resolved connection settings plus workspace options.

    Attributes:
        credentials: Base URL, email and API token
        mirror_dir: Directory where text mirrors are written
        timeout: Request timeout in seconds
    """

    credentials: Credentials
    mirror_dir: str = "."
    timeout: int = DEFAULT_TIMEOUT


class Authenticator:
    """Loads and validates Atlassian settings.

    Lookup order for each value:
        1. Settings file (default: .atlassian-mirror.yaml in the working directory)
        2. Environment variables (after loading .env)

    Settings file keys: base_url, email, api_token, mirror_dir, timeout.

    Environment variables:
        ATLASSIAN_BASE_URL: Site URL (e.g., https://yourinstance.atlassian.net)
        ATLASSIAN_EMAIL: Account email address
        ATLASSIAN_API_TOKEN: API token
        ATLASSIAN_MIRROR_DIR: Optional mirror directory

    Values are read on every call and never cached or logged.

    Example:
        >>> auth = Authenticator()
        >>> creds = auth.get_credentials()
        >>> print(f"Connecting to {creds.url}")
    """

    ENV_VARS = {
        "base_url": "ATLASSIAN_BASE_URL",
        "email": "ATLASSIAN_EMAIL",
        "api_token": "ATLASSIAN_API_TOKEN",
    }

    def __init__(self, settings_path: Optional[str] = None):
        """Initialize the authenticator by loading environment variables from .env file.

        Args:
            settings_path: Optional path to a YAML settings file
        """
        load_dotenv()
        self.settings_path = settings_path or DEFAULT_SETTINGS_FILE

    def _load_settings_file(self) -> Dict[str, Any]:
        """Read the YAML settings file, if present.

        Returns:
            Dict of settings (empty if the file does not exist)

        Raises:
            ConfigurationError: If the file exists but is not a YAML mapping
        """
        if not os.path.exists(self.settings_path):
            return {}

        try:
            with open(self.settings_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                [],
                f"Cannot read settings file {self.settings_path}: {e}",
            )

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                [],
                f"Settings file {self.settings_path} must be a YAML mapping, "
                f"got {type(data).__name__}",
            )
        return data

    def get_credentials(self) -> Credentials:
        """Get Atlassian credentials from the settings file or environment.

        Returns:
            Credentials: A named tuple containing url, email, and api_token

        Raises:
            ConfigurationError: If any required setting is missing
        """
        return self.get_settings().credentials

    def get_settings(self) -> Settings:
        """Resolve the full settings object.

        Returns:
            Settings with credentials, mirror directory and timeout

        Raises:
            ConfigurationError: If any required setting is missing
        """
        file_settings = self._load_settings_file()

        values = {}
        missing = []
        for key, env_var in self.ENV_VARS.items():
            value = file_settings.get(key) or os.getenv(env_var)
            if not value:
                missing.append(env_var)
            values[key] = str(value).strip() if value else ""

        if missing:
            raise ConfigurationError(missing)

        mirror_dir = (
            file_settings.get("mirror_dir")
            or os.getenv("ATLASSIAN_MIRROR_DIR")
            or "."
        )

        timeout = file_settings.get("timeout", DEFAULT_TIMEOUT)
        try:
            timeout = int(timeout)
        except (TypeError, ValueError):
            raise ConfigurationError(
                [], f"Invalid timeout in {self.settings_path}: {timeout!r}"
            )

        return Settings(
            credentials=Credentials(
                url=values["base_url"].rstrip("/"),
                email=values["email"],
                api_token=values["api_token"],
            ),
            mirror_dir=str(mirror_dir),
            timeout=timeout,
        )
