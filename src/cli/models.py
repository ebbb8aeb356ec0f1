"""Data models for CLI operations.

This module defines the exit codes returned by every command and the state
shared between the top-level callback and the subcommands.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    These exit codes provide meaningful feedback about the operation result:
    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): General error (config issues, bad input, API errors)
    - CONFLICT (2): Page update still rejected as stale after the retry
    - AUTH_ERROR (3): Authentication or authorization failure
    - NETWORK_ERROR (4): Network connectivity or API availability issues

    Example:
        >>> exit_code = ExitCode.SUCCESS
        >>> sys.exit(exit_code)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFLICT = 2
    AUTH_ERROR = 3
    NETWORK_ERROR = 4


@dataclass
class CLIState:
    """Options given before the subcommand.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        no_color: Disable colored output
        settings_path: Optional path to the YAML settings file
        mirror_dir: Optional mirror directory overriding the settings
    """
    verbosity: int = 0
    no_color: bool = False
    settings_path: Optional[str] = None
    mirror_dir: Optional[str] = None
