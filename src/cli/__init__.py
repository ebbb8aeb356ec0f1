"""Command-line interface for the Atlassian text mirror.

This package provides the `atlassian-mirror` CLI tool that opens Jira issues
and Confluence pages as editable local text files and saves them back, with
progress indication and exit codes for every failure class.
"""

from .models import ExitCode, CLIState
from .output import OutputHandler

__all__ = [
    'ExitCode',
    'CLIState',
    'OutputHandler',
]
