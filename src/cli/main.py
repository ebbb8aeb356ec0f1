"""Main CLI entry point for the atlassian-mirror command.

This module provides the Typer application that opens Jira issues and
Confluence pages as local text mirrors, saves edited mirrors back, and prints
quick summaries and search results.
"""

import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, NamedTuple, Optional

import typer

from src.atlassian_client.auth import Authenticator
from src.atlassian_client.confluence_client import ConfluenceClient
from src.atlassian_client.errors import (
    APIUnreachableError,
    AtlassianError,
    ConfigurationError,
    TransportError,
)
from src.atlassian_client.jira_client import JiraClient
from src.cli.models import CLIState, ExitCode
from src.cli.output import OutputHandler
from src.text_mirror.coordinator import UpdateCoordinator
from src.text_mirror.errors import SaveError
from src.text_mirror.formatters import (
    format_issue,
    format_issue_summary,
    format_page,
    format_page_summary,
    truncate_text,
)
from src.text_mirror.workspace import MirrorWorkspace

VERSION = "0.1.0"

app = typer.Typer(
    name="atlassian-mirror",
    help="""Edit Jira issues and Confluence pages as local text files.

QUICK START:
  atlassian-mirror open-issue PROJ-123          # Write .jira/PROJ-123.jira.md
  atlassian-mirror open-page 123456             # Write .confluence/page-123456.confluence.md
  atlassian-mirror save .jira/PROJ-123.jira.md  # Push your edits back
  atlassian-mirror new-page TEAM                # Start a new page from a template
  atlassian-mirror verify                       # Check both connections""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

# Module logger
logger = logging.getLogger(__name__)


class Services(NamedTuple):
    """Clients and workspace built from the resolved settings."""
    jira: JiraClient
    confluence: ConfluenceClient
    workspace: MirrorWorkspace


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:  # verbosity >= 2
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)
    app_logger.handlers.clear()

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"atlassian-mirror_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_formatter = logging.Formatter(file_format, datefmt=date_format)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _exit_code_for(error: Exception) -> ExitCode:
    """Map an exception to the exit code reported to the shell."""
    if isinstance(error, SaveError):
        if error.version_conflict:
            return ExitCode.CONFLICT
        if error.__cause__ is not None:
            return _exit_code_for(error.__cause__)
        return ExitCode.GENERAL_ERROR
    if isinstance(error, APIUnreachableError):
        return ExitCode.NETWORK_ERROR
    if isinstance(error, TransportError) and error.status_code in (401, 403):
        return ExitCode.AUTH_ERROR
    return ExitCode.GENERAL_ERROR


@contextmanager
def _error_boundary(output: OutputHandler) -> Iterator[None]:
    """Report failures of one command and exit with the matching code."""
    try:
        yield
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        output.error(str(e))
        output.print("Set ATLASSIAN_BASE_URL, ATLASSIAN_EMAIL and ATLASSIAN_API_TOKEN "
                     "or create .atlassian-mirror.yaml")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except (AtlassianError, ValueError, OSError) as e:
        logger.error(f"Command failed: {e}")
        output.error(str(e))
        raise typer.Exit(_exit_code_for(e))
    except typer.Exit:
        raise
    except Exception as e:
        logger.exception("Unexpected error")
        output.error(f"Unexpected error: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def _build_services(state: CLIState) -> Services:
    """Build the clients and the workspace.

    Raises:
        ConfigurationError: If connection settings are missing
    """
    authenticator = Authenticator(state.settings_path)
    settings = authenticator.get_settings()

    jira = JiraClient(authenticator)
    confluence = ConfluenceClient(authenticator)
    workspace = MirrorWorkspace(
        state.mirror_dir or settings.mirror_dir,
        UpdateCoordinator(jira, confluence),
        jira,
        confluence,
    )
    return Services(jira=jira, confluence=confluence, workspace=workspace)


def _state(ctx: typer.Context) -> CLIState:
    return ctx.obj if isinstance(ctx.obj, CLIState) else CLIState()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"atlassian-mirror version {VERSION}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    settings_path: Optional[str] = typer.Option(
        None,
        "--settings",
        help="YAML settings file (default: .atlassian-mirror.yaml)",
        metavar="FILE",
    ),
    mirror_dir: Optional[str] = typer.Option(
        None,
        "--mirror-dir",
        help="Directory for mirror files (overrides the settings)",
        metavar="DIR",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Edit Jira issues and Confluence pages as local text files."""
    _configure_logging(verbosity, logdir)
    ctx.obj = CLIState(
        verbosity=verbosity,
        no_color=no_color,
        settings_path=settings_path,
        mirror_dir=mirror_dir,
    )


@app.command("open-issue")
def open_issue(
    ctx: typer.Context,
    issue_key: str = typer.Argument(..., help="Issue key, e.g. PROJ-123"),
) -> None:
    """Fetch an issue and write its text mirror."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        services = _build_services(state)
        with output.spinner(f"Fetching {issue_key}..."):
            session = services.workspace.open_issue(issue_key)
        output.success(f"Opened issue {session.identifier}")
        output.print(str(session.path))


@app.command("open-page")
def open_page(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="Numeric page id"),
) -> None:
    """Fetch a page and write its text mirror."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        services = _build_services(state)
        with output.spinner(f"Fetching page {page_id}..."):
            session = services.workspace.open_page(page_id)
        output.success(f"Opened page {session.identifier}")
        output.print(str(session.path))


@app.command("new-issue")
def new_issue(
    ctx: typer.Context,
    project_key: str = typer.Argument(..., help="Project key for the new issue"),
) -> None:
    """Write a template for a new issue."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        session = _build_services(state).workspace.new_issue(project_key)
        output.success(f"New issue template for project {project_key}")
        output.print(str(session.path))
        output.info("Edit the file, then run 'atlassian-mirror save' on it")


@app.command("new-page")
def new_page(
    ctx: typer.Context,
    space_key: str = typer.Argument(..., help="Space key for the new page"),
    parent_id: Optional[str] = typer.Option(
        None,
        "--parent",
        help="Parent page id",
        metavar="ID",
    ),
) -> None:
    """Write a template for a new page."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        session = _build_services(state).workspace.new_page(space_key, parent_id=parent_id)
        output.success(f"New page template for space {space_key}")
        output.print(str(session.path))
        output.info("Edit the file, then run 'atlassian-mirror save' on it")


@app.command("save")
def save(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Mirror file (*.jira.md or *.confluence.md)"),
) -> None:
    """Save an edited mirror file back to Jira or Confluence."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        workspace = _build_services(state).workspace
        with output.spinner(f"Saving {path}..."):
            result = workspace.save(path)
        output.print_save_result(result)
        session = workspace.session_for(result.kind, result.identifier)
        if session is not None:
            output.print(str(session.path))


@app.command("show-issue")
def show_issue(
    ctx: typer.Context,
    issue_key: str = typer.Argument(..., help="Issue key, e.g. PROJ-123"),
) -> None:
    """Print a summary of an issue."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        issue = _build_services(state).jira.get_issue(issue_key)
        output.markdown(format_issue(issue))


@app.command("show-page")
def show_page(
    ctx: typer.Context,
    page_id: str = typer.Argument(..., help="Numeric page id"),
    length: int = typer.Option(500, "--length", help="Characters of page text to show"),
) -> None:
    """Print a summary of a page and the start of its text."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        confluence = _build_services(state).confluence
        page = confluence.get_page(page_id)
        output.markdown(format_page(page))
        text = confluence.extract_text_content(page)
        if text:
            output.print("")
            output.print(truncate_text(text, length))


@app.command("search-issues")
def search_issues(
    ctx: typer.Context,
    jql: Optional[str] = typer.Argument(None, help="JQL query"),
    mine: bool = typer.Option(False, "--mine", help="Unresolved issues assigned to me"),
    limit: int = typer.Option(50, "--limit", help="Maximum number of results"),
) -> None:
    """Search issues with JQL (or list your open issues)."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    if not jql and not mine:
        output.error("Give a JQL query or --mine")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    with _error_boundary(output):
        jira = _build_services(state).jira
        issues = jira.get_my_issues(limit) if mine else jira.search_issues(jql, limit)
        output.print(format_issue_summary(issues))


@app.command("search-pages")
def search_pages(
    ctx: typer.Context,
    space: Optional[str] = typer.Option(None, "--space", help="Pages in a space"),
    title: Optional[str] = typer.Option(None, "--title", help="Pages whose title matches"),
    jira_key: Optional[str] = typer.Option(None, "--jira-key", help="Pages mentioning an issue key"),
    cql: Optional[str] = typer.Option(None, "--cql", help="Raw CQL query"),
    limit: int = typer.Option(25, "--limit", help="Maximum number of results"),
) -> None:
    """Search pages. Without a filter, lists recently updated pages."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        confluence = _build_services(state).confluence
        if cql:
            pages = confluence.search_content(cql, limit)
        elif space:
            pages = confluence.get_pages_in_space(space, limit)
        elif title:
            pages = confluence.search_by_title(title, limit)
        elif jira_key:
            pages = confluence.search_by_jira_key(jira_key, limit)
        else:
            pages = confluence.get_recently_updated(limit)
        output.print(format_page_summary(pages))


@app.command("verify")
def verify(ctx: typer.Context) -> None:
    """Check that Jira and Confluence are reachable with the configured account."""
    state = _state(ctx)
    output = OutputHandler(verbosity=state.verbosity, no_color=state.no_color)
    with _error_boundary(output):
        services = _build_services(state)
        results = {
            "Jira": services.jira.check_connection(),
            "Confluence": services.confluence.check_connection(),
        }

    for service, ok in results.items():
        if ok:
            output.success(f"{service} connection OK")
        else:
            output.error(f"{service} connection failed")

    if not all(results.values()):
        raise typer.Exit(ExitCode.NETWORK_ERROR)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()
