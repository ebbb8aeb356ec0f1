"""Human-readable summaries of issues and pages for terminal display."""

from typing import List

from src.models.entities import Issue, Page


def format_issue(issue: Issue) -> str:
    """Format an issue as Markdown label lines.

    Args:
        issue: Issue to describe

    Returns:
        Key and summary, then status, priority, type, people and dates
    """
    f = issue.fields
    lines = [
        f"**{issue.key}**: {f.summary}",
        f"**Status**: {f.status.name if f.status else 'Unknown'}",
        f"**Priority**: {f.priority.name if f.priority else 'None'}",
        f"**Type**: {f.issue_type.name if f.issue_type else 'Unknown'}",
        f"**Assignee**: {f.assignee.display_name if f.assignee else 'Unassigned'}",
        f"**Reporter**: {f.reporter.display_name if f.reporter else 'Unknown'}",
        f"**Created**: {f.created}",
        f"**Updated**: {f.updated}",
    ]
    return "\n".join(lines)


def format_page(page: Page) -> str:
    """Format a page as Markdown label lines.

    Args:
        page: Page to describe

    Returns:
        Title and id, then space, status, version and the web URL if known
    """
    lines = [
        f"**{page.title}** (ID: {page.id})",
        f"**Space**: {page.space_name or page.space_key or 'Unknown'}",
        f"**Status**: {page.status}",
        f"**Version**: {page.version or 1}",
    ]
    if page.web_url:
        lines.append(f"**URL**: {page.web_url}")
    return "\n".join(lines)


def truncate_text(text: str, max_length: int = 500) -> str:
    """Cut text to max_length characters, marking the cut with '...'."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def format_issue_summary(issues: List[Issue]) -> str:
    """Format search results as one line per issue.

    Args:
        issues: Issues to list

    Returns:
        "No issues found." or a count header followed by "- KEY: summary [status]" lines
    """
    if not issues:
        return "No issues found."

    lines = [
        f"- {issue.key}: {issue.fields.summary} "
        f"[{issue.fields.status.name if issue.fields.status else 'Unknown'}]"
        for issue in issues
    ]
    return f"Found {len(issues)} issue(s):\n" + "\n".join(lines)


def format_page_summary(pages: List[Page]) -> str:
    """Format search results as one line per page.

    Args:
        pages: Pages to list

    Returns:
        "No pages found." or a count header followed by "- title (space) - url" lines
    """
    if not pages:
        return "No pages found."

    lines = [
        f"- {page.title} ({page.space_key or 'Unknown'}) - {page.web_url or page.id}"
        for page in pages
    ]
    return f"Found {len(pages)} page(s):\n" + "\n".join(lines)
