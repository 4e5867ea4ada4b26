"""Placeholder substitution for branch names, PR titles and PR bodies."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jirabot.jira import Ticket

MAX_BRANCH_SUMMARY = 50

DEFAULT_CHANGES_SUMMARY = "- Implementation details in commits"
TESTING_INSTRUCTIONS = "- Review the changes\n- Test on preview deployment"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def sanitize_for_branch(text: str) -> str:
    """Make text safe for a branch name.

    Lower-cases, collapses runs of non-alphanumerics into '-', trims
    leading/trailing '-' and caps the length.
    """
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")
    return slug[:MAX_BRANCH_SUMMARY]


def substitute(template: str, values: list[tuple[str, str]]) -> str:
    """Apply (placeholder, value) replacements to a template, in order."""
    result = template
    for placeholder, value in values:
        result = result.replace(placeholder, value)
    return result


def format_pattern(pattern: str, ticket: Ticket) -> str:
    """Resolve `{ticket_key}`, `{summary}` (sanitized) and `{type}` in a branch pattern."""
    return substitute(
        pattern,
        [
            ("{ticket_key}", ticket.key),
            ("{summary}", sanitize_for_branch(ticket.summary)),
            ("{type}", ticket.type.lower()),
        ],
    )


def format_title(pattern: str, ticket: Ticket) -> str:
    """Resolve `{ticket_key}`, `{summary}` and `{type}` in a PR title or commit pattern."""
    return substitute(
        pattern,
        [
            ("{ticket_key}", ticket.key),
            ("{summary}", ticket.summary),
            ("{type}", ticket.type.lower()),
        ],
    )


def format_pr_body(
    template: str,
    ticket: Ticket,
    ticket_url: str,
    changes_summary: str | None,
) -> str:
    """Render the PR body template."""
    return substitute(
        template,
        [
            ("{ticket_key}", ticket.key),
            ("{ticket_url}", ticket_url),
            ("{summary}", ticket.summary),
            ("{changes_summary}", changes_summary or DEFAULT_CHANGES_SUMMARY),
            ("{testing_instructions}", TESTING_INSTRUCTIONS),
        ],
    )


def format_ticket_comment(
    pr_url: str,
    preview_url: str | None = None,
    changes_summary: str | None = None,
) -> str:
    """Build the comment posted on the ticket once the PR is open."""
    comment = f"PR: {pr_url}"
    if preview_url:
        comment += f"\nPreview: {preview_url}"
    if changes_summary:
        comment += f"\n\nChanges made:\n{changes_summary}"
    comment += "\n\nReady for review."
    return comment
