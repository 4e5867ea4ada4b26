"""Data models for the Orchestrator module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jirabot.git_manager import PullRequest

NO_CHANGES_ERROR = "No changes were made"


@dataclass(frozen=True)
class WorkResult:
    """Outcome of one workflow run for a ticket.

    Attributes:
        success: Whether the PR was opened and the ticket updated.
        ticket_key: The ticket processed.
        pr: The pull request, on success.
        preview_url: Preview deployment URL, if one became available.
        error: Error message on failure.
        changes_summary: Commit subjects included in the PR and comment.
        no_changes: True when the agent ran cleanly but changed nothing.
    """

    success: bool
    ticket_key: str
    pr: PullRequest | None = None
    preview_url: str | None = None
    error: str | None = None
    changes_summary: str | None = None
    no_changes: bool = False
