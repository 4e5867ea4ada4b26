"""Orchestrator - Runs the ticket-to-pull-request workflow."""

from jirabot.orchestrator.exceptions import AgentFailedError, OrchestratorError
from jirabot.orchestrator.models import NO_CHANGES_ERROR, WorkResult
from jirabot.orchestrator.patterns import (
    format_pattern,
    format_pr_body,
    format_ticket_comment,
    format_title,
    sanitize_for_branch,
)
from jirabot.orchestrator.worker import Worker

__all__ = [
    "NO_CHANGES_ERROR",
    "AgentFailedError",
    "OrchestratorError",
    "WorkResult",
    "Worker",
    "format_pattern",
    "format_pr_body",
    "format_ticket_comment",
    "format_title",
    "sanitize_for_branch",
]
