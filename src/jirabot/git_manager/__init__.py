"""Git Manager - Handles git and GitHub operations for the workflow."""

from jirabot.git_manager.exceptions import (
    BranchError,
    CommitError,
    GitManagerError,
    PRError,
    PushError,
)
from jirabot.git_manager.manager import GitManager, get_github_token
from jirabot.git_manager.models import GitStatus, PullRequest

__all__ = [
    "BranchError",
    "CommitError",
    "GitManager",
    "GitManagerError",
    "GitStatus",
    "PRError",
    "PullRequest",
    "PushError",
    "get_github_token",
]
