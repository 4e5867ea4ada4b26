"""Custom exceptions for Git Manager."""


class GitManagerError(Exception):
    """Base exception for Git Manager errors."""


class BranchError(GitManagerError):
    """Error creating, switching or deleting branches."""


class CommitError(GitManagerError):
    """Error staging or committing changes."""


class PushError(GitManagerError):
    """Error pushing to remote."""


class PRError(GitManagerError):
    """Error creating or reading pull requests."""
