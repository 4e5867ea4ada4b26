"""Data models for Git Manager."""

from dataclasses import dataclass, field


@dataclass
class PullRequest:
    """Pull request data."""

    number: int
    url: str
    title: str
    state: str
    head_sha: str


@dataclass
class GitStatus:
    """Working tree status split the way `git status --porcelain` reports it."""

    staged: list[str] = field(default_factory=list)
    unstaged: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """True if anything is staged, modified or untracked."""
        return bool(self.staged or self.unstaged or self.untracked)
