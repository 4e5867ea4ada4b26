"""Data models for configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

DEFAULT_BODY_TEMPLATE = """## Jira Ticket
{ticket_url}

## Summary
{changes_summary}

## Testing
{testing_instructions}

Generated with jira-claude-bot"""


def default_data_dir() -> str:
    """Default directory for bot data (history database)."""
    return str(Path.home() / ".jira-claude-bot" / "data")


def _known(cls: type, data: dict[str, Any] | None) -> dict[str, Any]:
    """Keep only the keys of `data` that are fields of dataclass `cls`."""
    if not data:
        return {}
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class JiraConfig:
    """Jira connection settings."""

    host: str = ""
    email: str = ""
    api_token: str = ""


@dataclass
class BotConfig:
    """Bot process settings.

    Attributes:
        poll_interval: Seconds between daemon polls.
        max_concurrent_workers: Reserved; tickets are always processed one at a time.
        log_level: Logging level name.
        data_dir: Directory holding the run history database.
    """

    poll_interval: int = 300
    max_concurrent_workers: int = 1
    log_level: str = "info"
    data_dir: str = field(default_factory=default_data_dir)


@dataclass
class SlackConfig:
    """Slack incoming webhook settings."""

    webhook_url: str = ""
    channel: str = ""


@dataclass
class NotificationsConfig:
    """Notification delivery settings.

    Attributes:
        slack: Slack webhook settings, or None when disabled.
        events: Event names to deliver. Empty means every event.
    """

    slack: SlackConfig | None = None
    events: list[str] = field(default_factory=list)


@dataclass
class GlobalConfig:
    """User-level configuration shared by every project."""

    bot: BotConfig = field(default_factory=BotConfig)
    jira: JiraConfig = field(default_factory=JiraConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GlobalConfig:
        """Create config from a (merged) dictionary."""
        notifications_data = data.get("notifications") or {}
        slack_data = notifications_data.get("slack")
        return cls(
            bot=BotConfig(**_known(BotConfig, data.get("bot"))),
            jira=JiraConfig(**_known(JiraConfig, data.get("jira"))),
            notifications=NotificationsConfig(
                slack=SlackConfig(**_known(SlackConfig, slack_data)) if slack_data else None,
                events=list(notifications_data.get("events") or []),
            ),
        )


@dataclass
class ProjectInfo:
    """Identifies the Jira project and GitHub repository."""

    jira_key: str = ""
    repo: str = ""


@dataclass
class TicketCriteria:
    """Which tickets the poller picks up.

    Attributes:
        statuses: Candidate statuses (used when jql is not set).
        types: Issue types of interest (informational).
        jql: Explicit JQL query, overrides statuses.
        assignee: Assignee filter (informational).
    """

    statuses: list[str] = field(default_factory=lambda: ["To Do"])
    types: list[str] | None = None
    jql: str | None = None
    assignee: str | None = None


@dataclass
class PRConfig:
    """Pull request settings."""

    base_branch: str = "develop"
    title_pattern: str = "{ticket_key}: {summary}"
    body_template: str = DEFAULT_BODY_TEMPLATE


@dataclass
class TransitionsConfig:
    """Jira transition names applied at workflow milestones."""

    on_pr_created: str | None = "PR to develop open"
    on_pr_merged: str | None = None
    on_pr_failed: str | None = None


@dataclass
class WorkflowConfig:
    """Branch, commit and PR naming plus ticket transitions."""

    branch_pattern: str = "feature/{ticket_key}"
    commit_pattern: str = "{ticket_key}: {summary}"
    pr: PRConfig = field(default_factory=PRConfig)
    transitions: TransitionsConfig = field(default_factory=TransitionsConfig)


@dataclass
class DeploymentConfig:
    """Preview deployment settings.

    Attributes:
        platform: vercel, netlify, custom or none.
        wait_for_preview: Whether to poll for a preview URL after opening the PR.
        preview_timeout: Seconds to wait for the preview URL.
    """

    platform: str = "vercel"
    wait_for_preview: bool = True
    preview_timeout: int = 300


@dataclass
class ClaudeConfig:
    """Claude Code CLI settings.

    Attributes:
        model: Model alias passed via --model.
        max_turns: Passed via --max-turns.
        timeout: Seconds before the agent is killed. None uses the runner default.
        instructions: Project-specific instructions appended to every prompt.
        skills: Skill names (informational).
    """

    model: str | None = "sonnet"
    max_turns: int | None = 50
    timeout: int | None = None
    instructions: str | None = None
    skills: list[str] = field(default_factory=list)


@dataclass
class GuardrailConfig:
    """Ticket guardrails. Carried in configuration, not enforced by the workflow."""

    require_review: list[str] = field(default_factory=list)
    skip: list[str] = field(default_factory=list)


@dataclass
class ProjectConfig:
    """Per-project configuration stored in `.jira-claude-bot.yaml`."""

    project: ProjectInfo = field(default_factory=ProjectInfo)
    tickets: TicketCriteria = field(default_factory=TicketCriteria)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    guardrails: GuardrailConfig = field(default_factory=GuardrailConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        """Create config from a (merged) dictionary.

        Args:
            data: Configuration dictionary with snake_case keys.

        Returns:
            Parsed configuration object.
        """
        workflow_data = data.get("workflow") or {}
        workflow = WorkflowConfig(
            **_known(WorkflowConfig, {
                k: v for k, v in workflow_data.items() if k not in ("pr", "transitions")
            }),
            pr=PRConfig(**_known(PRConfig, workflow_data.get("pr"))),
            transitions=TransitionsConfig(
                **_known(TransitionsConfig, workflow_data.get("transitions"))
            ),
        )

        return cls(
            project=ProjectInfo(**_known(ProjectInfo, data.get("project"))),
            tickets=TicketCriteria(**_known(TicketCriteria, data.get("tickets"))),
            workflow=workflow,
            deployment=DeploymentConfig(**_known(DeploymentConfig, data.get("deployment"))),
            claude=ClaudeConfig(**_known(ClaudeConfig, data.get("claude"))),
            guardrails=GuardrailConfig(**_known(GuardrailConfig, data.get("guardrails"))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary suitable for YAML."""
        return asdict(self)
