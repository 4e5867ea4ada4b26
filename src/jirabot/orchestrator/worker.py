"""Worker - Drives one Jira ticket from fetch to pull request."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING

from jirabot.agent import ClaudeRunner
from jirabot.agent.runner import attachments_dir
from jirabot.git_manager import GitManager, GitManagerError
from jirabot.jira import JiraClient
from jirabot.logging import get_logger
from jirabot.notifications import (
    TICKET_COMPLETED,
    TICKET_FAILED,
    TICKET_STARTED,
    Notifier,
)
from jirabot.orchestrator.exceptions import AgentFailedError
from jirabot.orchestrator.models import NO_CHANGES_ERROR, WorkResult
from jirabot.orchestrator.patterns import (
    format_pattern,
    format_pr_body,
    format_ticket_comment,
    format_title,
)

if TYPE_CHECKING:
    from jirabot.config import GlobalConfig, ProjectConfig
    from jirabot.git_manager import PullRequest
    from jirabot.jira import Ticket

PREVIEW_POLL_INTERVAL = 5


class Worker:
    """Runs the ticket workflow against one repository checkout.

    Steps, in order: fetch ticket, download attachments, create branch, run
    Claude Code, detect changes, commit leftovers, push, open PR, wait for
    the preview deployment, update the ticket, return to the base branch.
    A failure at any step ends the run; the checkout is put back on the base
    branch and a failed WorkResult is returned.
    """

    def __init__(
        self,
        global_config: GlobalConfig,
        project_config: ProjectConfig,
        working_dir: str | Path,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        jira: JiraClient | None = None,
        git: GitManager | None = None,
        agent: ClaudeRunner | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        """Initialize the Worker.

        Collaborators that are not given are built from configuration; the
        Worker closes only the clients it created.

        Args:
            global_config: User-level configuration (Jira credentials, notifications).
            project_config: Project configuration.
            working_dir: Local clone of the project repository.
            logger: Logger to use, typically a ticket-prefixed adapter.
            jira: Jira client.
            git: Git/GitHub manager for the working directory.
            agent: Claude Code runner.
            notifier: Notification sender.
        """
        self.global_config = global_config
        self.project_config = project_config
        self.working_dir = Path(working_dir)
        self.logger = logger or get_logger("orchestrator")

        self._owned: list[JiraClient | GitManager] = []
        if jira is None:
            jira = JiraClient(
                global_config.jira.host,
                global_config.jira.email,
                global_config.jira.api_token,
            )
            self._owned.append(jira)
        if git is None:
            git = GitManager(project_config.project.repo, repo_path=self.working_dir)
            self._owned.append(git)

        self.jira = jira
        self.git = git
        self.agent = agent or ClaudeRunner.from_config(project_config.claude)
        self.notifier = notifier or Notifier.from_config(global_config.notifications)

    @property
    def base_branch(self) -> str:
        return self.project_config.workflow.pr.base_branch

    def close(self) -> None:
        """Close HTTP clients created by this Worker."""
        for client in self._owned:
            client.close()
        self._owned = []

    def process_ticket(self, ticket_key: str, extra_context: str | None = None) -> WorkResult:
        """Run the full workflow for a ticket.

        Never raises; every failure is reported in the returned WorkResult.

        Args:
            ticket_key: Jira ticket key, e.g. "PROJ-42".
            extra_context: Additional context appended to the agent prompt.

        Returns:
            WorkResult describing the outcome.
        """
        self.logger.info("Processing ticket %s", ticket_key)
        self._notify(TICKET_STARTED, f"Started working on {ticket_key}")

        try:
            result = self._run(ticket_key, extra_context)
        except Exception as e:
            self.logger.error("Failed to process %s: %s", ticket_key, e)
            self._restore_base_branch()
            result = WorkResult(success=False, ticket_key=ticket_key, error=str(e))

        self._notify_result(result)
        return result

    def _run(self, ticket_key: str, extra_context: str | None) -> WorkResult:
        base = self.base_branch
        workflow = self.project_config.workflow

        ticket = self.jira.get_ticket(ticket_key)
        ticket_url = self.jira.get_ticket_url(ticket_key)
        self.logger.info("Fetched %s: %s [%s]", ticket.key, ticket.summary, ticket.status)

        if ticket.attachments:
            self._download_attachments(ticket)

        branch_name = format_pattern(workflow.branch_pattern, ticket)
        self.git.create_branch(branch_name, base)

        agent_result = self.agent.work_ticket(ticket, ticket_url, self.working_dir, extra_context)
        if not agent_result.success:
            raise AgentFailedError(f"Claude Code failed: {agent_result.error}")

        status = self.git.get_status()
        has_commits = self.git.has_new_commits(base)
        if not status.has_changes and not has_commits:
            self.logger.warning("Claude Code finished without changing anything")
            self._restore_base_branch()
            return WorkResult(
                success=False,
                ticket_key=ticket.key,
                error=NO_CHANGES_ERROR,
                no_changes=True,
            )

        if status.has_changes:
            self.git.commit_changes(format_title(workflow.commit_pattern, ticket))

        self.git.push_branch(branch_name)

        changes_summary = self.git.get_commit_summary(base) or None
        pr = self.git.create_pull_request(
            title=format_title(workflow.pr.title_pattern, ticket),
            body=format_pr_body(workflow.pr.body_template, ticket, ticket_url, changes_summary),
            base=base,
            head=branch_name,
        )

        preview_url = self._wait_for_preview(pr)

        self.jira.add_comment(
            ticket.key, format_ticket_comment(pr.url, preview_url, changes_summary)
        )
        transition = workflow.transitions.on_pr_created
        if transition:
            self.jira.transition_ticket(ticket.key, transition)
            self.logger.info("Moved %s to %s", ticket.key, transition)

        self.git.checkout_branch(base)

        self.logger.info("Completed %s: %s", ticket.key, pr.url)
        return WorkResult(
            success=True,
            ticket_key=ticket.key,
            pr=pr,
            preview_url=preview_url,
            changes_summary=changes_summary,
        )

    def _download_attachments(self, ticket: Ticket) -> None:
        target = attachments_dir(self.working_dir, ticket.key)
        target.mkdir(parents=True, exist_ok=True)
        self.logger.info("Downloading %d attachment(s) to %s", len(ticket.attachments), target)
        for attachment in ticket.attachments:
            self.jira.download_attachment(attachment, target)

    def _wait_for_preview(self, pr: PullRequest) -> str | None:
        """Poll for the PR's preview URL when the deployment settings ask for it."""
        deployment = self.project_config.deployment
        if not deployment.wait_for_preview or deployment.platform == "none":
            return None

        attempts = max(1, math.ceil(deployment.preview_timeout / PREVIEW_POLL_INTERVAL))
        self.logger.info("Waiting for %s preview (up to %d checks)", deployment.platform, attempts)
        try:
            preview_url = self.git.get_deployment_url(
                pr.number, max_attempts=attempts, interval=PREVIEW_POLL_INTERVAL
            )
        except GitManagerError as e:
            self.logger.warning("Could not look up preview deployment: %s", e)
            return None

        if preview_url is None:
            self.logger.warning("No preview URL within %ss", deployment.preview_timeout)
        return preview_url

    def _restore_base_branch(self) -> None:
        """Best-effort checkout of the base branch. Errors are logged and ignored."""
        try:
            self.git.checkout_branch(self.base_branch)
        except Exception as e:
            self.logger.debug("Could not return to %s: %s", self.base_branch, e)

    def _notify_result(self, result: WorkResult) -> None:
        if result.success and result.pr is not None:
            message = f"{result.ticket_key}: PR opened {result.pr.url}"
            if result.preview_url:
                message += f"\nPreview: {result.preview_url}"
            self._notify(TICKET_COMPLETED, message)
        else:
            self._notify(TICKET_FAILED, f"{result.ticket_key} failed: {result.error}")

    def _notify(self, event: str, message: str) -> None:
        """Send a notification. Failures are logged and never affect the run."""
        try:
            self.notifier.notify(event, message)
        except Exception as e:
            self.logger.warning("Could not send %s notification: %s", event, e)
