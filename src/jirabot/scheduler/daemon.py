"""Daemon - Polls Jira and works tickets one at a time until stopped."""

from __future__ import annotations

import logging
import signal
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jirabot import __version__
from jirabot.history import HistoryError
from jirabot.jira import JiraClient
from jirabot.logging import ticket_logger
from jirabot.orchestrator import Worker, WorkResult
from jirabot.scheduler.models import DaemonState
from jirabot.scheduler.poller import Poller

if TYPE_CHECKING:
    from collections.abc import Callable

    from jirabot.config import GlobalConfig, ProjectConfig
    from jirabot.history import HistoryStore

logger = logging.getLogger("jirabot.scheduler")

DEFAULT_POLL_INTERVAL = 300


class Daemon:
    """Runs the poll, dispatch, sleep loop.

    One ticket is processed at a time, each by a fresh Worker. A stop request
    (SIGINT, SIGTERM or `stop()`) never interrupts a running Worker; it is
    observed at the top of the loop and wakes the sleep between polls.
    """

    def __init__(
        self,
        global_config: GlobalConfig,
        project_config: ProjectConfig,
        working_dir: str | Path,
        poll_interval: int | None = None,
        poller: Poller | None = None,
        worker_factory: Callable[[str], Worker] | None = None,
        history: HistoryStore | None = None,
    ) -> None:
        """Initialize the Daemon.

        Args:
            global_config: User-level configuration.
            project_config: Project configuration.
            working_dir: Local clone of the project repository.
            poll_interval: Seconds between polls. Defaults to `bot.poll_interval`.
            poller: Ticket poller. Built with its own Jira client if None.
            worker_factory: Builds the Worker for a ticket key.
            history: Store that records each run's outcome, if any.
        """
        self.global_config = global_config
        self.project_config = project_config
        self.working_dir = Path(working_dir)
        self.poll_interval = (
            poll_interval or global_config.bot.poll_interval or DEFAULT_POLL_INTERVAL
        )
        self.history = history

        self._jira: JiraClient | None = None
        if poller is None:
            self._jira = JiraClient(
                global_config.jira.host,
                global_config.jira.email,
                global_config.jira.api_token,
            )
            poller = Poller(project_config, self._jira)
        self.poller = poller
        self.worker_factory = worker_factory or self._create_worker

        self.state = DaemonState.STOPPED
        self.current_ticket: str | None = None
        self._shutdown_event = threading.Event()
        self._previous_handlers: dict[int, Any] = {}

    @property
    def running(self) -> bool:
        return self.state == DaemonState.RUNNING

    def is_running(self) -> bool:
        return self.running

    def start(self) -> None:
        """Run the loop until a stop is requested. Blocks."""
        if self._shutdown_event.is_set():
            logger.warning("Daemon was already stopped; not starting again")
            return

        self.state = DaemonState.RUNNING
        self._log_banner()
        self._install_signal_handlers()

        try:
            while self.running:
                self.poll_once()
                if not self.running:
                    break
                logger.info("Sleeping for %ds", self.poll_interval)
                self._sleep(self.poll_interval)
        finally:
            self._restore_signal_handlers()
            if self._jira is not None:
                self._jira.close()
            self.state = DaemonState.STOPPED
            logger.info("Daemon stopped")

    def stop(self) -> None:
        """Ask the loop to stop. Only the first call has an effect."""
        if self.state != DaemonState.RUNNING:
            return

        self.state = DaemonState.STOPPING
        self._shutdown_event.set()
        if self.current_ticket:
            logger.info(
                "Stop requested while processing %s; stopping after it finishes",
                self.current_ticket,
            )
        else:
            logger.info("Stop requested while idle")

    def poll_once(self) -> WorkResult | None:
        """Run one loop iteration: poll, and process a ticket if one is found.

        Returns:
            The run's WorkResult, or None when there was nothing to do.
        """
        logger.info("Checking for tickets...")
        ticket = self.poller.get_next_ticket()
        if ticket is None:
            logger.info("No tickets to process")
            return None

        logger.info("Found ticket %s: %s", ticket.key, ticket.summary)
        self.current_ticket = ticket.key
        started_at = datetime.now(UTC)
        try:
            result = self._run_worker(ticket.key)
        finally:
            self.poller.mark_processed(ticket.key)
            self.current_ticket = None

        self._log_result(result)
        self._record(result, started_at)
        return result

    def _run_worker(self, ticket_key: str) -> WorkResult:
        worker: Worker | None = None
        try:
            worker = self.worker_factory(ticket_key)
            return worker.process_ticket(ticket_key)
        except Exception as e:
            logger.exception("Worker crashed on %s", ticket_key)
            return WorkResult(success=False, ticket_key=ticket_key, error=str(e))
        finally:
            if worker is not None:
                worker.close()

    def _create_worker(self, ticket_key: str) -> Worker:
        return Worker(
            self.global_config,
            self.project_config,
            self.working_dir,
            logger=ticket_logger(ticket_key),
        )

    def _sleep(self, seconds: float) -> bool:
        """Wait up to `seconds`, returning early on stop.

        Returns:
            True if woken by a stop request.
        """
        return self._shutdown_event.wait(timeout=seconds)

    def _log_result(self, result: WorkResult) -> None:
        if result.success:
            logger.info(
                "Completed %s: PR %s",
                result.ticket_key,
                result.pr.url if result.pr else "-",
            )
            if result.preview_url:
                logger.info("Preview for %s: %s", result.ticket_key, result.preview_url)
        elif result.no_changes:
            logger.warning("%s: %s", result.ticket_key, result.error)
        else:
            logger.error("Failed %s: %s", result.ticket_key, result.error)

    def _record(self, result: WorkResult, started_at: datetime) -> None:
        if self.history is None:
            return
        try:
            self.history.record(result, started_at)
        except HistoryError as e:
            logger.warning("Could not record run history: %s", e)

    def _log_banner(self) -> None:
        criteria = self.project_config.tickets
        logger.info("jira-claude-bot %s daemon starting", __version__)
        project = self.project_config.project
        logger.info("Project: %s (%s)", project.jira_key, project.repo)
        logger.info("Poll interval: %ds", self.poll_interval)
        if criteria.jql:
            logger.info("Query: %s", criteria.jql)
        else:
            logger.info("Statuses: %s", ", ".join(criteria.statuses))

    def _install_signal_handlers(self) -> None:
        # signal.signal only works in the main thread
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread; signal handlers not installed")
            return
        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[signum] = signal.signal(signum, self._signal_handler)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _signal_handler(self, signum: int, _frame: object) -> None:
        logger.info("Received %s, shutting down gracefully...", signal.Signals(signum).name)
        self.stop()
