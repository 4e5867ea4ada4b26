"""Poller - Finds the next Jira ticket to work on."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from jirabot.jira import JiraError

if TYPE_CHECKING:
    from jirabot.config import ProjectConfig
    from jirabot.jira import JiraClient, Ticket

logger = logging.getLogger("jirabot.scheduler")

BATCH_SIZE = 10


class Poller:
    """Picks the highest-priority, oldest eligible ticket not yet handled.

    Tickets handled in this process are remembered in an in-memory set and
    skipped on later polls. The set lives as long as the Poller.
    """

    def __init__(
        self,
        project_config: ProjectConfig,
        jira: JiraClient,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        """Initialize the Poller.

        Args:
            project_config: Project configuration (Jira key and ticket criteria).
            jira: Jira client used for searching.
            batch_size: Number of candidates fetched per poll.
        """
        self.project_config = project_config
        self.jira = jira
        self.batch_size = batch_size
        self._processed: set[str] = set()

    def build_query(self) -> str:
        """JQL for candidate tickets.

        An explicit `tickets.jql` wins; otherwise tickets of the project in
        any configured status, highest priority first, then oldest first.
        """
        criteria = self.project_config.tickets
        if criteria.jql:
            return criteria.jql

        statuses = ", ".join(f'"{s}"' for s in criteria.statuses or ["To Do"])
        return (
            f"project = {self.project_config.project.jira_key} "
            f"AND status IN ({statuses}) "
            "ORDER BY priority DESC, created ASC"
        )

    def get_next_ticket(self) -> Ticket | None:
        """Next ticket to process, or None.

        Any search failure is logged and reported as "no ticket"; the next
        poll retries.
        """
        query = self.build_query()
        try:
            tickets = self.jira.search_tickets(query, self.batch_size)
        except (JiraError, httpx.HTTPError) as e:
            logger.error("Failed to poll Jira: %s", e)
            return None
        except Exception:
            logger.exception("Unexpected error while polling Jira")
            return None

        for ticket in tickets:
            if ticket.key not in self._processed:
                return ticket

        if tickets:
            logger.debug("All %d candidate tickets already processed", len(tickets))
        return None

    def mark_processed(self, ticket_key: str) -> None:
        self._processed.add(ticket_key)

    def clear_processed(self) -> None:
        self._processed.clear()

    @property
    def processed_count(self) -> int:
        return len(self._processed)

    def get_processed_count(self) -> int:
        return self.processed_count
