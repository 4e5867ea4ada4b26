"""Slack notifications for ticket processing events.

Messages go to a Slack incoming webhook. Delivery is best-effort: failures
are logged and never interrupt ticket processing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from jirabot.config import NotificationsConfig

logger = logging.getLogger("jirabot.notifications")

TICKET_STARTED = "ticket_started"
TICKET_COMPLETED = "ticket_completed"
TICKET_FAILED = "ticket_failed"

EVENTS = (TICKET_STARTED, TICKET_COMPLETED, TICKET_FAILED)


class Notifier:
    """Sends event messages to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str | None = None,
        channel: str | None = None,
        events: list[str] | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the notifier.

        Args:
            webhook_url: Slack incoming webhook URL. Disabled when empty.
            channel: Optional channel override.
            events: Event names to deliver. Empty or None means all events.
            timeout: HTTP timeout in seconds.
        """
        self.webhook_url = webhook_url or None
        self.channel = channel or None
        self.events = set(events or [])
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: NotificationsConfig) -> Notifier:
        """Create a notifier from the global `notifications` settings."""
        if config.slack is None:
            return cls(events=config.events)
        return cls(
            webhook_url=config.slack.webhook_url,
            channel=config.slack.channel,
            events=config.events,
        )

    @property
    def enabled(self) -> bool:
        return self.webhook_url is not None

    def wants(self, event: str) -> bool:
        """Whether `event` should be delivered."""
        return self.enabled and (not self.events or event in self.events)

    def notify(self, event: str, message: str) -> bool:
        """Send a message for an event.

        Returns:
            True if the message was delivered.
        """
        if not self.wants(event):
            return False

        payload = {"text": message}
        if self.channel:
            payload["channel"] = self.channel

        try:
            response = httpx.post(self.webhook_url, json=payload, timeout=self.timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Failed to send %s notification: %s", event, e)
            return False

        if response.status_code != 200:
            logger.warning(
                "Slack rejected %s notification: %s - %s",
                event,
                response.status_code,
                response.text,
            )
            return False

        logger.debug("Sent %s notification", event)
        return True
