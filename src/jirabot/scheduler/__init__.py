"""Scheduler - Polls Jira for tickets and runs them through the Worker."""

from jirabot.scheduler.daemon import Daemon
from jirabot.scheduler.models import DaemonState
from jirabot.scheduler.poller import Poller

__all__ = [
    "Daemon",
    "DaemonState",
    "Poller",
]
