"""Data models for the Scheduler module."""

from enum import StrEnum


class DaemonState(StrEnum):
    """Lifecycle of the polling daemon."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"
