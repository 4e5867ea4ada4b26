"""Exceptions for the Orchestrator module."""


class OrchestratorError(Exception):
    """Base exception for orchestrator errors."""


class AgentFailedError(OrchestratorError):
    """The coding agent exited unsuccessfully or timed out."""
