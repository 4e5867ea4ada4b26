"""Data models for the coding agent runner."""

from dataclasses import dataclass


@dataclass
class AgentResult:
    """Result of a Claude Code run.

    Attributes:
        success: Whether the process exited with code 0.
        output: Captured stdout.
        error: Error message if the run failed.
        timed_out: Whether the run was killed for exceeding its timeout.
        returncode: Process exit code, if the process started.
    """

    success: bool
    output: str
    error: str | None = None
    timed_out: bool = False
    returncode: int | None = None
