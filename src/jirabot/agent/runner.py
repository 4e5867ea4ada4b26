"""Claude runner - Invokes the Claude Code CLI on a Jira ticket."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import IO, TYPE_CHECKING

from jirabot.agent.models import AgentResult
from jirabot.jira.adf import format_description
from jirabot.logging import truncate_output

if TYPE_CHECKING:
    from collections.abc import Callable

    from jirabot.config import ClaudeConfig
    from jirabot.jira import Ticket

logger = logging.getLogger("jirabot.agent")

DEFAULT_TIMEOUT_SECONDS = 30 * 60
KILL_GRACE_SECONDS = 5
RECENT_COMMENTS = 3


def attachments_dir(working_dir: str | Path, ticket_key: str) -> Path:
    """Directory where a ticket's attachments are downloaded."""
    return Path(working_dir) / ".jira-tickets" / ticket_key / "attachments"


def _format_duration(seconds: float) -> str:
    if seconds >= 60:
        value, unit = round(seconds / 60), "minute"
    else:
        value, unit = round(seconds), "second"
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


class ClaudeRunner:
    """Runs Claude Code CLI against a ticket.

    Builds a prompt from the ticket, runs `claude --print` in the working
    directory, streams its stdout/stderr to the operator while capturing them,
    and enforces a wall-clock timeout (terminate, then kill after a grace period).
    """

    def __init__(
        self,
        model: str | None = None,
        max_turns: int | None = None,
        timeout: float | None = None,
        instructions: str | None = None,
        executable: str = "claude",
        stream_output: bool = True,
    ) -> None:
        """Initialize the runner.

        Args:
            model: Model alias passed via --model.
            max_turns: Passed via --max-turns.
            timeout: Seconds before the process is killed. Defaults to 30 minutes.
            instructions: Project-specific instructions added to every prompt.
            executable: Claude Code CLI executable.
            stream_output: Echo the agent's output to this process's stdout/stderr.
        """
        self.model = model
        self.max_turns = max_turns
        self.timeout = timeout or DEFAULT_TIMEOUT_SECONDS
        self.instructions = instructions
        self.executable = executable
        self.stream_output = stream_output
        self.log_callback: Callable[[str], None] | None = None

    @classmethod
    def from_config(cls, config: ClaudeConfig) -> ClaudeRunner:
        """Create a runner from the project's `claude` settings."""
        return cls(
            model=config.model,
            max_turns=config.max_turns,
            timeout=config.timeout,
            instructions=config.instructions,
        )

    def work_ticket(
        self,
        ticket: Ticket,
        ticket_url: str,
        working_dir: str | Path,
        extra_context: str | None = None,
    ) -> AgentResult:
        """Ask Claude Code to implement a ticket.

        Args:
            ticket: The ticket to implement.
            ticket_url: Browser URL of the ticket.
            working_dir: Repository checkout to work in.
            extra_context: Additional caller-supplied context for the prompt.

        Returns:
            AgentResult with success status and captured output.
        """
        prompt = self.build_prompt(ticket, ticket_url, extra_context)
        logger.info("Running Claude Code for %s (%d char prompt)", ticket.key, len(prompt))
        return self.run(prompt, working_dir)

    def build_prompt(
        self,
        ticket: Ticket,
        ticket_url: str,
        extra_context: str | None = None,
    ) -> str:
        """Build the prompt for Claude Code from a ticket.

        Args:
            ticket: The ticket to implement.
            ticket_url: Browser URL of the ticket.
            extra_context: Additional caller-supplied context.

        Returns:
            Formatted prompt string.
        """
        parts = [
            f"Work on JIRA ticket {ticket.key}: {ticket.summary}",
            "",
            "## Ticket Details",
            f"- **Key**: {ticket.key}",
            f"- **Type**: {ticket.type}",
            f"- **Priority**: {ticket.priority}",
            f"- **Status**: {ticket.status}",
            f"- **URL**: {ticket_url}",
            "",
            "## Description",
            format_description(ticket.description),
            "",
        ]

        if ticket.attachments:
            parts.append("## Attachments")
            parts.extend(f"- {a.filename}" for a in ticket.attachments)
            parts.extend(
                [
                    "",
                    "Please review any image attachments in the "
                    f".jira-tickets/{ticket.key}/attachments/ folder.",
                    "",
                ]
            )

        if ticket.comments:
            recent = ticket.comments[-RECENT_COMMENTS:]
            parts.append("## Recent Comments")
            parts.append(
                "\n\n".join(
                    f"**{c.author}**: {format_description(c.body)}" for c in recent
                )
            )
            parts.append("")

        if self.instructions:
            parts.extend(["## Project Instructions", self.instructions, ""])

        if extra_context:
            parts.extend(["## Additional Context", extra_context, ""])

        parts.extend(
            [
                "## Task",
                "1. Understand the requirements from the ticket",
                "2. Make the necessary code changes",
                "3. Ensure type checks and lint checks pass",
                f'4. Commit your changes with message: "{ticket.key}: [brief description]"',
                "",
                "Do not create a PR - that will be handled separately.",
            ]
        )

        return "\n".join(parts) + "\n"

    def build_command(self, prompt: str) -> list[str]:
        """Build the CLI command line for a prompt."""
        cmd = [self.executable, "--print", "--dangerously-skip-permissions"]
        if self.model:
            cmd.extend(["--model", self.model])
        if self.max_turns:
            cmd.extend(["--max-turns", str(self.max_turns)])
        cmd.append(prompt)
        return cmd

    def run(self, prompt: str, working_dir: str | Path) -> AgentResult:
        """Run Claude Code with a prompt, enforcing the timeout.

        Args:
            prompt: The prompt to send.
            working_dir: Working directory for the subprocess.

        Returns:
            AgentResult. Never raises for process failures.
        """
        try:
            process = subprocess.Popen(
                self.build_command(prompt),
                cwd=working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except FileNotFoundError:
            logger.error("Claude Code CLI not found in PATH")
            return AgentResult(
                success=False,
                output="",
                error="Claude Code CLI not found. Ensure 'claude' is installed and in PATH.",
            )
        except OSError as e:
            logger.error("Failed to execute Claude Code: %s", e)
            return AgentResult(
                success=False,
                output="",
                error=f"Failed to execute Claude Code: {e}",
            )

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        out_sink = sys.stdout if self.stream_output else None
        err_sink = sys.stderr if self.stream_output else None
        readers = [
            self._start_reader(process.stdout, out_sink, stdout_lines),
            self._start_reader(process.stderr, err_sink, stderr_lines),
        ]

        timed_out = False
        try:
            process.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            logger.error(
                "Claude Code timed out after %s. Killing process...",
                _format_duration(self.timeout),
            )
            self._terminate(process)

        for reader in readers:
            reader.join(timeout=KILL_GRACE_SECONDS)

        output = "".join(stdout_lines)
        errors = "".join(stderr_lines)
        logger.debug("Claude Code output: %s", truncate_output(output))

        if timed_out:
            return AgentResult(
                success=False,
                output=output,
                error=f"Claude Code timed out after {_format_duration(self.timeout)}",
                timed_out=True,
                returncode=process.returncode,
            )

        if process.returncode == 0:
            logger.info("Claude Code completed successfully")
            return AgentResult(success=True, output=output, returncode=0)

        error = errors.strip() or f"Claude exited with code {process.returncode}"
        logger.error("Claude Code failed: %s", truncate_output(error, 500))
        return AgentResult(
            success=False,
            output=output,
            error=error,
            returncode=process.returncode,
        )

    def _start_reader(
        self,
        stream: IO[str] | None,
        sink: IO[str] | None,
        buffer: list[str],
    ) -> threading.Thread:
        """Pump a child stream into `buffer`, echoing to `sink`, on a thread."""

        def pump() -> None:
            if stream is None:
                return
            for line in stream:
                buffer.append(line)
                if sink is not None:
                    sink.write(line)
                    sink.flush()
                if self.log_callback:
                    self.log_callback(line.rstrip("\n"))

        thread = threading.Thread(target=pump, name="claude-stream", daemon=True)
        thread.start()
        return thread

    @staticmethod
    def _terminate(process: subprocess.Popen[str]) -> None:
        """Terminate gracefully, then kill if still alive after the grace period."""
        process.terminate()
        try:
            process.wait(timeout=KILL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning("Claude Code still running, sending SIGKILL")
            process.kill()
            process.wait()
