"""Agent runner - Claude Code CLI integration."""

from jirabot.agent.models import AgentResult
from jirabot.agent.runner import DEFAULT_TIMEOUT_SECONDS, ClaudeRunner

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "AgentResult",
    "ClaudeRunner",
]
