"""jira-claude-bot - Automated Jira ticket processing with Claude Code."""

__version__ = "0.1.0"
