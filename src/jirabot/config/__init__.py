"""Configuration - Global and per-project settings for jira-claude-bot."""

from jirabot.config.exceptions import ConfigError
from jirabot.config.loader import (
    GLOBAL_CONFIG_FILE,
    PROJECT_CONFIG_FILE,
    deep_merge,
    get_config_home,
    load_global_config,
    load_project_config,
    save_project_config,
    validate_config,
)
from jirabot.config.models import (
    BotConfig,
    ClaudeConfig,
    DeploymentConfig,
    GlobalConfig,
    GuardrailConfig,
    JiraConfig,
    NotificationsConfig,
    ProjectConfig,
    ProjectInfo,
    PRConfig,
    SlackConfig,
    TicketCriteria,
    TransitionsConfig,
    WorkflowConfig,
)

__all__ = [
    "GLOBAL_CONFIG_FILE",
    "PROJECT_CONFIG_FILE",
    "BotConfig",
    "ClaudeConfig",
    "ConfigError",
    "DeploymentConfig",
    "GlobalConfig",
    "GuardrailConfig",
    "JiraConfig",
    "NotificationsConfig",
    "PRConfig",
    "ProjectConfig",
    "ProjectInfo",
    "SlackConfig",
    "TicketCriteria",
    "TransitionsConfig",
    "WorkflowConfig",
    "deep_merge",
    "get_config_home",
    "load_global_config",
    "load_project_config",
    "save_project_config",
    "validate_config",
]
