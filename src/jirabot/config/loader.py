"""Configuration loading, merging and validation."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from jirabot.config.exceptions import ConfigError
from jirabot.config.models import GlobalConfig, ProjectConfig

logger = logging.getLogger("jirabot.config")

GLOBAL_CONFIG_FILE = "config.yaml"
PROJECT_CONFIG_FILE = ".jira-claude-bot.yaml"

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


def get_config_home() -> Path:
    """Directory holding the global config file.

    Defaults to ~/.jira-claude-bot, overridable with JIRABOT_HOME.
    """
    home = os.environ.get("JIRABOT_HOME")
    if home:
        return Path(home)
    return Path.home() / ".jira-claude-bot"


def _snake_keys(data: Any) -> Any:
    """Recursively convert camelCase mapping keys to snake_case."""
    if isinstance(data, dict):
        return {
            _CAMEL_RE.sub(r"_\1", str(k)).lower() if isinstance(k, str) else k: _snake_keys(v)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [_snake_keys(item) for item in data]
    return data


def deep_merge(target: dict[str, Any], source: dict[str, Any] | None) -> dict[str, Any]:
    """Merge `source` into a copy of `target`.

    Nested mappings are merged recursively; lists and scalars from `source`
    replace those in `target`. Keys whose value is None in `source` are ignored.

    Args:
        target: Base mapping (not modified).
        source: Overriding mapping.

    Returns:
        A new merged mapping.
    """
    result = dict(target)
    if not source:
        return result

    for key, value in source.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        elif isinstance(value, dict):
            result[key] = deep_merge({}, value)
        else:
            result[key] = value

    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping from `path`.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a YAML mapping, got {type(data).__name__}")

    return _snake_keys(data)


def load_global_config(config_dir: Path | str | None = None) -> GlobalConfig:
    """Load the global configuration.

    Reads `config.yaml` from the config home if it exists, then applies the
    JIRA_HOST, JIRA_EMAIL and JIRA_API_TOKEN environment variables.

    Args:
        config_dir: Directory containing config.yaml. Defaults to get_config_home().

    Returns:
        Parsed global configuration.

    Raises:
        ConfigError: If the file exists but is invalid.
    """
    config_dir = Path(config_dir) if config_dir else get_config_home()
    config_path = config_dir / GLOBAL_CONFIG_FILE

    data: dict[str, Any] = {}
    if config_path.exists():
        logger.debug("Loading global config from %s", config_path)
        data = _read_yaml(config_path)

    config = GlobalConfig.from_dict(data)

    if os.environ.get("JIRA_HOST"):
        config.jira.host = os.environ["JIRA_HOST"]
    if os.environ.get("JIRA_EMAIL"):
        config.jira.email = os.environ["JIRA_EMAIL"]
    if os.environ.get("JIRA_API_TOKEN"):
        config.jira.api_token = os.environ["JIRA_API_TOKEN"]

    config.jira.host = config.jira.host.rstrip("/")
    return config


def load_project_config(project_path: Path | str | None = None) -> ProjectConfig | None:
    """Load the per-project configuration.

    Args:
        project_path: Project directory. Defaults to the current directory.

    Returns:
        Project configuration merged over defaults, or None if the
        project has no `.jira-claude-bot.yaml`.

    Raises:
        ConfigError: If the file exists but is invalid.
    """
    project_path = Path(project_path) if project_path else Path.cwd()
    config_path = project_path / PROJECT_CONFIG_FILE

    if not config_path.exists():
        return None

    logger.debug("Loading project config from %s", config_path)
    defaults = ProjectConfig().to_dict()
    return ProjectConfig.from_dict(deep_merge(defaults, _read_yaml(config_path)))


def save_project_config(config: ProjectConfig, project_path: Path | str | None = None) -> Path:
    """Write the project configuration to `.jira-claude-bot.yaml`.

    Args:
        config: Configuration to save.
        project_path: Project directory. Defaults to the current directory.

    Returns:
        Path of the written file.
    """
    project_path = Path(project_path) if project_path else Path.cwd()
    config_path = project_path / PROJECT_CONFIG_FILE

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False, indent=2, width=120)

    logger.info("Saved project config to %s", config_path)
    return config_path


def validate_config(global_config: GlobalConfig, project: ProjectConfig | None) -> list[str]:
    """Check required settings.

    Args:
        global_config: Global configuration.
        project: Project configuration, if one was found.

    Returns:
        Human-readable error messages. Empty when valid.
    """
    errors: list[str] = []

    if not global_config.jira.host:
        errors.append("JIRA_HOST is required")
    if not global_config.jira.email:
        errors.append("JIRA_EMAIL is required")
    if not global_config.jira.api_token:
        errors.append("JIRA_API_TOKEN is required")

    if project is not None:
        if not project.project.jira_key:
            errors.append("project.jira_key is required")
        if not project.project.repo:
            errors.append("project.repo is required")
        elif "/" not in project.project.repo:
            errors.append("project.repo must be in 'owner/repo' format")

    return errors
