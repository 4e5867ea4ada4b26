"""Logging for jira-claude-bot.

Everything under the `jirabot` logger goes to a rotating `jirabot.log` and,
optionally, the console. Records are scrubbed of GitHub and Atlassian
credentials before they are written, since HTTP error bodies and agent output
end up in the log.
"""

from __future__ import annotations

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

ROOT_LOGGER = "jirabot"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "jirabot.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# httpx logs every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")

REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"gh[po]_[a-zA-Z0-9]{36}"), "[GITHUB_TOKEN]"),
    (re.compile(r"github_pat_[a-zA-Z0-9_]{82}"), "[GITHUB_TOKEN]"),
    (re.compile(r"ATATT[a-zA-Z0-9_=-]{20,}"), "[JIRA_TOKEN]"),
    (re.compile(r"Bearer [a-zA-Z0-9._-]+"), "Bearer [REDACTED]"),
    (re.compile(r"Basic [a-zA-Z0-9+/=]+"), "Basic [REDACTED]"),
    (re.compile(r"token=[a-zA-Z0-9._-]+"), "token=[REDACTED]"),
]


def sanitize_for_log(text: str) -> str:
    """Replace tokens and Authorization credentials with placeholders."""
    for pattern, replacement in REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def truncate_output(output: str, max_length: int = 5000) -> str:
    """Cut `output` to `max_length` chars, noting how much was dropped."""
    dropped = len(output) - max_length
    if dropped <= 0:
        return output
    return f"{output[:max_length]}\n... [truncated, {dropped} more chars]"


class RedactingFormatter(logging.Formatter):
    """Formatter that runs every rendered record through sanitize_for_log."""

    def format(self, record: logging.LogRecord) -> str:
        return sanitize_for_log(super().format(record))


def _resolve_level(level: str | None) -> tuple[str, int]:
    name = (level or os.environ.get("JIRABOT_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    return name, getattr(logging, name, logging.INFO)


def setup_logging(
    log_dir: str | Path | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    level: str | None = None,
    console: bool = True,
) -> logging.Logger:
    """Configure the `jirabot` logger.

    Safe to call more than once; previous handlers are closed and replaced.

    Args:
        log_dir: Directory for the log file. Falls back to JIRABOT_LOG_DIR,
            then ./logs. Created if missing.
        log_file: Log file name.
        max_bytes: Size at which the file is rotated.
        backup_count: Rotated files to keep.
        level: Level name. Falls back to JIRABOT_LOG_LEVEL, then INFO.
        console: Also log to stderr.

    Returns:
        The `jirabot` logger.
    """
    directory = Path(log_dir or os.environ.get("JIRABOT_LOG_DIR") or DEFAULT_LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    level_name, log_level = _resolve_level(level)

    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            directory / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())

    formatter = RedactingFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    third_party_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logger.debug("Logging to %s at %s", directory / log_file, level_name)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a component, e.g. get_logger("jira") -> `jirabot.jira`."""
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


class TicketLoggerAdapter(logging.LoggerAdapter):
    """Prefixes messages with `[KEY] ` so interleaved runs can be told apart."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        ticket_key = (self.extra or {}).get("ticket_key")
        return (f"[{ticket_key}] {msg}" if ticket_key else msg), kwargs


def ticket_logger(ticket_key: str, name: str = "orchestrator") -> TicketLoggerAdapter:
    """Component logger whose messages carry the ticket key."""
    return TicketLoggerAdapter(get_logger(name), {"ticket_key": ticket_key})
