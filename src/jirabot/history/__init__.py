"""History - Persistent record of workflow runs."""

from jirabot.history.exceptions import HistoryError
from jirabot.history.models import HistoryStats, RunRecord
from jirabot.history.store import HISTORY_DB_FILE, HistoryStore, history_path

__all__ = [
    "HISTORY_DB_FILE",
    "HistoryError",
    "HistoryStats",
    "HistoryStore",
    "RunRecord",
    "history_path",
]
