"""HistoryStore - Records the outcome of every workflow run."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError

from jirabot.history.database import Database
from jirabot.history.exceptions import HistoryError
from jirabot.history.models import HistoryStats, RunRecord

if TYPE_CHECKING:
    from jirabot.orchestrator import WorkResult

logger = logging.getLogger("jirabot.history")

HISTORY_DB_FILE = "history.db"


def history_path(data_dir: str | Path) -> Path:
    """Location of the history database inside the bot's data directory."""
    return Path(data_dir).expanduser() / HISTORY_DB_FILE


class HistoryStore:
    """SQLite-backed log of completed workflow runs."""

    def __init__(self, db_path: str | Path = HISTORY_DB_FILE) -> None:
        """Open (and create if needed) the history database.

        Args:
            db_path: Path to SQLite database file, or ":memory:".

        Raises:
            HistoryError: If the database cannot be opened or created.
        """
        self._db = Database(db_path)
        try:
            self._db.create_tables()
        except (SQLAlchemyError, OSError) as e:
            self._db.close()
            raise HistoryError(f"Cannot open history database {db_path}: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    def record(
        self,
        result: WorkResult,
        started_at: datetime,
        completed_at: datetime | None = None,
    ) -> RunRecord:
        """Store the outcome of one run.

        Args:
            result: The Worker's result.
            started_at: When the run started.
            completed_at: When it finished. Defaults to now.

        Returns:
            The stored RunRecord.

        Raises:
            HistoryError: If the record cannot be written.
        """
        record = RunRecord(
            ticket_key=result.ticket_key,
            success=result.success,
            no_changes=result.no_changes,
            pr_url=result.pr.url if result.pr else None,
            preview_url=result.preview_url,
            error=result.error,
            started_at=started_at,
            completed_at=completed_at or datetime.now(UTC),
        )
        session = self._db.get_session()
        try:
            session.add(record)
            session.commit()
            session.refresh(record)
        except SQLAlchemyError as e:
            session.rollback()
            raise HistoryError(f"Failed to record run for {result.ticket_key}: {e}") from e
        finally:
            session.close()

        logger.debug("Recorded run %s for %s", record.id, record.ticket_key)
        return record

    def recent(self, limit: int = 5) -> list[RunRecord]:
        """Most recent runs, newest first."""
        session = self._db.get_session()
        try:
            stmt = (
                select(RunRecord)
                .order_by(RunRecord.completed_at.desc(), RunRecord.id.desc())
                .limit(limit)
            )
            return list(session.scalars(stmt).all())
        finally:
            session.close()

    def for_ticket(self, ticket_key: str) -> list[RunRecord]:
        """Every run of one ticket, newest first."""
        session = self._db.get_session()
        try:
            stmt = (
                select(RunRecord)
                .where(RunRecord.ticket_key == ticket_key)
                .order_by(RunRecord.completed_at.desc(), RunRecord.id.desc())
            )
            return list(session.scalars(stmt).all())
        finally:
            session.close()

    def stats(self) -> HistoryStats:
        """Aggregate counts over all runs."""
        session = self._db.get_session()
        try:
            stmt = select(
                func.count(RunRecord.id),
                func.sum(case((RunRecord.success.is_(True), 1), else_=0)),
                func.sum(case((RunRecord.no_changes.is_(True), 1), else_=0)),
                func.avg(RunRecord.duration_seconds),
            )
            total, succeeded, no_changes, avg_duration = session.execute(stmt).one()
        finally:
            session.close()

        total = total or 0
        succeeded = succeeded or 0
        return HistoryStats(
            total=total,
            succeeded=succeeded,
            failed=total - succeeded,
            no_changes=no_changes or 0,
            avg_duration_seconds=float(avg_duration) if avg_duration is not None else None,
        )
