"""SQLAlchemy models for the run history store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003 - used at runtime for SQLAlchemy
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class RunRecord(Base):
    """One completed workflow run for a ticket."""

    __tablename__ = "run_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_key: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    no_changes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pr_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    preview_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)

    def __init__(
        self,
        ticket_key: str,
        success: bool,
        started_at: datetime,
        completed_at: datetime,
        no_changes: bool = False,
        pr_url: str | None = None,
        preview_url: str | None = None,
        error: str | None = None,
        duration_seconds: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.ticket_key = ticket_key
        self.success = success
        self.no_changes = no_changes
        self.pr_url = pr_url
        self.preview_url = preview_url
        self.error = error
        self.started_at = started_at
        self.completed_at = completed_at
        if duration_seconds is None:
            duration_seconds = int((completed_at - started_at).total_seconds())
        self.duration_seconds = duration_seconds

    def __repr__(self) -> str:
        return (
            f"<RunRecord(id={self.id!r}, ticket_key={self.ticket_key!r}, "
            f"success={self.success!r})>"
        )


@dataclass
class HistoryStats:
    """Aggregate counts over all recorded runs."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    no_changes: int = 0
    avg_duration_seconds: float | None = None
