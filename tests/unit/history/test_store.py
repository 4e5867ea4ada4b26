"""Unit tests for HistoryStore."""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from jirabot.git_manager import PullRequest
from jirabot.history import HistoryError, HistoryStore, history_path
from jirabot.orchestrator import NO_CHANGES_ERROR, WorkResult

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _pr(number: int) -> PullRequest:
    return PullRequest(
        number=number,
        url=f"https://github.com/acme/web/pull/{number}",
        title="t",
        state="open",
        head_sha="abc123",
    )


@pytest.fixture
def store() -> Generator[HistoryStore, None, None]:
    s = HistoryStore(":memory:")
    yield s
    s.close()


@pytest.mark.unit
class TestRecord:
    """Tests for recording runs."""

    def test_success(self, store: HistoryStore) -> None:
        result = WorkResult(
            success=True,
            ticket_key="CW2-100",
            pr=_pr(12),
            preview_url="https://web-git-cw2-100.vercel.app",
        )

        record = store.record(result, T0, T0 + timedelta(seconds=95))

        assert record.id is not None
        assert record.ticket_key == "CW2-100"
        assert record.success is True
        assert record.pr_url == "https://github.com/acme/web/pull/12"
        assert record.preview_url == "https://web-git-cw2-100.vercel.app"
        assert record.duration_seconds == 95

    def test_failure(self, store: HistoryStore) -> None:
        result = WorkResult(success=False, ticket_key="CW2-101", error="push rejected")

        record = store.record(result, T0, T0 + timedelta(seconds=3))

        assert record.success is False
        assert record.pr_url is None
        assert record.error == "push rejected"

    def test_no_changes(self, store: HistoryStore) -> None:
        result = WorkResult(
            success=False, ticket_key="CW2-102", error=NO_CHANGES_ERROR, no_changes=True
        )

        record = store.record(result, T0, T0)

        assert record.no_changes is True
        assert record.duration_seconds == 0

    def test_completed_at_defaults_to_now(self, store: HistoryStore) -> None:
        started = datetime.now(UTC) - timedelta(seconds=10)

        record = store.record(WorkResult(success=True, ticket_key="CW2-1"), started)

        assert record.duration_seconds >= 10

    def test_database_error_wrapped(self, store: HistoryStore) -> None:
        with (
            patch(
                "sqlalchemy.orm.Session.commit",
                side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")),
            ),
            pytest.raises(HistoryError, match="CW2-1"),
        ):
            store.record(WorkResult(success=True, ticket_key="CW2-1"), T0, T0)


@pytest.mark.unit
class TestQueries:
    """Tests for reading history back."""

    def test_recent_newest_first(self, store: HistoryStore) -> None:
        for i in range(3):
            finished = T0 + timedelta(minutes=i)
            store.record(WorkResult(success=True, ticket_key=f"CW2-{i}"), T0, finished)

        keys = [r.ticket_key for r in store.recent()]

        assert keys == ["CW2-2", "CW2-1", "CW2-0"]

    def test_recent_limit(self, store: HistoryStore) -> None:
        for i in range(7):
            store.record(WorkResult(success=True, ticket_key=f"CW2-{i}"), T0, T0)

        assert len(store.recent()) == 5
        assert len(store.recent(limit=2)) == 2

    def test_recent_empty(self, store: HistoryStore) -> None:
        assert store.recent() == []

    def test_for_ticket(self, store: HistoryStore) -> None:
        store.record(WorkResult(success=False, ticket_key="CW2-9", error="x"), T0, T0)
        store.record(WorkResult(success=True, ticket_key="CW2-8"), T0, T0)
        store.record(
            WorkResult(success=True, ticket_key="CW2-9", pr=_pr(3)),
            T0,
            T0 + timedelta(hours=1),
        )

        runs = store.for_ticket("CW2-9")

        assert [r.success for r in runs] == [True, False]

    def test_stats(self, store: HistoryStore) -> None:
        store.record(WorkResult(success=True, ticket_key="A-1"), T0, T0 + timedelta(seconds=60))
        store.record(
            WorkResult(success=False, ticket_key="A-2", error="x"),
            T0,
            T0 + timedelta(seconds=20),
        )
        store.record(
            WorkResult(success=False, ticket_key="A-3", error=NO_CHANGES_ERROR, no_changes=True),
            T0,
            T0 + timedelta(seconds=10),
        )

        stats = store.stats()

        assert stats.total == 3
        assert stats.succeeded == 1
        assert stats.failed == 2
        assert stats.no_changes == 1
        assert stats.avg_duration_seconds == pytest.approx(30.0)

    def test_stats_empty(self, store: HistoryStore) -> None:
        stats = store.stats()

        assert stats.total == 0
        assert stats.failed == 0
        assert stats.avg_duration_seconds is None


@pytest.mark.unit
class TestFileDatabase:
    """Tests for on-disk storage."""

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        db_path = tmp_path / "data" / "history.db"
        first = HistoryStore(db_path)
        first.record(WorkResult(success=True, ticket_key="CW2-5"), T0, T0)
        first.close()

        second = HistoryStore(db_path)
        try:
            assert [r.ticket_key for r in second.recent()] == ["CW2-5"]
        finally:
            second.close()

    def test_unusable_location_raises_history_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        with pytest.raises(HistoryError, match="Cannot open history database"):
            HistoryStore(blocker / "data" / "history.db")

    def test_history_path_expands_user(self) -> None:
        path = history_path("~/bot-data")

        assert path.name == "history.db"
        assert "~" not in str(path)
