"""Unit tests for the command line interface."""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
from click.testing import CliRunner

from jirabot import __version__
from jirabot.cli import main
from jirabot.config import (
    GlobalConfig,
    ProjectConfig,
    ProjectInfo,
    load_project_config,
    save_project_config,
)
from jirabot.git_manager import PullRequest
from jirabot.history import HistoryStore, history_path
from jirabot.jira import Ticket
from jirabot.orchestrator import WorkResult


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def global_config(tmp_path: Path) -> GlobalConfig:
    config = GlobalConfig()
    config.jira.host = "https://acme.atlassian.net"
    config.jira.email = "bot@acme.dev"
    config.jira.api_token = "token"
    config.bot.data_dir = str(tmp_path / "data")
    return config


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    save_project_config(ProjectConfig(project=ProjectInfo(jira_key="CW2", repo="acme/web")), repo)
    return repo


@pytest.fixture(autouse=True)
def patched_env(global_config: GlobalConfig) -> Generator[None, None, None]:
    with (
        patch("jirabot.cli.load_global_config", return_value=global_config),
        patch("jirabot.cli.setup_logging"),
    ):
        yield


@pytest.fixture
def mock_jira() -> Generator[MagicMock, None, None]:
    with patch("jirabot.cli.JiraClient") as cls:
        yield cls.return_value


@pytest.mark.unit
class TestMain:
    """Tests for the command group."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_missing_project_config(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(main, ["-C", str(tmp_path), "status"])

        assert result.exit_code == 1
        assert "jira-claude-bot init" in result.output

    def test_invalid_config_exits(
        self, runner: CliRunner, project_dir: Path, global_config: GlobalConfig
    ) -> None:
        global_config.jira.api_token = ""

        result = runner.invoke(main, ["-C", str(project_dir), "status"])

        assert result.exit_code == 1
        assert "JIRA_API_TOKEN is required" in result.output


@pytest.mark.unit
class TestInit:
    """Tests for the init command."""

    def test_writes_config(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            main,
            ["-C", str(tmp_path), "init"],
            input="cw2\nacme/web\n\nTo Do, Selected\nnone\n",
        )

        assert result.exit_code == 0, result.output
        config = load_project_config(tmp_path)
        assert config is not None
        assert config.project.jira_key == "CW2"
        assert config.project.repo == "acme/web"
        assert config.workflow.pr.base_branch == "develop"
        assert config.tickets.statuses == ["To Do", "Selected"]
        assert config.deployment.platform == "none"
        assert config.deployment.wait_for_preview is False

    def test_refuses_to_overwrite(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(main, ["-C", str(project_dir), "init"])

        assert result.exit_code == 1
        assert "--force" in result.output


@pytest.mark.unit
class TestWork:
    """Tests for the work command."""

    def test_dry_run(self, runner: CliRunner, project_dir: Path, mock_jira: MagicMock) -> None:
        mock_jira.get_ticket.return_value = Ticket(
            key="CW2-100", summary="Fix login button", type="Bug", status="To Do"
        )

        with patch("jirabot.cli.Worker") as worker_cls:
            result = runner.invoke(main, ["-C", str(project_dir), "work", "cw2-100", "--dry-run"])

        assert result.exit_code == 0, result.output
        mock_jira.get_ticket.assert_called_once_with("CW2-100")
        assert "Branch:   feature/CW2-100" in result.output
        assert "Base:     develop" in result.output
        worker_cls.assert_not_called()

    def test_dry_run_jira_error(
        self, runner: CliRunner, project_dir: Path, mock_jira: MagicMock
    ) -> None:
        mock_jira.get_ticket.side_effect = httpx.ConnectError("unreachable")

        result = runner.invoke(main, ["-C", str(project_dir), "work", "CW2-1", "--dry-run"])

        assert result.exit_code == 1
        mock_jira.close.assert_called_once()

    def test_success(
        self, runner: CliRunner, project_dir: Path, global_config: GlobalConfig
    ) -> None:
        pr = PullRequest(
            number=12,
            url="https://github.com/acme/web/pull/12",
            title="t",
            state="open",
            head_sha="abc",
        )
        with patch("jirabot.cli.Worker") as worker_cls:
            worker_cls.return_value.process_ticket.return_value = WorkResult(
                success=True,
                ticket_key="CW2-100",
                pr=pr,
                preview_url="https://web-cw2.vercel.app",
            )
            result = runner.invoke(
                main, ["-C", str(project_dir), "work", "CW2-100", "--context", "Use the v2 API"]
            )

        assert result.exit_code == 0, result.output
        worker_cls.return_value.process_ticket.assert_called_once_with(
            "CW2-100", "Use the v2 API"
        )
        worker_cls.return_value.close.assert_called_once()
        assert "https://github.com/acme/web/pull/12" in result.output
        assert "https://web-cw2.vercel.app" in result.output

        store = HistoryStore(history_path(global_config.bot.data_dir))
        try:
            assert [r.ticket_key for r in store.recent()] == ["CW2-100"]
        finally:
            store.close()

    def test_history_failure_does_not_fail_run(
        self, runner: CliRunner, project_dir: Path, global_config: GlobalConfig, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        global_config.bot.data_dir = str(blocker / "data")

        with patch("jirabot.cli.Worker") as worker_cls:
            worker_cls.return_value.process_ticket.return_value = WorkResult(
                success=True, ticket_key="CW2-100"
            )
            result = runner.invoke(main, ["-C", str(project_dir), "work", "CW2-100"])

        assert result.exit_code == 0, result.output
        assert "run not recorded in history" in result.output
        assert "Done: CW2-100" in result.output

    def test_failure_exit_code(self, runner: CliRunner, project_dir: Path) -> None:
        with patch("jirabot.cli.Worker") as worker_cls:
            worker_cls.return_value.process_ticket.return_value = WorkResult(
                success=False, ticket_key="CW2-100", error="Claude Code failed: timeout"
            )
            result = runner.invoke(main, ["-C", str(project_dir), "work", "CW2-100"])

        assert result.exit_code == 1
        assert "Claude Code failed: timeout" in result.output


@pytest.mark.unit
class TestListTickets:
    """Tests for list-tickets / ls."""

    def test_default_query(
        self, runner: CliRunner, project_dir: Path, mock_jira: MagicMock
    ) -> None:
        mock_jira.search_tickets.return_value = [
            Ticket(key="CW2-1", summary="First", status="To Do", priority="High"),
            Ticket(key="CW2-2", summary="Second", status="To Do", priority="Low"),
        ]

        result = runner.invoke(main, ["-C", str(project_dir), "ls"])

        assert result.exit_code == 0, result.output
        query = mock_jira.search_tickets.call_args.args[0]
        assert query.startswith("project = CW2")
        assert "CW2-1" in result.output
        assert "2 ticket(s)" in result.output

    def test_by_status(self, runner: CliRunner, project_dir: Path, mock_jira: MagicMock) -> None:
        mock_jira.get_tickets_by_status.return_value = []

        result = runner.invoke(
            main, ["-C", str(project_dir), "list-tickets", "--status", "In Review"]
        )

        assert result.exit_code == 0
        mock_jira.get_tickets_by_status.assert_called_once_with("CW2", "In Review")
        assert "No tickets found." in result.output

    def test_custom_jql(self, runner: CliRunner, project_dir: Path, mock_jira: MagicMock) -> None:
        mock_jira.search_tickets.return_value = []

        runner.invoke(main, ["-C", str(project_dir), "ls", "--jql", "labels = bot"])

        mock_jira.search_tickets.assert_called_once_with("labels = bot")


@pytest.mark.unit
class TestValidate:
    """Tests for the validate command."""

    def test_all_checks_pass(
        self, runner: CliRunner, project_dir: Path, mock_jira: MagicMock
    ) -> None:
        with patch("jirabot.cli._check_command", return_value=(True, "ok")) as check:
            result = runner.invoke(main, ["-C", str(project_dir), "validate"])

        assert result.exit_code == 0, result.output
        assert "All checks passed." in result.output
        commands = [c.args[0][0] for c in check.call_args_list]
        assert commands == ["gh", "claude", "git", "vercel"]

    def test_missing_claude_fails(
        self, runner: CliRunner, project_dir: Path, mock_jira: MagicMock
    ) -> None:
        def check(args: list[str], cwd: Path | None = None) -> tuple[bool, str]:
            if args[0] == "claude":
                return False, "claude not found in PATH"
            return True, "ok"

        with patch("jirabot.cli._check_command", side_effect=check):
            result = runner.invoke(main, ["-C", str(project_dir), "validate"])

        assert result.exit_code == 1
        assert "✗ Claude Code CLI: claude not found in PATH" in result.output

    def test_missing_vercel_is_a_warning(
        self, runner: CliRunner, project_dir: Path, mock_jira: MagicMock
    ) -> None:
        def check(args: list[str], cwd: Path | None = None) -> tuple[bool, str]:
            return (args[0] != "vercel"), "x"

        with patch("jirabot.cli._check_command", side_effect=check):
            result = runner.invoke(main, ["-C", str(project_dir), "validate"])

        assert result.exit_code == 0
        assert "! Vercel CLI" in result.output


@pytest.mark.unit
class TestStatus:
    """Tests for the status command."""

    def test_without_history(self, runner: CliRunner, project_dir: Path) -> None:
        result = runner.invoke(main, ["-C", str(project_dir), "status"])

        assert result.exit_code == 0, result.output
        assert "Project:       CW2" in result.output
        assert "No runs recorded yet." in result.output

    def test_with_history(
        self, runner: CliRunner, project_dir: Path, global_config: GlobalConfig
    ) -> None:
        store = HistoryStore(history_path(global_config.bot.data_dir))
        start = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
        store.record(
            WorkResult(success=False, ticket_key="CW2-7", error="push rejected"),
            start,
            start + timedelta(seconds=30),
        )
        store.close()

        result = runner.invoke(main, ["-C", str(project_dir), "status"])

        assert result.exit_code == 0, result.output
        assert "Runs: 1 total, 0 succeeded, 1 failed" in result.output
        assert "CW2-7" in result.output
        assert "push rejected" in result.output


@pytest.mark.unit
class TestStart:
    """Tests for the start command."""

    def test_runs_daemon(self, runner: CliRunner, project_dir: Path) -> None:
        with patch("jirabot.cli.Daemon") as daemon_cls:
            result = runner.invoke(main, ["-C", str(project_dir), "start", "--interval", "60"])

        assert result.exit_code == 0, result.output
        assert daemon_cls.call_args.kwargs["poll_interval"] == 60
        daemon_cls.return_value.start.assert_called_once()

    def test_runs_without_history_when_unavailable(
        self, runner: CliRunner, project_dir: Path, global_config: GlobalConfig, tmp_path: Path
    ) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        global_config.bot.data_dir = str(blocker / "data")

        with patch("jirabot.cli.Daemon") as daemon_cls:
            result = runner.invoke(main, ["-C", str(project_dir), "start"])

        assert result.exit_code == 0, result.output
        assert "run history disabled" in result.output
        assert daemon_cls.call_args.kwargs["history"] is None
