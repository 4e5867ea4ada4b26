"""CLI entry point for jira-claude-bot.

Commands:
- init: write a project configuration interactively
- work: run the workflow for one ticket
- list-tickets (ls): show candidate tickets
- validate: check configuration and required tools
- status: show configuration and recent runs
- start: poll Jira and work tickets until stopped
"""

from __future__ import annotations

import os
import subprocess
import sys
from datetime import UTC, datetime
from pathlib import Path

import click
import httpx

from jirabot import __version__
from jirabot.config import (
    PROJECT_CONFIG_FILE,
    ConfigError,
    DeploymentConfig,
    GlobalConfig,
    PRConfig,
    ProjectConfig,
    ProjectInfo,
    TicketCriteria,
    WorkflowConfig,
    get_config_home,
    load_global_config,
    load_project_config,
    save_project_config,
    validate_config,
)
from jirabot.history import HistoryError, HistoryStore, history_path
from jirabot.jira import JiraClient, JiraError
from jirabot.logging import setup_logging, ticket_logger
from jirabot.orchestrator import Worker, WorkResult, format_pattern
from jirabot.scheduler import Daemon, Poller

PLATFORMS = ("vercel", "netlify", "custom", "none")
SUMMARY_WIDTH = 60


def _setup_logging(global_config: GlobalConfig, verbose: bool) -> None:
    if verbose:
        level = "DEBUG"
    else:
        level = os.environ.get("JIRABOT_LOG_LEVEL", global_config.bot.log_level)
    setup_logging(
        log_dir=os.environ.get("JIRABOT_LOG_DIR") or get_config_home() / "logs",
        level=level,
    )


def _load_configs(project_dir: Path) -> tuple[GlobalConfig, ProjectConfig]:
    """Load and validate both configurations, exiting with a message on error."""
    try:
        global_config = load_global_config()
        project_config = load_project_config(project_dir)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if project_config is None:
        click.echo(
            f"No {PROJECT_CONFIG_FILE} found in {project_dir}. "
            "Run 'jira-claude-bot init' first.",
            err=True,
        )
        sys.exit(1)

    errors = validate_config(global_config, project_config)
    if errors:
        click.echo("Configuration errors:", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)

    return global_config, project_config


def _jira_client(global_config: GlobalConfig) -> JiraClient:
    return JiraClient(
        global_config.jira.host,
        global_config.jira.email,
        global_config.jira.api_token,
    )


def _check_command(args: list[str], cwd: Path | None = None) -> tuple[bool, str]:
    """Run a command and report (succeeded, first line of output)."""
    try:
        result = subprocess.run(args, cwd=cwd, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        return False, f"{args[0]} not found in PATH"
    output = (result.stdout or result.stderr).strip()
    return result.returncode == 0, output.splitlines()[0] if output else ""


def _record_history(
    global_config: GlobalConfig, result: WorkResult, started_at: datetime
) -> None:
    """Store a finished run. A history problem never changes the outcome."""
    history: HistoryStore | None = None
    try:
        history = HistoryStore(history_path(global_config.bot.data_dir))
        history.record(result, started_at)
    except HistoryError as e:
        click.echo(f"Warning: run not recorded in history: {e}", err=True)
    finally:
        if history is not None:
            history.close()


def _shorten(text: str, width: int = SUMMARY_WIDTH) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


@click.group()
@click.version_option(__version__, prog_name="jira-claude-bot")
@click.option(
    "-C",
    "--project-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Repository checkout to work in (default: current directory)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, project_dir: Path, verbose: bool) -> None:
    """jira-claude-bot - turn Jira tickets into pull requests with Claude Code."""
    ctx.ensure_object(dict)
    ctx.obj["project_dir"] = project_dir.resolve()
    ctx.obj["verbose"] = verbose


@main.command()
@click.option("--force", is_flag=True, help="Overwrite an existing configuration")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Create .jira-claude-bot.yaml for this repository."""
    project_dir: Path = ctx.obj["project_dir"]
    config_path = project_dir / PROJECT_CONFIG_FILE

    if config_path.exists() and not force:
        click.echo(f"{config_path} already exists. Use --force to overwrite.", err=True)
        sys.exit(1)

    jira_key = click.prompt("Jira project key (e.g. PROJ)").strip().upper()
    repo = click.prompt("GitHub repository (owner/repo)").strip()
    base_branch = click.prompt("Base branch", default="develop")
    statuses = click.prompt("Ticket statuses to pick up (comma-separated)", default="To Do")
    platform = click.prompt(
        "Preview platform",
        type=click.Choice(PLATFORMS, case_sensitive=False),
        default="vercel",
    )

    config = ProjectConfig(
        project=ProjectInfo(jira_key=jira_key, repo=repo),
        tickets=TicketCriteria(statuses=[s.strip() for s in statuses.split(",") if s.strip()]),
        workflow=WorkflowConfig(pr=PRConfig(base_branch=base_branch)),
        deployment=DeploymentConfig(
            platform=platform.lower(),
            wait_for_preview=platform.lower() != "none",
        ),
    )
    path = save_project_config(config, project_dir)

    click.echo(f"\nWrote {path}")
    click.echo("Next steps:")
    click.echo("  1. Set JIRA_HOST, JIRA_EMAIL and JIRA_API_TOKEN")
    click.echo("  2. Run 'jira-claude-bot validate'")


@main.command()
@click.argument("ticket")
@click.option("--dry-run", is_flag=True, help="Show what would be done without doing it")
@click.option("--context", "extra_context", default=None, help="Extra context for Claude Code")
@click.pass_context
def work(ctx: click.Context, ticket: str, dry_run: bool, extra_context: str | None) -> None:
    """Work on a single TICKET, e.g. PROJ-42."""
    project_dir: Path = ctx.obj["project_dir"]
    global_config, project_config = _load_configs(project_dir)
    _setup_logging(global_config, ctx.obj["verbose"])
    ticket_key = ticket.upper()

    if dry_run:
        jira = _jira_client(global_config)
        try:
            details = jira.get_ticket(ticket_key)
        except (JiraError, httpx.HTTPError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        finally:
            jira.close()

        workflow = project_config.workflow
        click.echo(f"Ticket:   {details.key} - {details.summary}")
        click.echo(f"Type:     {details.type}")
        click.echo(f"Status:   {details.status}")
        click.echo(f"Priority: {details.priority}")
        click.echo(f"Branch:   {format_pattern(workflow.branch_pattern, details)}")
        click.echo(f"Base:     {workflow.pr.base_branch}")
        if details.attachments:
            click.echo(f"Attachments: {len(details.attachments)}")
        click.echo("\nDry run: no changes made.")
        return

    worker = Worker(
        global_config,
        project_config,
        project_dir,
        logger=ticket_logger(ticket_key),
    )
    started_at = datetime.now(UTC)
    try:
        result = worker.process_ticket(ticket_key, extra_context)
    finally:
        worker.close()

    _record_history(global_config, result, started_at)

    if not result.success:
        click.echo(f"\nFailed: {result.error}", err=True)
        sys.exit(1)

    click.echo(f"\nDone: {result.ticket_key}")
    if result.pr is not None:
        click.echo(f"  PR:      {result.pr.url}")
    if result.preview_url:
        click.echo(f"  Preview: {result.preview_url}")


@click.command("list-tickets")
@click.option("--status", default=None, help="Only tickets in this status")
@click.option("--jql", default=None, help="Custom JQL query")
@click.pass_context
def list_tickets(ctx: click.Context, status: str | None, jql: str | None) -> None:
    """List tickets the bot would pick up."""
    global_config, project_config = _load_configs(ctx.obj["project_dir"])
    jira = _jira_client(global_config)

    try:
        if jql:
            tickets = jira.search_tickets(jql)
        elif status:
            tickets = jira.get_tickets_by_status(project_config.project.jira_key, status)
        else:
            tickets = jira.search_tickets(Poller(project_config, jira).build_query())
    except (JiraError, httpx.HTTPError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        jira.close()

    if not tickets:
        click.echo("No tickets found.")
        return

    for t in tickets:
        click.echo(f"{t.key:<12} {t.status:<16} {t.priority:<8} {_shorten(t.summary)}")
    click.echo(f"\n{len(tickets)} ticket(s)")


main.add_command(list_tickets)
main.add_command(list_tickets, name="ls")


@main.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Check configuration, Jira access and required tools."""
    project_dir: Path = ctx.obj["project_dir"]
    ok = True

    def report(passed: bool, label: str, detail: str = "", required: bool = True) -> None:
        nonlocal ok
        mark = "✓" if passed else ("✗" if required else "!")
        click.echo(f"  {mark} {label}" + (f": {detail}" if detail else ""))
        if not passed and required:
            ok = False

    click.echo("Configuration")
    try:
        global_config = load_global_config()
        project_config = load_project_config(project_dir)
    except ConfigError as e:
        report(False, "Config files", str(e))
        sys.exit(1)

    report(project_config is not None, PROJECT_CONFIG_FILE, "" if project_config else "missing")
    errors = validate_config(global_config, project_config)
    for error in errors:
        report(False, error)
    if not errors:
        report(True, "Required settings")

    click.echo("\nServices")
    if global_config.jira.host and project_config is not None:
        jira = _jira_client(global_config)
        try:
            jira.search_tickets(f"project = {project_config.project.jira_key}", max_results=1)
            report(True, "Jira", global_config.jira.host)
        except (JiraError, httpx.HTTPError) as e:
            report(False, "Jira", str(e))
        finally:
            jira.close()
    else:
        report(False, "Jira", "not configured")

    passed, detail = _check_command(["gh", "auth", "status"])
    report(passed, "GitHub CLI auth", detail)

    click.echo("\nTools")
    passed, detail = _check_command(["claude", "--version"])
    report(passed, "Claude Code CLI", detail)

    passed, detail = _check_command(["git", "rev-parse", "--is-inside-work-tree"], cwd=project_dir)
    report(passed, "Git repository", str(project_dir) if passed else detail)

    if project_config is not None and project_config.deployment.platform == "vercel":
        passed, detail = _check_command(["vercel", "--version"])
        report(passed, "Vercel CLI", detail, required=False)

    if not ok:
        click.echo("\nValidation failed.", err=True)
        sys.exit(1)
    click.echo("\nAll checks passed.")


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration summary and recent runs."""
    global_config, project_config = _load_configs(ctx.obj["project_dir"])
    criteria = project_config.tickets
    deployment = project_config.deployment

    click.echo(f"Project:       {project_config.project.jira_key}")
    click.echo(f"Repository:    {project_config.project.repo}")
    click.echo(f"Base branch:   {project_config.workflow.pr.base_branch}")
    if criteria.jql:
        click.echo(f"Query:         {criteria.jql}")
    else:
        click.echo(f"Statuses:      {', '.join(criteria.statuses)}")
    click.echo(f"Preview:       {deployment.platform}")
    click.echo(f"Poll interval: {global_config.bot.poll_interval}s")
    notifications = global_config.notifications
    click.echo(f"Slack:         {'on' if notifications.slack else 'off'}")

    db_path = history_path(global_config.bot.data_dir)
    if not db_path.exists():
        click.echo("\nNo runs recorded yet.")
        return

    history = HistoryStore(db_path)
    try:
        stats = history.stats()
        runs = history.recent()
    finally:
        history.close()

    click.echo(
        f"\nRuns: {stats.total} total, {stats.succeeded} succeeded, "
        f"{stats.failed} failed ({stats.no_changes} without changes)"
    )
    click.echo("Recent:")
    for run in runs:
        outcome = "ok" if run.success else "failed"
        detail = run.pr_url if run.success else _shorten(run.error or "")
        when = run.completed_at.strftime("%Y-%m-%d %H:%M")
        click.echo(f"  {when}  {run.ticket_key:<12} {outcome:<7} {detail}")


@main.command()
@click.option("--interval", type=int, default=None, help="Seconds between polls")
@click.pass_context
def start(ctx: click.Context, interval: int | None) -> None:
    """Poll Jira and work tickets until interrupted."""
    project_dir: Path = ctx.obj["project_dir"]
    global_config, project_config = _load_configs(project_dir)
    _setup_logging(global_config, ctx.obj["verbose"])

    history: HistoryStore | None = None
    try:
        history = HistoryStore(history_path(global_config.bot.data_dir))
    except HistoryError as e:
        click.echo(f"Warning: run history disabled: {e}", err=True)

    try:
        daemon = Daemon(
            global_config,
            project_config,
            project_dir,
            poll_interval=interval,
            history=history,
        )
        daemon.start()
    finally:
        if history is not None:
            history.close()


if __name__ == "__main__":
    main()
