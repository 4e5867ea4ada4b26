"""GitManager - Handles git and GitHub operations for the workflow."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Any

import httpx

from jirabot.git_manager.exceptions import (
    BranchError,
    CommitError,
    PRError,
    PushError,
)
from jirabot.git_manager.models import GitStatus, PullRequest

logger = logging.getLogger("jirabot.git_manager")

DEPLOYMENT_POLL_INTERVAL = 5.0


def get_github_token() -> str:
    """Get GitHub token from environment or gh CLI."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except (subprocess.CalledProcessError, FileNotFoundError):
        return ""


class GitManager:
    """Manages git and GitHub operations for the workflow.

    Local operations shell out to git in the repository clone; pull requests
    and deployments go through the GitHub REST API.
    """

    def __init__(
        self,
        repo: str,
        token: str | None = None,
        repo_path: str | Path = ".",
        base_url: str = "https://api.github.com",
        remote: str = "origin",
    ) -> None:
        """Initialize Git Manager.

        Args:
            repo: GitHub repo in "owner/repo" format
            token: GitHub token. Looked up lazily via get_github_token() if None.
            repo_path: Path to local repository clone
            base_url: GitHub API base URL (for testing/enterprise)
            remote: Name of the git remote to pull from and push to
        """
        self.repo = repo
        self.token = token
        self.repo_path = Path(repo_path)
        self.base_url = base_url.rstrip("/")
        self.remote = remote
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client for GitHub API."""
        if self._client is None:
            if self.token is None:
                self.token = get_github_token()
            self._client = httpx.Client(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                timeout=30.0,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _run_git(self, *args: str, strip: bool = True) -> str:
        """Run a git command in the repo directory.

        Args:
            *args: Git command arguments
            strip: Strip surrounding whitespace from the output

        Returns:
            Command stdout

        Raises:
            subprocess.CalledProcessError: If command fails
        """
        result = subprocess.run(
            ["git", *args],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip() if strip else result.stdout

    # --- Branches ---

    def create_branch(self, branch_name: str, base: str = "develop") -> None:
        """Create a fresh branch from an up-to-date base branch.

        Any existing local branch of the same name is force-deleted, and a
        same-named remote branch is deleted if present, so repeated runs on
        the same ticket start clean.

        Args:
            branch_name: Branch to create
            base: Base branch to create from

        Raises:
            BranchError: If branch creation fails
        """
        logger.info("Creating branch %s from %s", branch_name, base)
        try:
            self._run_git("checkout", base)
            self._run_git("pull", self.remote, base)

            if self.get_branch_exists(branch_name):
                logger.info("Deleting existing local branch %s", branch_name)
                self._run_git("branch", "-D", branch_name)

            self.delete_remote_branch(branch_name)

            self._run_git("checkout", "-b", branch_name)
        except subprocess.CalledProcessError as e:
            logger.error("Failed to create branch %s: %s", branch_name, e.stderr)
            raise BranchError(
                f"Failed to create branch '{branch_name}' from '{base}': {e.stderr}"
            ) from e
        logger.info("Created branch %s", branch_name)

    def delete_remote_branch(self, branch_name: str) -> bool:
        """Delete a branch on the remote, tolerating its absence.

        Returns:
            True if a remote branch was deleted
        """
        try:
            self._run_git("push", self.remote, "--delete", branch_name)
        except subprocess.CalledProcessError:
            logger.debug("No remote branch %s to delete", branch_name)
            return False
        logger.info("Deleted remote branch %s", branch_name)
        return True

    def checkout_branch(self, branch_name: str) -> None:
        """Switch to an existing branch.

        Raises:
            BranchError: If checkout fails
        """
        try:
            self._run_git("checkout", branch_name)
        except subprocess.CalledProcessError as e:
            raise BranchError(f"Failed to checkout '{branch_name}': {e.stderr}") from e

    def get_branch_exists(self, branch_name: str) -> bool:
        """Check whether a local branch exists."""
        try:
            self._run_git("rev-parse", "--verify", "--quiet", f"refs/heads/{branch_name}")
            return True
        except subprocess.CalledProcessError:
            return False

    def get_current_branch(self) -> str:
        """Name of the checked-out branch."""
        return self._run_git("rev-parse", "--abbrev-ref", "HEAD")

    # --- Working tree ---

    def get_status(self) -> GitStatus:
        """Parse `git status --porcelain` into staged/unstaged/untracked paths."""
        output = self._run_git("status", "--porcelain", strip=False)
        status = GitStatus()

        for line in output.splitlines():
            if not line.strip():
                continue
            code, path = line[:2], line[3:]

            if code.startswith("?"):
                status.untracked.append(path)
                continue
            if code[0] != " ":
                status.staged.append(path)
            if code[1] != " ":
                status.unstaged.append(path)

        return status

    def commit_changes(self, message: str, files: list[str] | None = None) -> None:
        """Stage and commit changes.

        Args:
            message: Commit message
            files: Paths to stage. Stages everything if None or empty.

        Raises:
            CommitError: If staging or committing fails
        """
        logger.info("Committing changes: %s", message)
        try:
            if files:
                self._run_git("add", "--", *files)
            else:
                self._run_git("add", "-A")
            self._run_git("commit", "-m", message)
        except subprocess.CalledProcessError as e:
            logger.error("Failed to commit: %s", e.stderr)
            raise CommitError(f"Failed to commit changes: {e.stderr or e.stdout}") from e

    def has_new_commits(self, base: str) -> bool:
        """Check whether HEAD has commits that are not on `base`."""
        try:
            return bool(self._run_git("log", f"{base}..HEAD", "--oneline"))
        except subprocess.CalledProcessError:
            return False

    def get_commit_summary(self, base: str) -> str:
        """Bullet list of commit subjects between `base` and HEAD, oldest first."""
        try:
            return self._run_git("log", "--reverse", "--pretty=format:- %s", f"{base}..HEAD")
        except subprocess.CalledProcessError:
            return ""

    def push_branch(self, branch_name: str) -> None:
        """Push a branch to the remote and set upstream.

        Raises:
            PushError: If push fails
        """
        logger.info("Pushing branch %s to %s", branch_name, self.remote)
        try:
            self._run_git("push", "-u", self.remote, branch_name)
        except subprocess.CalledProcessError as e:
            logger.error("Failed to push branch %s: %s", branch_name, e.stderr)
            raise PushError(f"Failed to push branch '{branch_name}': {e.stderr}") from e
        logger.info("Pushed branch %s", branch_name)

    # --- Pull requests and deployments ---

    def create_pull_request(
        self,
        title: str,
        body: str,
        base: str = "develop",
        head: str | None = None,
    ) -> PullRequest:
        """Create a pull request from the current (or given) branch.

        Args:
            title: PR title
            body: PR description
            base: Base branch to merge into
            head: Head branch. Defaults to the checked-out branch.

        Returns:
            The created PullRequest

        Raises:
            PRError: If PR creation fails
        """
        head = head or self.get_current_branch()
        logger.info("Creating PR: %s (%s -> %s)", title, head, base)
        response = self.client.post(
            f"/repos/{self.repo}/pulls",
            json={"title": title, "body": body, "head": head, "base": base},
        )

        if response.status_code != 201:
            logger.error("Failed to create PR: %s", response.text)
            raise PRError(f"Failed to create PR: {response.status_code} - {response.text}")

        pr = self._parse_pr(response.json())
        logger.info("Created PR #%d: %s", pr.number, pr.url)
        return pr

    def get_pull_request(self, pr_number: int) -> PullRequest:
        """Fetch a pull request.

        Raises:
            PRError: If the PR cannot be fetched
        """
        response = self.client.get(f"/repos/{self.repo}/pulls/{pr_number}")
        if response.status_code != 200:
            raise PRError(
                f"Failed to get PR {pr_number}: {response.status_code} - {response.text}"
            )
        return self._parse_pr(response.json())

    def get_deployment_url(
        self,
        pr_number: int,
        max_attempts: int = 18,
        environment: str = "Preview",
        interval: float = DEPLOYMENT_POLL_INTERVAL,
    ) -> str | None:
        """Poll deployments of the PR's head commit for an environment URL.

        Args:
            pr_number: The PR number
            max_attempts: Number of polls before giving up
            environment: Deployment environment name
            interval: Seconds between polls

        Returns:
            The first environment URL found, or None if none appeared
        """
        head_sha = self.get_pull_request(pr_number).head_sha

        for attempt in range(1, max_attempts + 1):
            url = self._find_deployment_url(head_sha, environment)
            if url:
                logger.info("Deployment URL found on attempt %d: %s", attempt, url)
                return url

            logger.debug("No deployment yet (attempt %d/%d)", attempt, max_attempts)
            if attempt < max_attempts:
                time.sleep(interval)

        logger.warning("No deployment URL after %d attempts", max_attempts)
        return None

    def _find_deployment_url(self, sha: str, environment: str) -> str | None:
        """Look up the environment URL of the latest deployment for a commit."""
        try:
            deployments = self.client.get(
                f"/repos/{self.repo}/deployments",
                params={"sha": sha, "environment": environment},
            )
            if deployments.status_code != 200 or not deployments.json():
                return None

            deployment_id = deployments.json()[0]["id"]
            statuses = self.client.get(
                f"/repos/{self.repo}/deployments/{deployment_id}/statuses"
            )
            if statuses.status_code != 200 or not statuses.json():
                return None

            url: str | None = statuses.json()[0].get("environment_url")
            return url or None
        except httpx.HTTPError as e:
            logger.debug("Deployment lookup failed: %s", e)
            return None

    @staticmethod
    def _parse_pr(data: dict[str, Any]) -> PullRequest:
        return PullRequest(
            number=data["number"],
            url=data["html_url"],
            title=data.get("title", ""),
            state=data.get("state", ""),
            head_sha=(data.get("head") or {}).get("sha", ""),
        )
