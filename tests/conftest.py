"""Shared pytest fixtures and configuration."""

import pytest


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: tests against real git repositories")


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch):
    """Keep tests away from the user's real configuration and credentials."""
    home = tmp_path_factory.mktemp("config-home")
    monkeypatch.setenv("JIRABOT_HOME", str(home))
    for name in ("JIRA_HOST", "JIRA_EMAIL", "JIRA_API_TOKEN", "GITHUB_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return home
