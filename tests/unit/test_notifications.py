"""Unit tests for Slack notifications."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from jirabot.config import NotificationsConfig, SlackConfig
from jirabot.notifications import TICKET_COMPLETED, TICKET_FAILED, TICKET_STARTED, Notifier

WEBHOOK = "https://hooks.slack.com/services/T000/B000/XXXX"


@pytest.fixture
def mock_post():
    with patch("jirabot.notifications.httpx.post") as post:
        post.return_value = MagicMock(status_code=200, text="ok")
        yield post


@pytest.mark.unit
class TestNotifier:
    """Tests for Notifier."""

    def test_disabled_without_webhook(self, mock_post: MagicMock) -> None:
        notifier = Notifier()

        assert notifier.enabled is False
        assert notifier.notify(TICKET_STARTED, "hi") is False
        mock_post.assert_not_called()

    def test_posts_message(self, mock_post: MagicMock) -> None:
        notifier = Notifier(webhook_url=WEBHOOK, channel="#bots")

        assert notifier.notify(TICKET_COMPLETED, "CW2-1: PR opened") is True

        mock_post.assert_called_once_with(
            WEBHOOK,
            json={"text": "CW2-1: PR opened", "channel": "#bots"},
            timeout=10.0,
        )

    def test_no_channel_key_when_unset(self, mock_post: MagicMock) -> None:
        Notifier(webhook_url=WEBHOOK).notify(TICKET_FAILED, "x")

        assert mock_post.call_args.kwargs["json"] == {"text": "x"}

    def test_event_filter(self, mock_post: MagicMock) -> None:
        notifier = Notifier(webhook_url=WEBHOOK, events=[TICKET_FAILED])

        assert notifier.notify(TICKET_STARTED, "started") is False
        assert notifier.notify(TICKET_FAILED, "failed") is True
        assert mock_post.call_count == 1

    def test_http_error_is_not_raised(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = httpx.ConnectError("no route")

        assert Notifier(webhook_url=WEBHOOK).notify(TICKET_FAILED, "x") is False

    def test_rejected_by_slack(self, mock_post: MagicMock) -> None:
        mock_post.return_value = MagicMock(status_code=404, text="no_service")

        assert Notifier(webhook_url=WEBHOOK).notify(TICKET_FAILED, "x") is False


@pytest.mark.unit
class TestFromConfig:
    """Tests for building a Notifier from configuration."""

    def test_without_slack(self) -> None:
        notifier = Notifier.from_config(NotificationsConfig())

        assert notifier.enabled is False

    def test_with_slack(self) -> None:
        config = NotificationsConfig(
            slack=SlackConfig(webhook_url=WEBHOOK, channel="#dev"),
            events=[TICKET_COMPLETED],
        )

        notifier = Notifier.from_config(config)

        assert notifier.webhook_url == WEBHOOK
        assert notifier.channel == "#dev"
        assert notifier.wants(TICKET_COMPLETED) is True
        assert notifier.wants(TICKET_STARTED) is False


@pytest.mark.unit
class TestMalformedWebhook:
    """A broken webhook URL is reported, not raised."""

    def test_invalid_url(self) -> None:
        notifier = Notifier(webhook_url="https://hooks.slack.com/x y\x00")

        assert notifier.notify(TICKET_FAILED, "CW2-1 failed") is False

    def test_invalid_url_error_caught(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        assert Notifier(webhook_url=WEBHOOK).notify(TICKET_STARTED, "x") is False
