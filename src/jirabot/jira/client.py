"""JiraClient - Talks to the Jira Cloud REST API (v3)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from jirabot.jira.adf import text_to_adf
from jirabot.jira.exceptions import (
    JiraAPIError,
    TicketNotFoundError,
    TransitionNotFoundError,
)
from jirabot.jira.models import Attachment, Comment, Ticket, Transition
from jirabot.logging import sanitize_for_log

logger = logging.getLogger("jirabot.jira")

SEARCH_FIELDS = [
    "summary",
    "description",
    "status",
    "issuetype",
    "priority",
    "assignee",
    "reporter",
    "labels",
]


def _name(value: dict[str, Any] | None, key: str, default: str) -> str:
    """Read a nested display field, e.g. fields.status.name."""
    if not value:
        return default
    return value.get(key) or default


class JiraClient:
    """Client for the Jira Cloud REST API.

    Authenticates with basic auth (account email + API token).
    """

    def __init__(
        self,
        host: str,
        email: str,
        api_token: str,
        timeout: float = 30.0,
    ) -> None:
        """Initialize Jira client.

        Args:
            host: Jira site URL, e.g. "https://example.atlassian.net"
            email: Account email used for basic auth
            api_token: Atlassian API token
            timeout: HTTP timeout in seconds
        """
        self.host = host.rstrip("/")
        self.email = email
        self.api_token = api_token
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client for the REST API."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=f"{self.host}/rest/api/3",
                auth=(self.email, self.api_token),
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _request(
        self,
        method: str,
        path: str,
        expected: tuple[int, ...] = (200,),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and check the status code.

        Raises:
            JiraAPIError: If the response status is not expected.
        """
        response = self.client.request(method, path, **kwargs)
        if response.status_code not in expected:
            message = sanitize_for_log(response.text)
            logger.error("Jira %s %s failed: %s", method, path, message)
            raise JiraAPIError(
                f"Jira API request failed: {response.status_code} - {message}",
                status_code=response.status_code,
            )
        return response

    def get_ticket(self, ticket_key: str) -> Ticket:
        """Get full ticket details including attachments and comments.

        Args:
            ticket_key: Issue key, e.g. "PROJ-42"

        Returns:
            Ticket object

        Raises:
            TicketNotFoundError: If the ticket does not exist
        """
        logger.debug("Fetching ticket %s", ticket_key)
        try:
            response = self._request(
                "GET",
                f"/issue/{ticket_key}",
                params={"expand": "renderedFields"},
            )
        except JiraAPIError as e:
            if e.status_code == 404:
                raise TicketNotFoundError(f"Ticket {ticket_key} not found") from e
            raise

        return self._parse(response, full=True)

    def search_tickets(self, jql: str, max_results: int = 50) -> list[Ticket]:
        """Search tickets with JQL.

        Attachments and comments are not populated on search results.

        Args:
            jql: JQL query
            max_results: Maximum number of tickets to return

        Returns:
            Tickets in the order returned by Jira
        """
        logger.debug("Searching tickets: %s", jql)
        response = self._request(
            "POST",
            "/search/jql",
            json={"jql": jql, "maxResults": max_results, "fields": SEARCH_FIELDS},
        )
        payload = self._json(response)
        try:
            issues = payload.get("issues") or []
            return [self._parse_ticket(issue, full=False) for issue in issues]
        except (AttributeError, KeyError, TypeError) as e:
            raise JiraAPIError(f"Unexpected search response from Jira: {e!r}") from e

    def get_tickets_by_status(self, project_key: str, status: str) -> list[Ticket]:
        """List a project's tickets in a given status, highest priority first."""
        jql = (
            f'project = {project_key} AND status = "{status}" '
            "ORDER BY priority DESC, created ASC"
        )
        return self.search_tickets(jql)

    def add_comment(self, ticket_key: str, comment: str) -> None:
        """Add a plain-text comment (converted to ADF) to a ticket."""
        logger.info("Adding comment to %s", ticket_key)
        self._request(
            "POST",
            f"/issue/{ticket_key}/comment",
            expected=(200, 201),
            json={"body": text_to_adf(comment)},
        )

    def get_transitions(self, ticket_key: str) -> list[Transition]:
        """List transitions available from the ticket's current status."""
        response = self._request("GET", f"/issue/{ticket_key}/transitions")
        return [
            Transition(id=str(t["id"]), name=t["name"])
            for t in self._json(response).get("transitions", [])
        ]

    def transition_ticket(self, ticket_key: str, status_name: str) -> None:
        """Move a ticket through the transition named `status_name`.

        The name match is case-insensitive.

        Raises:
            TransitionNotFoundError: If no transition has that name
        """
        transitions = self.get_transitions(ticket_key)
        wanted = status_name.lower()
        transition = next((t for t in transitions if t.name.lower() == wanted), None)

        if transition is None:
            raise TransitionNotFoundError(status_name, [t.name for t in transitions])

        logger.info("Transitioning %s via %s", ticket_key, transition.name)
        self._request(
            "POST",
            f"/issue/{ticket_key}/transitions",
            expected=(200, 204),
            json={"transition": {"id": transition.id}},
        )

    def download_attachment(self, attachment: Attachment, output_dir: str | Path) -> Path:
        """Download an attachment into `output_dir`.

        Returns:
            Path of the written file
        """
        response = self._request("GET", attachment.url, headers={"Accept": "*/*"})
        output_path = Path(output_dir) / Path(attachment.filename).name
        output_path.write_bytes(response.content)
        logger.debug("Saved attachment %s (%d bytes)", output_path, len(response.content))
        return output_path

    def assign_ticket(self, ticket_key: str, account_id: str | None) -> None:
        """Assign a ticket to an account, or unassign with None."""
        self._request(
            "PUT",
            f"/issue/{ticket_key}/assignee",
            expected=(200, 204),
            json={"accountId": account_id},
        )

    def get_ticket_url(self, ticket_key: str) -> str:
        """Browser URL of a ticket."""
        return f"{self.host}/browse/{ticket_key}"

    def _json(self, response: httpx.Response) -> Any:
        """Decode a JSON body, treating anything else as an API error."""
        try:
            return response.json()
        except ValueError as e:
            body = sanitize_for_log(response.text[:200])
            raise JiraAPIError(
                f"Jira returned a non-JSON response: {body}",
                status_code=response.status_code,
            ) from e

    def _parse(self, response: httpx.Response, full: bool) -> Ticket:
        try:
            return self._parse_ticket(self._json(response), full=full)
        except (AttributeError, KeyError, TypeError) as e:
            raise JiraAPIError(f"Unexpected issue payload from Jira: {e!r}") from e

    def _parse_ticket(self, data: dict[str, Any], full: bool) -> Ticket:
        """Build a Ticket from an issue JSON payload."""
        fields = data.get("fields") or {}

        attachments: list[Attachment] = []
        comments: list[Comment] = []
        custom_fields: dict[str, Any] = {}
        if full:
            attachments = [
                Attachment(
                    id=str(a.get("id", "")),
                    filename=a.get("filename", ""),
                    url=a.get("content", ""),
                    mime_type=a.get("mimeType", ""),
                )
                for a in fields.get("attachment") or []
            ]
            comments = [
                Comment(
                    id=str(c.get("id", "")),
                    author=_name(c.get("author"), "displayName", "Unknown"),
                    body=c.get("body"),
                    created=c.get("created", ""),
                )
                for c in (fields.get("comment") or {}).get("comments", [])
            ]
            custom_fields = {k: v for k, v in fields.items() if k.startswith("customfield_")}

        return Ticket(
            key=data["key"],
            summary=fields.get("summary") or "",
            description=fields.get("description"),
            status=_name(fields.get("status"), "name", "Unknown"),
            type=_name(fields.get("issuetype"), "name", "Unknown"),
            priority=_name(fields.get("priority"), "name", "None"),
            assignee=(fields.get("assignee") or {}).get("displayName"),
            reporter=_name(fields.get("reporter"), "displayName", "Unknown"),
            attachments=attachments,
            comments=comments,
            labels=list(fields.get("labels") or []),
            custom_fields=custom_fields,
        )
