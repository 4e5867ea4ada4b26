"""Custom exceptions for the Jira client."""


class JiraError(Exception):
    """Base exception for Jira client errors."""


class JiraAPIError(JiraError):
    """Jira REST API returned an unexpected response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TicketNotFoundError(JiraError):
    """Ticket with given key does not exist."""


class TransitionNotFoundError(JiraError):
    """Named transition is not available from the ticket's current status."""

    def __init__(self, name: str, available: list[str]) -> None:
        super().__init__(
            f'Transition "{name}" not found. Available: {", ".join(available) or "(none)"}'
        )
        self.name = name
        self.available = available
