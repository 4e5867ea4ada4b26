"""Data models for the Jira client."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Attachment:
    """A file attached to a ticket."""

    id: str
    filename: str
    url: str
    mime_type: str = ""


@dataclass
class Comment:
    """A ticket comment. `body` is ADF or plain text."""

    id: str
    author: str
    body: Any
    created: str = ""


@dataclass
class Transition:
    """A workflow transition available for a ticket."""

    id: str
    name: str


@dataclass
class Ticket:
    """Represents a Jira issue.

    Attributes:
        key: Issue key, e.g. "PROJ-42".
        summary: One-line title.
        description: Atlassian Document Format dict, plain text, or None.
        status: Current status name.
        type: Issue type name (Bug, Story, ...).
        priority: Priority name.
        assignee: Assignee display name, if assigned.
        reporter: Reporter display name.
        attachments: Attached files, in Jira order.
        comments: Comments, oldest first.
        labels: Issue labels.
        custom_fields: Raw values of every `customfield_*` field.
    """

    key: str
    summary: str
    description: Any = None
    status: str = "Unknown"
    type: str = "Unknown"
    priority: str = "None"
    assignee: str | None = None
    reporter: str = "Unknown"
    attachments: list[Attachment] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    custom_fields: dict[str, Any] = field(default_factory=dict)
