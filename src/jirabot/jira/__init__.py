"""Jira client - Fetches, searches, comments on and transitions Jira tickets."""

from jirabot.jira.adf import adf_to_text, format_description, text_to_adf
from jirabot.jira.client import JiraClient
from jirabot.jira.exceptions import (
    JiraAPIError,
    JiraError,
    TicketNotFoundError,
    TransitionNotFoundError,
)
from jirabot.jira.models import Attachment, Comment, Ticket, Transition

__all__ = [
    "Attachment",
    "Comment",
    "JiraAPIError",
    "JiraClient",
    "JiraError",
    "Ticket",
    "TicketNotFoundError",
    "Transition",
    "TransitionNotFoundError",
    "adf_to_text",
    "format_description",
    "text_to_adf",
]
