"""Conversion between Atlassian Document Format (ADF) and plain text."""

from __future__ import annotations

import json
import re
from typing import Any

NO_DESCRIPTION = "No description provided."

_URL_RE = re.compile(r"(https?://\S+)")


def format_description(description: Any) -> str:
    """Render a ticket description or comment body as plain text.

    Args:
        description: ADF document, plain string, or None.

    Returns:
        Plain text. Empty values render as a placeholder.
    """
    if not description:
        return NO_DESCRIPTION

    if isinstance(description, str):
        return description

    if isinstance(description, dict) and description.get("type") == "doc":
        return adf_to_text(description.get("content") or [])

    return json.dumps(description, indent=2)


def adf_to_text(content: list[dict[str, Any]]) -> str:
    """Render a list of ADF nodes as plain text.

    Unknown node types are rendered by recursing into their children.

    Args:
        content: ADF nodes.

    Returns:
        Plain text with Markdown-like headings, lists and code fences.
    """
    text = ""

    for node in content:
        children = node.get("content") or []
        match node.get("type"):
            case "paragraph":
                text += adf_to_text(children) + "\n\n"
            case "text":
                text += node.get("text") or ""
            case "bulletList":
                for item in children:
                    text += "- " + adf_to_text(item.get("content") or []).strip() + "\n"
                text += "\n"
            case "orderedList":
                for num, item in enumerate(children, start=1):
                    text += f"{num}. " + adf_to_text(item.get("content") or []).strip() + "\n"
                text += "\n"
            case "listItem":
                text += adf_to_text(children)
            case "heading":
                level = (node.get("attrs") or {}).get("level") or 1
                text += "#" * level + " " + adf_to_text(children) + "\n\n"
            case "codeBlock":
                code = children[0].get("text", "") if children else ""
                text += "```\n" + code + "\n```\n\n"
            case "hardBreak":
                text += "\n"
            case _:
                if children:
                    text += adf_to_text(children)

    return text


def _line_to_nodes(line: str) -> list[dict[str, Any]]:
    """Split a line into text nodes, marking URLs as links."""
    if not line.strip():
        return [{"type": "text", "text": " "}]

    nodes: list[dict[str, Any]] = []
    for part in _URL_RE.split(line):
        if not part:
            continue
        if _URL_RE.fullmatch(part):
            nodes.append(
                {
                    "type": "text",
                    "text": part,
                    "marks": [{"type": "link", "attrs": {"href": part}}],
                }
            )
        else:
            nodes.append({"type": "text", "text": part})
    return nodes


def text_to_adf(text: str) -> dict[str, Any]:
    """Convert plain text into an ADF document, one paragraph per line.

    Args:
        text: Plain text, may contain URLs.

    Returns:
        ADF document dict.
    """
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {"type": "paragraph", "content": _line_to_nodes(line)} for line in text.split("\n")
        ],
    }
