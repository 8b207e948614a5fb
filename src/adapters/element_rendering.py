"""Shared element rendering helpers.

Turns a relay payload (a list of ContentElement) into the text body and
reply target a chat API expects. Keeping this here prevents drift between
connectors that speak Markdown and those that speak HTML.
"""

from __future__ import annotations

from dataclasses import dataclass
import html
from typing import Iterable, Optional

from core.models import AUTHOR, MENTION, QUOTE, TEXT, ContentElement


@dataclass(frozen=True)
class RenderedMessage:
    text: str
    reply_to: Optional[str]


def _escape_md(value: str) -> str:
    for ch in r"*[`_":
        value = value.replace(ch, f"\\{ch}")
    return value


def render_elements(elements: Iterable[ContentElement], mode: str) -> RenderedMessage:
    """Render a payload for a connector without native author/quote elements.

    - quote elements become the reply target (first one wins)
    - author elements become a bold header line
    - mentions left in the payload are rendered as @name
    - anything else that is not text is dropped
    """

    if mode == "html":
        escape = html.escape
        bold = "<b>{}</b>"
    elif mode == "markdown":
        escape = _escape_md
        bold = "**{}**"
    else:
        raise ValueError(f"Unsupported render mode: {mode}")

    parts: list[str] = []
    reply_to: Optional[str] = None
    for element in elements:
        if element.kind == TEXT:
            parts.append(escape(element.content))
        elif element.kind == QUOTE:
            if reply_to is None:
                reply_to = str(element.attrs.get("id", "")) or None
        elif element.kind == AUTHOR:
            parts.append(bold.format(escape(str(element.attrs.get("name", "")))) + "\n")
        elif element.kind == MENTION:
            name = element.attrs.get("name") or element.attrs.get("id")
            parts.append(escape(f"@{name}"))
    return RenderedMessage(text="".join(parts), reply_to=reply_to)
