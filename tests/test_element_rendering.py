from __future__ import annotations

import pytest

from adapters.element_rendering import render_elements
from core.models import ContentElement, author, quote, text


def test_html_render_escapes_and_extracts_reply() -> None:
    rendered = render_elements(
        [quote("77"), text("[Home - Alice]\n"), text("1 < 2 & <b>")],
        mode="html",
    )
    assert rendered.reply_to == "77"
    assert rendered.text == "[Home - Alice]\n1 &lt; 2 &amp; &lt;b&gt;"


def test_author_becomes_bold_header() -> None:
    rendered = render_elements([author("[Home] Alice", None), text("hi")], mode="html")
    assert rendered.text == "<b>[Home] Alice</b>\nhi"
    assert rendered.reply_to is None


def test_markdown_render_escapes_markup() -> None:
    rendered = render_elements([author("a_b", None), text("*bold* [x]")], mode="markdown")
    assert rendered.text == "**a\\_b**\n\\*bold\\* \\[x]"


def test_first_quote_wins_and_media_is_dropped() -> None:
    rendered = render_elements(
        [quote("1"), quote("2"), ContentElement("image", {}), ContentElement("mention", {"id": "9"})],
        mode="html",
    )
    assert rendered.reply_to == "1"
    assert rendered.text == "@9"


def test_unknown_mode_raises() -> None:
    with pytest.raises(ValueError):
        render_elements([text("x")], mode="bbcode")
