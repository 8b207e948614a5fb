from __future__ import annotations

from core.content import AUDIO_LABEL, transform
from core.models import ContentElement, quote, text


def test_defaults_reduce_rich_elements() -> None:
    elements = [
        text("hi "),
        ContentElement("mention", {"id": "42", "name": "Bob"}),
        ContentElement("mention", {"id": "43"}),
        ContentElement("emoji", {"name": "smile"}),
        ContentElement("emoji", {}),
        ContentElement("audio", {"url": "voice.ogg"}),
        ContentElement("image", {"url": "cat.png"}),
    ]

    result = transform(elements)

    assert result == [
        text("hi "),
        text("@Bob"),
        text("@43"),
        text("[smile]"),
        text("[emoji]"),
        text(AUDIO_LABEL),
    ]


def test_unknown_kinds_pass_through() -> None:
    sticker = ContentElement("sticker", {"id": "s1"})
    assert transform([sticker, quote("m1")]) == [sticker, quote("m1")]


def test_override_takes_precedence_over_default() -> None:
    elements = [ContentElement("mention", {"id": "bot"}), ContentElement("image", {})]

    result = transform(
        elements,
        {
            "mention": lambda attrs: text("") if attrs["id"] == "bot" else text("x"),
            "image": lambda attrs: text("[image]"),
        },
    )

    assert result == [text(""), text("[image]")]


def test_override_may_expand_to_several_elements() -> None:
    result = transform([ContentElement("audio", {})], {"audio": lambda attrs: [text("a"), text("b")]})
    assert result == [text("a"), text("b")]


def test_transform_does_not_mutate_input() -> None:
    elements = [ContentElement("image", {}), text("kept")]
    transform(elements)
    assert elements == [ContentElement("image", {}), text("kept")]


def test_transform_is_idempotent_on_text_only_input() -> None:
    once = transform([text("a"), ContentElement("mention", {"name": "Bob"})])
    assert transform(once) == once
