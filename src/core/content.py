"""Content transform engine (core domain).

Reduces a rich element sequence to what every platform can carry: images
are dropped, mentions/emoji/audio become plain text, everything else is
passed through. Callers can override any kind with a visitor table.
"""

from __future__ import annotations

from typing import Callable, Iterable, Mapping, Optional, Union

from core.models import AUDIO, EMOJI, IMAGE, MENTION, ContentElement, text

EMOJI_LABEL = "emoji"
AUDIO_LABEL = "[voice]"

VisitorResult = Union[None, ContentElement, Iterable[ContentElement]]
Visitor = Callable[[dict], VisitorResult]


def _drop(attrs: dict) -> VisitorResult:
    return None


def render_mention(attrs: dict) -> VisitorResult:
    name = attrs.get("name") or attrs.get("id")
    return text(f"@{name}")


def _emoji(attrs: dict) -> VisitorResult:
    name = attrs.get("name") or EMOJI_LABEL
    return text(f"[{name}]")


def _audio(attrs: dict) -> VisitorResult:
    return text(AUDIO_LABEL)


DEFAULT_VISITORS: Mapping[str, Visitor] = {
    IMAGE: _drop,
    MENTION: render_mention,
    EMOJI: _emoji,
    AUDIO: _audio,
}


def transform(
    elements: Iterable[ContentElement],
    overrides: Optional[Mapping[str, Visitor]] = None,
) -> list[ContentElement]:
    """Return a new, reduced element list.

    Overrides are merged over the defaults, so a visitor for a kind fully
    replaces the default handling of that kind. Kinds without a visitor are
    copied through untouched.
    """

    visitors = {**DEFAULT_VISITORS, **(overrides or {})}
    result: list[ContentElement] = []
    for element in elements:
        visitor = visitors.get(element.kind)
        if visitor is None:
            result.append(element)
            continue
        produced = visitor(dict(element.attrs))
        if produced is None:
            continue
        if isinstance(produced, ContentElement):
            result.append(produced)
        else:
            result.extend(produced)
    return result
