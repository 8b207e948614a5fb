"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any platform-specific message types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

TEXT = "text"
MENTION = "mention"
EMOJI = "emoji"
AUDIO = "audio"
IMAGE = "image"
QUOTE = "quote"
AUTHOR = "author"


@dataclass(frozen=True)
class ContentElement:
    """One node of a platform-agnostic rich message body."""

    kind: str
    attrs: dict[str, Any] = field(default_factory=dict)

    @property
    def content(self) -> str:
        return str(self.attrs.get("content", "")) if self.kind == TEXT else ""


def text(content: str) -> ContentElement:
    return ContentElement(TEXT, {"content": content})


def quote(message_id: str) -> ContentElement:
    return ContentElement(QUOTE, {"id": message_id})


def author(name: str, avatar: Optional[str]) -> ContentElement:
    return ContentElement(AUTHOR, {"name": name, "avatar": avatar})


def plain_text(elements: list[ContentElement]) -> str:
    """Concatenate the text elements, ignoring everything else."""

    return "".join(element.content for element in elements)


@dataclass(frozen=True)
class UserInfo:
    id: str
    name: Optional[str] = None
    nick: Optional[str] = None
    avatar: Optional[str] = None
    is_bot: bool = False


@dataclass(frozen=True)
class QuoteInfo:
    """Metadata about the message an inbound message replies to."""

    message_id: str
    author: Optional[UserInfo] = None
    elements: tuple[ContentElement, ...] = ()
    member_nick: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.member_nick:
            return self.member_nick
        if self.author is None:
            return "unknown"
        return self.author.nick or self.author.name or self.author.id


@dataclass(frozen=True)
class Embed:
    title: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class InboundMessage:
    """Minimal message event consumed by the relay processor."""

    platform: str
    self_id: str
    channel_id: str
    message_id: str
    sender: UserInfo
    elements: tuple[ContentElement, ...]
    quote: Optional[QuoteInfo] = None
    embeds: tuple[Embed, ...] = ()
    sender_nick: Optional[str] = None
    date: Optional[datetime] = None

    @property
    def instance_key(self) -> str:
        return instance_key(self.platform, self.self_id)

    @property
    def username(self) -> str:
        return self.sender_nick or self.sender.nick or self.sender.name or self.sender.id


def instance_key(platform: str, self_id: str) -> str:
    return f"{platform}:{self_id}"


@dataclass(frozen=True)
class RelayRecord:
    """Persisted link between an inbound message and one delivered copy."""

    source_message_id: str
    source_instance: str
    source_channel: str
    target_message_id: str
    target_instance: str
    target_channel: str
    timestamp: datetime
    record_id: Optional[int] = None


@dataclass(frozen=True)
class Delivered:
    target: str
    message_ids: tuple[str, ...]


@dataclass(frozen=True)
class Skipped:
    target: str
    reason: str


@dataclass(frozen=True)
class Failed:
    target: str
    error: BaseException


DeliveryOutcome = Union[Delivered, Skipped, Failed]


@dataclass
class RelayReport:
    """Result of running one inbound message through one binding."""

    dropped: Optional[str] = None
    outcomes: list[DeliveryOutcome] = field(default_factory=list)
    records: list[RelayRecord] = field(default_factory=list)

    @property
    def delivered(self) -> list[Delivered]:
        return [outcome for outcome in self.outcomes if isinstance(outcome, Delivered)]
