"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the relay pipeline.
"""

from __future__ import annotations

from typing import Optional

from telethon.helpers import add_surrogate, del_surrogate
from telethon.tl.custom import Message
from telethon.tl.types import MessageEntityMention, MessageEntityMentionName

from core.models import (
    AUDIO,
    EMOJI,
    IMAGE,
    MENTION,
    ContentElement,
    InboundMessage,
    QuoteInfo,
    UserInfo,
    text,
)

PLATFORM = "telegram"


def user_from_entity(entity) -> Optional[UserInfo]:
    """Build a UserInfo from a Telethon User or Channel entity."""

    if entity is None:
        return None
    first = getattr(entity, "first_name", None)
    last = getattr(entity, "last_name", None)
    # Channels post under their title and have no first/last name.
    display = " ".join(part for part in [first, last] if part) or getattr(entity, "title", None)
    username = getattr(entity, "username", None)
    return UserInfo(
        id=str(entity.id),
        name=username or display,
        nick=display,
        # Telegram exposes no public avatar URL.
        avatar=None,
        is_bot=bool(getattr(entity, "bot", False)),
    )


def _mention(entity, value: str, self_id: Optional[str], self_username: Optional[str]) -> ContentElement:
    if isinstance(entity, MessageEntityMentionName):
        return ContentElement(MENTION, {"id": str(entity.user_id), "name": value})
    username = value.lstrip("@")
    # Plain @username mentions carry no user id; our own handle maps to self_id.
    if self_username and username.lower() == self_username.lower():
        return ContentElement(MENTION, {"id": self_id, "name": username})
    return ContentElement(MENTION, {"id": username, "name": username})


def text_elements(
    raw_text: str,
    entities,
    self_id: Optional[str] = None,
    self_username: Optional[str] = None,
) -> list[ContentElement]:
    """Split message text into text and mention elements.

    Entity offsets count UTF-16 code units, so slicing happens on the
    surrogate-expanded string.
    """

    mentions = sorted(
        (e for e in entities or [] if isinstance(e, (MessageEntityMention, MessageEntityMentionName))),
        key=lambda e: e.offset,
    )
    if not mentions:
        return [text(raw_text)] if raw_text else []

    surrogated = add_surrogate(raw_text)
    elements: list[ContentElement] = []
    cursor = 0
    for entity in mentions:
        if entity.offset < cursor:
            continue
        if entity.offset > cursor:
            elements.append(text(del_surrogate(surrogated[cursor : entity.offset])))
        end = entity.offset + entity.length
        value = del_surrogate(surrogated[entity.offset : end])
        elements.append(_mention(entity, value, self_id, self_username))
        cursor = end
    if cursor < len(surrogated):
        elements.append(text(del_surrogate(surrogated[cursor:])))
    return elements


def elements_from_message(
    message: Message,
    self_id: Optional[str] = None,
    self_username: Optional[str] = None,
) -> tuple[ContentElement, ...]:
    """Map media and caption of a message to content elements."""

    elements: list[ContentElement] = []
    if getattr(message, "photo", None):
        elements.append(ContentElement(IMAGE, {"id": str(message.photo.id)}))
    if getattr(message, "sticker", None):
        file = getattr(message, "file", None)
        elements.append(ContentElement(EMOJI, {"name": getattr(file, "emoji", None)}))
    if getattr(message, "voice", None) or getattr(message, "audio", None):
        elements.append(ContentElement(AUDIO, {}))
    raw_text = getattr(message, "raw_text", None) or ""
    elements.extend(
        text_elements(raw_text, getattr(message, "entities", None), self_id, self_username)
    )
    return tuple(elements)


def reply_target_id(message: Message) -> Optional[int]:
    """Return the id of the message being replied to, if any.

    In forum chats every message carries a reply header pointing at the
    topic root; that is not a quote unless a reply_to_top_id is present.
    """

    reply_to = getattr(message, "reply_to", None)
    if not reply_to:
        return None
    reply_id = getattr(reply_to, "reply_to_msg_id", None)
    if getattr(reply_to, "forum_topic", False) and not getattr(reply_to, "reply_to_top_id", None):
        return None
    return reply_id


async def quote_from_message(message: Message) -> QuoteInfo:
    """Build QuoteInfo for a message somebody replied to."""

    sender = await message.get_sender()
    return QuoteInfo(
        message_id=str(message.id),
        author=user_from_entity(sender),
        elements=elements_from_message(message),
    )


async def build_inbound(
    message: Message, self_id: str, self_username: Optional[str] = None
) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    sender = user_from_entity(await message.get_sender())
    if sender is None:
        # Anonymous admins and some service posts have no resolvable sender.
        sender = UserInfo(id=str(message.chat_id))

    quote: Optional[QuoteInfo] = None
    reply_id = reply_target_id(message)
    if reply_id is not None:
        replied = await message.get_reply_message()
        if replied is not None:
            quote = await quote_from_message(replied)
        else:
            # Deleted or inaccessible; the processor will try to fetch the author.
            quote = QuoteInfo(message_id=str(reply_id))

    return InboundMessage(
        platform=PLATFORM,
        self_id=self_id,
        channel_id=str(message.chat_id),
        message_id=str(message.id),
        sender=sender,
        elements=elements_from_message(message, self_id, self_username),
        quote=quote,
        # Channel posts with signatures carry the author name per message.
        sender_nick=getattr(message, "post_author", None),
        date=message.date,
    )
