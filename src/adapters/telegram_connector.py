"""Telegram connector adapter.

Wraps one logged-in Telethon client as a relay bot instance: it feeds
incoming messages into the listener registry and delivers rendered payloads.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from telethon import TelegramClient, events

from adapters.element_rendering import render_elements
from adapters.telegram_mapper import PLATFORM, build_inbound, quote_from_message
from core.models import ContentElement, QuoteInfo
from core.ports import ONLINE
from core.rules_engine import ListenerRegistry

LOGGER = logging.getLogger(__name__)


def _peer(channel_id: str) -> Union[int, str]:
    # Numeric chat ids must be passed as ints; usernames stay strings.
    if channel_id.lstrip("-").isdigit():
        return int(channel_id)
    return channel_id


class TelegramConnector:
    """Connector adapter that satisfies the ConnectorPort contract."""

    platform = PLATFORM
    supports_author_simulation = False

    def __init__(self, client: TelegramClient, self_id: str, self_username: Optional[str] = None) -> None:
        self._client = client
        self.self_id = self_id
        self.self_username = self_username

    @classmethod
    async def start(cls, client: TelegramClient, bot_token: Optional[str] = None) -> "TelegramConnector":
        """Log in (as a bot when a token is given) and resolve our own id."""

        if bot_token:
            await client.start(bot_token=bot_token)
        elif not client.is_connected():
            await client.connect()
        me = await client.get_me()
        if me is None:
            raise RuntimeError("Telegram session is not authorized; run the login command first")
        LOGGER.info("Telegram instance %s ready", me.id)
        return cls(client, str(me.id), getattr(me, "username", None))

    @property
    def status(self) -> str:
        return ONLINE if self._client.is_connected() else "offline"

    async def send(self, channel_id: str, elements: list[ContentElement]) -> list[str]:
        rendered = render_elements(elements, mode="html")
        reply_to = None
        if rendered.reply_to and rendered.reply_to.isdigit():
            reply_to = int(rendered.reply_to)
        sent = await self._client.send_message(
            _peer(channel_id),
            rendered.text,
            parse_mode="html",
            reply_to=reply_to,
            link_preview=False,
        )
        if isinstance(sent, list):
            return [str(message.id) for message in sent]
        return [str(sent.id)]

    async def get_message(self, channel_id: str, message_id: str) -> QuoteInfo:
        message = await self._client.get_messages(_peer(channel_id), ids=int(message_id))
        if message is None:
            raise LookupError(f"Message {message_id} not found in {channel_id}")
        return await quote_from_message(message)

    def listen(self, registry: ListenerRegistry) -> None:
        """Forward every incoming message to the relay listeners."""

        @self._client.on(events.NewMessage(incoming=True))
        async def handler(event) -> None:
            try:
                inbound = await build_inbound(event.message, self.self_id, self.self_username)
                await registry.emit(inbound)
            except Exception:
                LOGGER.exception("Error while relaying message")
