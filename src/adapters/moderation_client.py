"""HTTP moderation adapter.

Posts the plain text to a local moderation service and uses its rewritten
text when the reply is well formed. The call is bounded to 500 ms and any
failure falls back to the original text.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from core.config import DEFAULT_MODERATION_URL

LOGGER = logging.getLogger(__name__)

MODERATION_TIMEOUT = 0.5


class HttpModerator:
    """Moderator adapter that satisfies the ModeratorPort contract."""

    def __init__(
        self,
        url: str = DEFAULT_MODERATION_URL,
        timeout: float = MODERATION_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def _post(self, payload: dict) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.post(self._url, json=payload)

    async def moderate(self, actor_id: str, conversation_id: str, text: str) -> str:
        payload = {"from": actor_id, "ctx": conversation_id, "context": text}
        try:
            # httpx timeouts are per phase; wait_for bounds the whole exchange.
            resp = await asyncio.wait_for(self._post(payload), timeout=self._timeout)
        except (httpx.HTTPError, asyncio.TimeoutError, OSError):
            LOGGER.warning("Moderation service unreachable or timed out, sending original text")
            return text

        if not resp.is_success:
            LOGGER.warning("Moderation service answered %s, sending original text", resp.status_code)
            return text
        try:
            data = resp.json()
        except ValueError:
            LOGGER.warning("Moderation service returned malformed JSON, sending original text")
            return text
        if isinstance(data, dict) and isinstance(data.get("context"), str):
            return data["context"]
        return text
