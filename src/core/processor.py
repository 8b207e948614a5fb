"""Core relay pipeline.

This module is integration-agnostic. It only relies on ports for storage,
moderation and connectors, so new platforms plug in without changes here.

The pipeline for one inbound message and one binding runs in a strict order:
1) Blocking-word filter on the raw text elements
2) Quote classification and correlation lookup
3) Content transform (plus embed text) and the empty-text check
4) Moderation (fail-open)
5) Sequential fan-out: resolve instance, pace, build payload, send
6) One batch insert of the relay records produced by successful sends
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
import logging
from typing import Awaitable, Callable, Optional

from core.config import RelayConfig, SourceEndpoint, TargetEndpoint
from core.content import render_mention, transform
from core.models import (
    AUTHOR,
    ContentElement,
    Delivered,
    Failed,
    InboundMessage,
    QuoteInfo,
    RelayRecord,
    RelayReport,
    Skipped,
    author,
    plain_text,
    quote,
    text,
)
from core.ports import ONLINE, ConnectorPort, InstanceLookupPort, ModeratorPort, RelayStorePort
from core.rules_engine import RelayBinding

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RelayProcessor:
    """Orchestrates filtering, transform, moderation, fan-out and persistence."""

    def __init__(
        self,
        config: RelayConfig,
        store: RelayStorePort,
        instances: InstanceLookupPort,
        moderator: Optional[ModeratorPort] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._store = store
        self._instances = instances
        self._moderator = moderator
        self._sleep = sleep
        self._clock = clock

    def listener(self, binding: RelayBinding) -> Callable[[InboundMessage], Awaitable[RelayReport]]:
        """Return a coroutine function suitable for ListenerRegistry.on()."""

        async def _listen(message: InboundMessage) -> RelayReport:
            return await self.handle(binding, message)

        return _listen

    async def handle(self, binding: RelayBinding, message: InboundMessage) -> RelayReport:
        """Process one inbound message through one binding."""

        source = binding.source
        if binding.is_blocked(message):
            return RelayReport(dropped="blocked")

        rows: list[RelayRecord] = []
        quoted_bot = False
        quote_info = message.quote
        if quote_info is not None:
            quote_info = await self._resolve_quote_author(message, quote_info)
            quoted_bot = quote_info.author is not None and quote_info.author.id == message.self_id
            if quoted_bot:
                # Replying to one of our relayed copies: find where it came from.
                rows = self._store.find_by_target(
                    quote_info.message_id, message.instance_key, message.channel_id
                )
                if source.only_quote and not rows:
                    return RelayReport(dropped="quote-only: no relay record")
            elif source.only_quote:
                return RelayReport(dropped="quote-only: quoted author is not the bot")
            else:
                # Replying to an original message: find where it was relayed to.
                rows = self._store.find_by_source(
                    quote_info.message_id, message.instance_key, message.channel_id
                )
            LOGGER.debug(
                "Quote %s on %s: bot=%s records=%s",
                quote_info.message_id,
                message.instance_key,
                quoted_bot,
                len(rows),
            )
        elif source.only_quote:
            return RelayReport(dropped="quote-only: not a reply")

        elements = transform(message.elements, self._body_overrides(source, message))
        for embed in message.embeds:
            parts = [part for part in (embed.title, embed.description) if part]
            if parts:
                elements.append(text("\n".join(parts)))

        body = plain_text(elements)
        # Image-only messages leave nothing to relay.
        if not body.strip():
            return RelayReport(dropped="empty")

        final_text = await self._moderate(message, body)

        report = RelayReport()
        staged: list[RelayRecord] = []
        for index, (name, target) in enumerate(zip(binding.target_names, binding.targets)):
            connector = self._instances.resolve_instance(target.platform, target.self_id)
            if connector is None:
                LOGGER.warning("Bot instance %s is not available yet, skipping", target.instance_key)
                report.outcomes.append(Skipped(name, "instance not found"))
                continue
            if connector.status != ONLINE:
                LOGGER.warning("Bot instance %s is %s, skipping", target.instance_key, connector.status)
                report.outcomes.append(Skipped(name, f"instance {connector.status}"))
                continue

            if index:
                await self._sleep(self._config.delay_for(target.platform))

            payload = self._build_payload(
                source, target, connector, message, final_text, quote_info, quoted_bot, rows
            )
            try:
                message_ids = await connector.send(target.channel_id, payload)
            except Exception as error:
                LOGGER.error("Delivery to %s failed: %s", name, error)
                report.outcomes.append(Failed(name, error))
                continue

            now = self._clock()
            for message_id in message_ids:
                staged.append(
                    RelayRecord(
                        source_message_id=message.message_id,
                        source_instance=message.instance_key,
                        source_channel=message.channel_id,
                        target_message_id=message_id,
                        target_instance=target.instance_key,
                        target_channel=target.channel_id,
                        timestamp=now,
                    )
                )
            report.outcomes.append(Delivered(name, tuple(message_ids)))

        if staged:
            report.records = self._store.insert_records(staged)
        LOGGER.info(
            "Relayed %s from %s: %s/%s targets delivered",
            message.message_id,
            binding.source_name,
            len(report.delivered),
            len(binding.targets),
        )
        return report

    async def _resolve_quote_author(self, message: InboundMessage, info: QuoteInfo) -> QuoteInfo:
        if info.author is not None:
            return info
        connector = self._instances.resolve_instance(message.platform, message.self_id)
        if connector is None:
            LOGGER.warning("Cannot fetch quoted message: %s is not available", message.instance_key)
            return info
        try:
            fetched = await connector.get_message(message.channel_id, info.message_id)
        except Exception:
            LOGGER.warning("Failed to fetch quoted message %s", info.message_id, exc_info=True)
            return info
        return replace(
            info,
            author=fetched.author,
            elements=info.elements or fetched.elements,
            member_nick=info.member_nick or fetched.member_nick,
        )

    def _body_overrides(self, source: SourceEndpoint, message: InboundMessage):
        if not source.only_quote:
            return None

        def mention(attrs: dict):
            # Quote-only channels address the bot to reply; drop that mention.
            if attrs.get("id") == message.self_id:
                return text("")
            return render_mention(attrs)

        return {"mention": mention}

    async def _moderate(self, message: InboundMessage, body: str) -> str:
        if self._moderator is None:
            return body
        try:
            return await self._moderator.moderate(message.sender.id, message.channel_id, body)
        except Exception:
            LOGGER.warning("Moderation failed, sending original text", exc_info=True)
            return body

    def _build_prefix(
        self,
        source: SourceEndpoint,
        target: TargetEndpoint,
        connector: ConnectorPort,
        message: InboundMessage,
    ) -> ContentElement:
        if target.simulate_original and connector.supports_author_simulation:
            avatar = message.sender.avatar or self._config.default_avatar
            return author(f"[{source.name or ''}] {message.username}", avatar)
        alt_name = f"{source.name} - " if source.name else ""
        return text(f"[{alt_name}{message.username}]\n")

    def _build_payload(
        self,
        source: SourceEndpoint,
        target: TargetEndpoint,
        connector: ConnectorPort,
        message: InboundMessage,
        final_text: str,
        quote_info: Optional[QuoteInfo],
        quoted_bot: bool,
        rows: list[RelayRecord],
    ) -> list[ContentElement]:
        prefix = self._build_prefix(source, target, connector, message)
        payload = [prefix, text(final_text)]
        if quote_info is None:
            return payload

        quote_id = _match_quote(rows, quoted_bot, target)
        if quote_id:
            payload.insert(1 if prefix.kind == AUTHOR else 0, quote(quote_id))
            return payload

        return [
            text(f"Re {quote_info.display_name} ⌈"),
            *transform(quote_info.elements),
            text("⌋\n"),
            *payload,
        ]


def _match_quote(rows: list[RelayRecord], quoted_bot: bool, target: TargetEndpoint) -> Optional[str]:
    """Pick the message id to quote on this target; first matching record wins."""

    for row in rows:
        if quoted_bot:
            if row.source_instance == target.instance_key and row.source_channel == target.channel_id:
                return row.source_message_id
        elif row.target_instance == target.instance_key and row.target_channel == target.channel_id:
            return row.target_message_id
    return None
