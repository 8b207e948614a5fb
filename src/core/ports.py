"""Ports (interfaces) used by the relay pipeline.

Ports define the minimal contracts for storage, moderation and platform
connectors so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from core.models import ContentElement, QuoteInfo, RelayRecord

ONLINE = "online"


class RelayStorePort(Protocol):
    """Correlation storage required by the relay pipeline."""

    def find_by_source(self, message_id: str, instance: str, channel: str) -> list[RelayRecord]:
        ...

    def find_by_target(self, message_id: str, instance: str, channel: str) -> list[RelayRecord]:
        ...

    def insert_records(self, records: Iterable[RelayRecord]) -> list[RelayRecord]:
        ...


class ModeratorPort(Protocol):
    """Text moderation. Implementations must fail open."""

    async def moderate(self, actor_id: str, conversation_id: str, text: str) -> str:
        ...


class ConnectorPort(Protocol):
    """A live bot instance on one chat platform."""

    platform: str
    self_id: str
    supports_author_simulation: bool

    @property
    def status(self) -> str:
        ...

    async def send(self, channel_id: str, elements: list[ContentElement]) -> list[str]:
        ...

    async def get_message(self, channel_id: str, message_id: str) -> QuoteInfo:
        ...


class InstanceLookupPort(Protocol):
    """Resolves the connector currently serving a (platform, self id) pair."""

    def resolve_instance(self, platform: str, self_id: str) -> Optional[ConnectorPort]:
        ...
