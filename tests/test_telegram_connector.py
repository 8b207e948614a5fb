from __future__ import annotations

import asyncio

from adapters.instance_registry import InstanceRegistry
from adapters.telegram_connector import TelegramConnector
from core.models import author, quote, text


class SentMessage:
    def __init__(self, message_id: int) -> None:
        self.id = message_id


class FakeClient:
    def __init__(self, connected: bool = True) -> None:
        self.connected = connected
        self.calls: list[tuple] = []

    def is_connected(self) -> bool:
        return self.connected

    async def send_message(self, entity, message, **kwargs):
        self.calls.append((entity, message, kwargs))
        return SentMessage(500 + len(self.calls))


def test_send_renders_html_and_replies_to_quote() -> None:
    client = FakeClient()
    connector = TelegramConnector(client, "777")

    ids = asyncio.run(
        connector.send("-100123", [quote("42"), text("[Home - Alice]\n"), text("a & b")])
    )

    assert ids == ["501"]
    entity, body, kwargs = client.calls[0]
    assert entity == -100123
    assert body == "[Home - Alice]\na &amp; b"
    assert kwargs["reply_to"] == 42
    assert kwargs["parse_mode"] == "html"


def test_send_to_username_and_ignores_foreign_quote_ids() -> None:
    client = FakeClient()
    connector = TelegramConnector(client, "777")

    asyncio.run(connector.send("@relaychan", [quote("abc-def"), author("Bob", None), text("x")]))

    entity, body, kwargs = client.calls[0]
    assert entity == "@relaychan"
    assert body == "<b>Bob</b>\nx"
    assert kwargs["reply_to"] is None


def test_status_follows_client_connection() -> None:
    assert TelegramConnector(FakeClient(True), "1").status == "online"
    assert TelegramConnector(FakeClient(False), "1").status == "offline"


def test_registry_resolves_by_platform_and_self_id() -> None:
    registry = InstanceRegistry()
    connector = TelegramConnector(FakeClient(), "777")
    registry.register(connector)

    assert registry.resolve_instance("telegram", "777") is connector
    assert registry.resolve_instance("telegram", "778") is None
    assert "telegram:777" in registry

    registry.unregister(connector)
    assert registry.resolve_instance("telegram", "777") is None
