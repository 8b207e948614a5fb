from __future__ import annotations

import asyncio

from core.config import parse_relay_config
from core.models import InboundMessage, UserInfo, text
from core.rules_engine import ListenerRegistry, resolve_bindings


def _message(platform: str = "telegram", self_id: str = "1", channel_id: str = "c1") -> InboundMessage:
    return InboundMessage(
        platform=platform,
        self_id=self_id,
        channel_id=channel_id,
        message_id="m1",
        sender=UserInfo(id="u1"),
        elements=(text("hello"),),
    )


def _raw(rules: list[dict]) -> dict:
    return {
        "endpoints": {
            "src": {"platform": "telegram", "self_id": "1", "channel_id": "c1"},
            "any": {"platform": "telegram", "self_id": "*", "channel_id": "*"},
            "t1": {"platform": "discord", "self_id": "2", "channel_id": "d1"},
            "t2": {"platform": "discord", "self_id": "2", "channel_id": "d2", "disabled": True},
        },
        "rules": rules,
    }


def test_resolves_rule_and_keeps_target_order() -> None:
    config = parse_relay_config(_raw([{"source": "src", "targets": ["t1", "src"]}]))
    bindings = resolve_bindings(config)
    assert len(bindings) == 1
    assert bindings[0].target_names == ("t1", "src")


def test_skips_unknown_source_and_empty_targets() -> None:
    config = parse_relay_config(
        _raw(
            [
                {"source": "missing", "targets": ["t1"]},
                {"source": "src", "targets": ["t2", "nope"]},
                {"source": "src", "targets": []},
            ]
        )
    )
    assert resolve_bindings(config) == []


def test_wildcard_endpoint_is_not_a_target() -> None:
    config = parse_relay_config(_raw([{"source": "src", "targets": ["any"]}]))
    assert resolve_bindings(config) == []


def test_selectors_scope_the_listener() -> None:
    config = parse_relay_config(
        _raw([{"source": "src", "targets": ["t1"]}, {"source": "any", "targets": ["t1"]}])
    )
    exact, wildcard = resolve_bindings(config)

    assert exact.listens_to(_message())
    assert not exact.listens_to(_message(channel_id="c2"))
    assert not exact.listens_to(_message(self_id="9"))
    assert wildcard.listens_to(_message(self_id="9", channel_id="c2"))
    assert not wildcard.listens_to(_message(platform="discord"))


def test_invalid_blocking_pattern_is_ignored() -> None:
    raw = _raw([{"source": "src", "targets": ["t1"]}])
    raw["endpoints"]["src"]["blocking_words"] = ["(unclosed", "bad"]
    binding = resolve_bindings(parse_relay_config(raw))[0]

    assert len(binding.blocking_patterns) == 1
    assert binding.is_blocked(_message()) is False


def test_registry_runs_matching_listeners_and_contains_failures() -> None:
    config = parse_relay_config(
        _raw([{"source": "any", "targets": ["t1"]}, {"source": "src", "targets": ["t1"]}])
    )
    wildcard, exact = resolve_bindings(config)
    calls: list[str] = []

    async def broken(message: InboundMessage) -> None:
        calls.append("wildcard")
        raise RuntimeError("boom")

    async def working(message: InboundMessage) -> None:
        calls.append("exact")

    registry = ListenerRegistry()
    registry.on(wildcard, broken)
    registry.on(exact, working)

    assert asyncio.run(registry.emit(_message())) == 2
    assert calls == ["wildcard", "exact"]
    assert asyncio.run(registry.emit(_message(channel_id="other"))) == 1


def test_listeners_sharing_a_source_run_concurrently() -> None:
    config = parse_relay_config(
        _raw([{"source": "src", "targets": ["t1"]}, {"source": "any", "targets": ["t1"]}])
    )
    first, second = resolve_bindings(config)

    async def _run() -> int:
        released = asyncio.Event()

        async def waiting(message: InboundMessage) -> None:
            await released.wait()

        async def releasing(message: InboundMessage) -> None:
            released.set()

        registry = ListenerRegistry()
        registry.on(first, waiting)
        registry.on(second, releasing)
        # Sequential dispatch would never reach the second listener.
        return await asyncio.wait_for(registry.emit(_message()), timeout=1)

    assert asyncio.run(_run()) == 2
