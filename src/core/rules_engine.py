"""Rule resolution and listener routing (core domain)."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import re
from typing import Awaitable, Callable, Iterable, List

from core.config import WILDCARD, RelayConfig, SourceEndpoint, TargetEndpoint
from core.models import TEXT, InboundMessage

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayBinding:
    """A resolved rule: one source selector and its ordered live targets."""

    source_name: str
    source: SourceEndpoint
    target_names: tuple[str, ...]
    targets: tuple[TargetEndpoint, ...]
    blocking_patterns: tuple[re.Pattern, ...]

    def listens_to(self, message: InboundMessage) -> bool:
        """Return True if the message falls inside the source selectors."""

        if message.platform != self.source.platform:
            return False
        if self.source.self_id != WILDCARD and message.self_id != self.source.self_id:
            return False
        if self.source.channel_id != WILDCARD and message.channel_id != self.source.channel_id:
            return False
        return True

    def is_blocked(self, message: InboundMessage) -> bool:
        """Any blocking pattern hitting any raw text element drops the message."""

        texts = [element.content for element in message.elements if element.kind == TEXT]
        return any(pattern.search(value) for pattern in self.blocking_patterns for value in texts)


def _compile_patterns(source_name: str, raw_patterns: Iterable[str]) -> tuple[re.Pattern, ...]:
    compiled: List[re.Pattern] = []
    for raw in raw_patterns:
        try:
            compiled.append(re.compile(raw))
        except re.error:
            LOGGER.warning("Ignoring invalid blocking pattern %r on %s", raw, source_name)
    return tuple(compiled)


def resolve_bindings(config: RelayConfig) -> List[RelayBinding]:
    """Expand rules into bindings, dropping every rule that cannot forward.

    A rule is skipped when its source is unknown, or when no target is left
    after removing unknown and disabled ones. Resolution never raises.
    """

    bindings: List[RelayBinding] = []
    for rule in config.rules:
        source = config.sources.get(rule.source)
        if source is None:
            LOGGER.debug("Skipping rule: unknown source %s", rule.source)
            continue

        names: List[str] = []
        targets: List[TargetEndpoint] = []
        for name in rule.targets:
            target = config.targets.get(name)
            if target is None or target.disabled:
                continue
            names.append(name)
            targets.append(target)
        if not targets:
            LOGGER.debug("Skipping rule for %s: no usable targets", rule.source)
            continue

        bindings.append(
            RelayBinding(
                source_name=rule.source,
                source=source,
                target_names=tuple(names),
                targets=tuple(targets),
                blocking_patterns=_compile_patterns(rule.source, source.blocking_words),
            )
        )
    return bindings


Listener = Callable[[InboundMessage], Awaitable[object]]


class ListenerRegistry:
    """Routes inbound message events to the listeners registered per binding."""

    def __init__(self) -> None:
        self._listeners: List[tuple[RelayBinding, Listener]] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def on(self, binding: RelayBinding, listener: Listener) -> None:
        self._listeners.append((binding, listener))

    async def emit(self, message: InboundMessage) -> int:
        """Run every listener whose binding selects this message.

        Listeners run concurrently, so one rule's pacing never delays another
        rule sharing the same source. A failing listener is logged and does not
        affect the others. Returns how many listeners were invoked.
        """

        selected = [(binding, listener) for binding, listener in self._listeners if binding.listens_to(message)]
        results = await asyncio.gather(
            *(listener(message) for _, listener in selected),
            return_exceptions=True,
        )
        for (binding, _), result in zip(selected, results):
            if isinstance(result, Exception):
                LOGGER.error("Relay listener for %s failed", binding.source_name, exc_info=result)
        return len(selected)
