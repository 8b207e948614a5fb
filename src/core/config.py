"""Core configuration dataclasses.

We keep config file loading outside the core, but these dataclasses define
the shape the core expects so adapters and app layers can build safely.
Parsing is lenient: a malformed entry is dropped, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Optional

LOGGER = logging.getLogger(__name__)

WILDCARD = "*"
DEFAULT_DELAY_MS = 200
DEFAULT_MODERATION_URL = "http://127.0.0.1:41356"
DEFAULT_AVATAR = "https://discord.com/assets/5d6a5e9d7d77ac29116e.png"


@dataclass(frozen=True)
class SourceEndpoint:
    """Where messages are picked up. Selectors may be the `*` wildcard."""

    platform: str
    self_id: str
    channel_id: str
    name: Optional[str] = None
    blocking_words: tuple[str, ...] = ()
    only_quote: bool = False


@dataclass(frozen=True)
class TargetEndpoint:
    """Where messages are delivered. Never wildcarded."""

    platform: str
    self_id: str
    channel_id: str
    disabled: bool = False
    simulate_original: bool = False

    @property
    def instance_key(self) -> str:
        return f"{self.platform}:{self.self_id}"


@dataclass(frozen=True)
class ForwardingRule:
    source: str
    targets: tuple[str, ...]


@dataclass(frozen=True)
class ModerationConfig:
    enabled: bool = True
    url: str = DEFAULT_MODERATION_URL


@dataclass(frozen=True)
class StorageConfig:
    backend: str = "sqlite"
    path: str = "crossrelay.db"


@dataclass(frozen=True)
class InstanceConfig:
    """One connector login. Telegram is the only bundled platform."""

    platform: str
    session: str
    bot_token_env: Optional[str] = None


@dataclass(frozen=True)
class RelayConfig:
    sources: dict[str, SourceEndpoint] = field(default_factory=dict)
    targets: dict[str, TargetEndpoint] = field(default_factory=dict)
    rules: tuple[ForwardingRule, ...] = ()
    delay_ms: dict[str, int] = field(default_factory=dict)
    moderation: ModerationConfig = ModerationConfig()
    default_avatar: str = DEFAULT_AVATAR
    storage: StorageConfig = StorageConfig()
    instances: tuple[InstanceConfig, ...] = ()

    def delay_for(self, platform: str) -> float:
        """Pacing delay in seconds before sending to a platform."""

        return self.delay_ms.get(platform, DEFAULT_DELAY_MS) / 1000


def _as_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _parse_source(entry: dict) -> Optional[SourceEndpoint]:
    platform = _as_str(entry.get("platform"))
    self_id = _as_str(entry.get("self_id"))
    channel_id = _as_str(entry.get("channel_id"))
    # Only a literal "*" widens a selector; a missing one drops the source.
    if not platform or not self_id or not channel_id:
        return None
    words = entry.get("blocking_words") or []
    if not isinstance(words, list):
        words = []
    return SourceEndpoint(
        platform=platform,
        self_id=self_id,
        channel_id=channel_id,
        name=_as_str(entry.get("name")),
        blocking_words=tuple(str(word) for word in words),
        only_quote=bool(entry.get("only_quote", False)),
    )


def _parse_target(entry: dict) -> Optional[TargetEndpoint]:
    platform = _as_str(entry.get("platform"))
    self_id = _as_str(entry.get("self_id"))
    channel_id = _as_str(entry.get("channel_id"))
    if not platform or not self_id or not channel_id:
        return None
    # A target must name exactly one bot and one channel.
    if WILDCARD in (self_id, channel_id):
        return None
    return TargetEndpoint(
        platform=platform,
        self_id=self_id,
        channel_id=channel_id,
        disabled=bool(entry.get("disabled", False)),
        simulate_original=bool(entry.get("simulate_original", False)),
    )


def _parse_rules(raw_rules: Any) -> tuple[ForwardingRule, ...]:
    rules: list[ForwardingRule] = []
    if not isinstance(raw_rules, list):
        return ()
    for entry in raw_rules:
        if not isinstance(entry, dict):
            continue
        source = _as_str(entry.get("source"))
        targets = entry.get("targets") or []
        if not source or not isinstance(targets, list):
            LOGGER.debug("Ignoring malformed rule %r", entry)
            continue
        rules.append(ForwardingRule(source=source, targets=tuple(str(t) for t in targets)))
    return tuple(rules)


def _parse_delay(raw_delay: Any) -> dict[str, int]:
    delays: dict[str, int] = {}
    if not isinstance(raw_delay, dict):
        return delays
    for platform, value in raw_delay.items():
        try:
            delays[str(platform)] = max(0, int(value))
        except (TypeError, ValueError):
            LOGGER.debug("Ignoring delay %r for %s", value, platform)
    return delays


def _parse_instances(raw_instances: Any) -> tuple[InstanceConfig, ...]:
    instances: list[InstanceConfig] = []
    if not isinstance(raw_instances, list):
        return ()
    for entry in raw_instances:
        if not isinstance(entry, dict):
            continue
        platform = _as_str(entry.get("platform"))
        session = _as_str(entry.get("session"))
        if not platform or not session:
            continue
        instances.append(
            InstanceConfig(
                platform=platform,
                session=session,
                bot_token_env=_as_str(entry.get("bot_token_env")),
            )
        )
    return tuple(instances)


def parse_relay_config(raw: Any) -> RelayConfig:
    """Build a RelayConfig from the JSON document.

    Every endpoint is parsed as both a potential source and a potential
    target, since the same named channel is often used in both directions.
    """

    if not isinstance(raw, dict):
        LOGGER.warning("Relay config root is not an object, ignoring it")
        raw = {}

    sources: dict[str, SourceEndpoint] = {}
    targets: dict[str, TargetEndpoint] = {}
    endpoints = raw.get("endpoints", {})
    if not isinstance(endpoints, dict):
        endpoints = {}
    for name, entry in endpoints.items():
        if not isinstance(entry, dict):
            LOGGER.debug("Ignoring malformed endpoint %s", name)
            continue
        source = _parse_source(entry)
        if source is None:
            LOGGER.debug("Endpoint %s cannot be a source: missing platform or selectors", name)
        else:
            sources[name] = source
        target = _parse_target(entry)
        if target is not None:
            targets[name] = target

    moderation_raw = raw.get("moderation", {})
    if not isinstance(moderation_raw, dict):
        moderation_raw = {}
    storage_raw = raw.get("storage", {})
    if not isinstance(storage_raw, dict):
        storage_raw = {}

    return RelayConfig(
        sources=sources,
        targets=targets,
        rules=_parse_rules(raw.get("rules", [])),
        delay_ms=_parse_delay(raw.get("delay", {})),
        moderation=ModerationConfig(
            enabled=bool(moderation_raw.get("enabled", True)),
            url=_as_str(moderation_raw.get("url")) or DEFAULT_MODERATION_URL,
        ),
        default_avatar=_as_str(raw.get("default_avatar")) or DEFAULT_AVATAR,
        storage=StorageConfig(
            backend=_as_str(storage_raw.get("backend")) or "sqlite",
            path=_as_str(storage_raw.get("path")) or "crossrelay.db",
        ),
        instances=_parse_instances(raw.get("instances", [])),
    )
