"""Application entry point for the crossrelay service."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.instance_registry import InstanceRegistry
from adapters.moderation_client import HttpModerator
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_connector import TelegramConnector
from client import bot_token_for, build_client
from core.config import RelayConfig
from core.correlation import CorrelationIndex
from core.ports import RelayStorePort
from core.processor import RelayProcessor
from core.rules_engine import ListenerRegistry, resolve_bindings
from get_session import authorize

NAME = "CROSSRELAY"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/crossrelay.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_store(config: RelayConfig) -> RelayStorePort:
    if config.storage.backend == "memory":
        LOGGER.warning("Using in-memory relay records; reply chains reset on restart")
        return CorrelationIndex()
    if config.storage.backend != "sqlite":
        raise RuntimeError("storage.backend must be 'sqlite' or 'memory'")
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    LOGGER.info("Relay records stored in %s (%s rows)", settings.DB_PATH, storage.count_records())
    return storage


async def _serve(config: RelayConfig) -> None:
    store = _build_store(config)
    registry = InstanceRegistry()
    moderator = HttpModerator(config.moderation.url) if config.moderation.enabled else None
    processor = RelayProcessor(config, store, registry, moderator)

    listeners = ListenerRegistry()
    for binding in resolve_bindings(config):
        listeners.on(binding, processor.listener(binding))
    LOGGER.info("%s relay rules are active", len(listeners))

    clients = []
    for instance in config.instances:
        if instance.platform != "telegram":
            LOGGER.warning("No connector for platform %s, skipping %s", instance.platform, instance.session)
            continue
        client = build_client(instance.session)
        try:
            connector = await TelegramConnector.start(client, bot_token_for(instance))
        except Exception:
            LOGGER.exception("Failed to start instance %s", instance.session)
            continue
        registry.register(connector)
        connector.listen(listeners)
        clients.append(client)

    if not clients:
        raise RuntimeError("No connector instance could be started")

    LOGGER.info("Connected %s instance(s). Relaying messages...", len(clients))
    await asyncio.gather(*(client.disconnected for client in clients))


def _run() -> None:
    _print_banner()
    _configure_logging()
    LOGGER.info("Starting crossrelay")
    asyncio.run(_serve(settings.RELAY))


def _check() -> None:
    """Print how the configured rules resolve, without connecting anywhere."""

    _print_banner()
    config = settings.RELAY
    bindings = resolve_bindings(config)
    dropped = len(config.rules) - len(bindings)
    for binding in bindings:
        source = binding.source
        selector = f"{source.platform}:{source.self_id}/{source.channel_id}"
        flags = " (quote-only)" if source.only_quote else ""
        print(f"{binding.source_name} [{selector}]{flags} -> {', '.join(binding.target_names)}")
    print(f"{len(bindings)} rule(s) resolved, {dropped} skipped.")


def _login(session: str) -> None:
    _print_banner()

    async def _run_login() -> None:
        client = build_client(session)
        await authorize(client)
        await client.disconnect()

    asyncio.run(_run_login())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="crossrelay")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start relaying messages")
    subparsers.add_parser("check", help="Show how the configured rules resolve")
    login_parser = subparsers.add_parser("login", help="Authorize a Telegram user session")
    login_parser.add_argument("session", help="Session name from the instances list")

    args = parser.parse_args(argv)
    if args.command == "check":
        _check()
        return
    if args.command == "login":
        _login(args.session)
        return
    _run()


if __name__ == "__main__":
    main()
