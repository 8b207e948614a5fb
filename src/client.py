"""Telegram client factory for crossrelay.

Every configured Telegram instance gets its own session file, so several
bots (or a bot and a user account) can relay side by side.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from telethon import TelegramClient

from core.config import InstanceConfig


def build_client(session_name: str) -> TelegramClient:
    """Create a Telethon client from environment variables.

    API_ID/API_HASH are read via python-dotenv to keep secrets out of the
    repo and out of config.json.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")

    # Fail fast on missing credentials to avoid an ambiguous login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client %s", session_name)

    return TelegramClient(session_name, int(api_id), api_hash)


def bot_token_for(instance: InstanceConfig) -> Optional[str]:
    """Return the bot token for an instance, or None for user sessions."""

    if not instance.bot_token_env:
        return None
    load_dotenv()
    token = os.getenv(instance.bot_token_env)
    if not token:
        raise RuntimeError(f"Missing {instance.bot_token_env} in environment")
    return token
