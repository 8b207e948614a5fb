"""Static configuration for crossrelay.

All user-editable settings (instances, endpoints, rules, delays) live in a
single JSON file so relays can be rewired without touching Python. The file
is read once at import; changes need a restart.
"""

import json
import os

from core.config import parse_relay_config

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("CROSSRELAY_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Parsed relay configuration; bad entries are already dropped here.
RELAY = parse_relay_config(_CONFIG)

# Relative database paths are anchored at the project root.
DB_PATH = RELAY.storage.path
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {}) if isinstance(_CONFIG, dict) else {}
