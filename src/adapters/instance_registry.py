"""Registry of live connector instances.

Connectors register themselves once logged in; the relay resolves targets
through this registry at send time so late logins are picked up.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.models import instance_key
from core.ports import ConnectorPort

LOGGER = logging.getLogger(__name__)


class InstanceRegistry:
    """Satisfies the InstanceLookupPort contract."""

    def __init__(self) -> None:
        self._instances: dict[str, ConnectorPort] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._instances

    def register(self, connector: ConnectorPort) -> None:
        key = instance_key(connector.platform, connector.self_id)
        if key in self._instances:
            LOGGER.warning("Replacing connector for %s", key)
        self._instances[key] = connector
        LOGGER.info("Registered bot instance %s", key)

    def unregister(self, connector: ConnectorPort) -> None:
        self._instances.pop(instance_key(connector.platform, connector.self_id), None)

    def resolve_instance(self, platform: str, self_id: str) -> Optional[ConnectorPort]:
        return self._instances.get(instance_key(platform, self_id))

    def all(self) -> list[ConnectorPort]:
        return list(self._instances.values())
