"""Notification backend interface"""

from __future__ import annotations

import random
import string
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple

from notice_mcp.exceptions import ConfigError


def make_message_id(prefix: str) -> str:
    """``{prefix}_{epoch_ms}_{9 random chars}``"""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


class NotificationBackend(ABC):
    """Interface for delivery channels (desktop, Feishu, webhook, ...).

    ``send`` returns a partial outcome: ``message_id``, ``metadata`` and any
    channel-specific extras. ``success``, ``backend`` and ``timestamp`` are
    filled in by the dispatcher. Delivery failures are raised, not returned.
    """

    name: str = ""
    description: str = ""
    required_config: Tuple[str, ...] = ()

    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Check that required keys are present.

        Raises ConfigError when structurally required configuration is missing.
        """
        missing = [key for key in self.required_config if not config.get(key)]
        if missing:
            raise ConfigError(
                f"{self.name} backend requires configuration: {', '.join(missing)}"
            )
        return True

    @abstractmethod
    async def send(self, title: str, message: str, config: Dict[str, Any]) -> Dict[str, Any]:
        """Deliver a notification and return the partial outcome."""

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "requiredConfig": list(self.required_config),
        }
