"""Email backend (simulated).

No SMTP delivery happens: the backend waits a fixed delay and returns a
fabricated message id.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import structlog

from notice_mcp.backends.base import NotificationBackend, make_message_id
from notice_mcp.exceptions import ConfigError

logger = structlog.get_logger(__name__)

SIMULATED_DELAY = 0.1


def normalize_recipients(value: Any) -> List[str]:
    if isinstance(value, str):
        recipients = [value]
    elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        recipients = list(value)
    else:
        recipients = []
    recipients = [r for r in recipients if r.strip()]
    if not recipients:
        raise ConfigError("email backend requires a recipient address or list (to)")
    return recipients


class EmailBackend(NotificationBackend):
    name = "email"
    description = "Email notifications (simulated, no SMTP delivery)"
    required_config = ("to",)

    def validate_config(self, config: Dict[str, Any]) -> bool:
        normalize_recipients(config.get("to"))
        return True

    async def send(self, title: str, message: str, config: Dict[str, Any]) -> Dict[str, Any]:
        recipients = normalize_recipients(config.get("to"))
        subject = config.get("subject") or title

        await asyncio.sleep(float(config.get("delay", SIMULATED_DELAY)))

        logger.info("email_simulated", recipients=recipients, subject=subject, body_length=len(message))
        return {
            "message_id": make_message_id("email"),
            "metadata": {
                "recipients": recipients,
                "subject": subject,
                "method": "simulated",
            },
        }
