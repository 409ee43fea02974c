"""Slack notification backend (incoming webhook)"""

from __future__ import annotations

import time
from typing import Any, Dict

import httpx
import structlog

from notice_mcp.backends.base import NotificationBackend, make_message_id
from notice_mcp.exceptions import BackendError, ConfigError

logger = structlog.get_logger(__name__)


class SlackBackend(NotificationBackend):
    name = "slack"
    description = "Slack messages via incoming webhook"
    required_config = ("webhook_url",)

    def validate_config(self, config: Dict[str, Any]) -> bool:
        webhook_url = config.get("webhook_url")
        if not isinstance(webhook_url, str) or "hooks.slack.com" not in webhook_url:
            raise ConfigError("slack backend requires a hooks.slack.com 'webhook_url'")
        return True

    def build_payload(self, title: str, message: str, config: Dict[str, Any]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "text": title,
            "attachments": [
                {
                    "color": "good",
                    "text": message,
                    "ts": int(time.time()),
                    "footer": "Notice MCP",
                }
            ],
        }
        if config.get("channel"):
            payload["channel"] = config["channel"]
        if config.get("username"):
            payload["username"] = config["username"]
        if config.get("icon_emoji"):
            payload["icon_emoji"] = config["icon_emoji"]
        return payload

    async def send(self, title: str, message: str, config: Dict[str, Any]) -> Dict[str, Any]:
        payload = self.build_payload(title, message, config)

        try:
            async with httpx.AsyncClient(timeout=float(config.get("timeout", 10.0))) as client:
                response = await client.post(config["webhook_url"], json=payload)
        except httpx.HTTPError as e:
            raise BackendError(f"Slack request failed: {e}") from e

        if response.status_code != 200:
            raise BackendError(f"Slack webhook returned {response.status_code}: {response.text}")

        logger.info("slack_sent", channel=config.get("channel"))
        return {
            "message_id": make_message_id("slack"),
            "metadata": {
                "channel": config.get("channel"),
                "username": config.get("username"),
                "response": response.text,
            },
        }
