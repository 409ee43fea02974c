"""Generic webhook notification backend"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

import httpx
import structlog

from notice_mcp import __version__
from notice_mcp.backends.base import NotificationBackend, make_message_id
from notice_mcp.exceptions import BackendError, ConfigError, WebhookTimeoutError

logger = structlog.get_logger(__name__)

ALLOWED_METHODS = ("POST", "PUT", "PATCH")
DEFAULT_TIMEOUT = 10.0


class WebhookBackend(NotificationBackend):
    """Sends a JSON envelope to an arbitrary HTTP endpoint.

    Config:
        url: endpoint (required, http or https)
        method: POST, PUT or PATCH (default POST)
        headers: extra headers, merged over the defaults
        timeout: seconds before the request is cancelled (default 10)
    """

    name = "webhook"
    description = "Generic HTTP webhook with a JSON {title, message, timestamp, source} body"
    required_config = ("url",)

    def validate_config(self, config: Dict[str, Any]) -> bool:
        url = config.get("url")
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise ConfigError("webhook backend requires an http(s) 'url'")
        if str(config.get("method", "POST")).upper() not in ALLOWED_METHODS:
            raise ConfigError(f"webhook method must be one of: {', '.join(ALLOWED_METHODS)}")
        headers = config.get("headers")
        if headers is not None and not isinstance(headers, dict):
            raise ConfigError("webhook headers must be a table of strings")
        timeout = config.get("timeout", DEFAULT_TIMEOUT)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigError("webhook timeout must be a positive number of seconds")
        return True

    async def send(self, title: str, message: str, config: Dict[str, Any]) -> Dict[str, Any]:
        url = config["url"]
        method = str(config.get("method", "POST")).upper()
        timeout = float(config.get("timeout", DEFAULT_TIMEOUT))

        payload = {
            "title": title,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": "notice-mcp",
        }
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"notice-mcp/{__version__}",
            **{str(k): str(v) for k, v in (config.get("headers") or {}).items()},
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await asyncio.wait_for(
                    client.request(method, url, json=payload, headers=headers),
                    timeout=timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise WebhookTimeoutError(url, timeout) from e
        except httpx.HTTPError as e:
            raise BackendError(f"Webhook request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise BackendError(f"HTTP {response.status_code}: {response.reason_phrase}")

        try:
            body: Any = response.json()
        except ValueError:
            body = response.text[:200]

        logger.info("webhook_sent", url=url, method=method, status_code=response.status_code)
        return {
            "message_id": make_message_id("webhook"),
            "metadata": {
                "url": url,
                "method": method,
                "status_code": response.status_code,
                "response": body,
            },
        }
