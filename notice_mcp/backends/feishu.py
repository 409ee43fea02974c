"""Feishu/Lark custom-bot webhook backend.

Posts an interactive card to every configured bot webhook at once. Delivery
succeeds when at least one webhook accepts the message.

Config:
    webhooks: URL, list of URLs, or a name -> URL table (``webhook`` also accepted)
    secret: signing secret of the bot (optional)
    at_all: mention everyone (optional)
    at_user_ids: list of user/open ids to mention (optional)
    timeout: per-request timeout in seconds (default 10)
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import time
from typing import Any, Dict, List, Mapping, Optional

import httpx
import structlog

from notice_mcp import __version__
from notice_mcp.backends.base import NotificationBackend, make_message_id
from notice_mcp.exceptions import BackendError, ConfigError

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


def generate_sign(timestamp: int, secret: str) -> str:
    """Feishu bot signature.

    The HMAC-SHA256 key is ``"{timestamp}\\n{secret}"`` and the signed message
    is empty; the digest is base64 encoded.
    """
    string_to_sign = f"{timestamp}\n{secret}"
    digest = hmac.new(string_to_sign.encode("utf-8"), b"", digestmod=hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def normalize_webhooks(config: Mapping[str, Any]) -> List[str]:
    """Accept a single URL, a list, or a name -> URL mapping."""
    raw = config.get("webhooks")
    if raw is None:
        raw = config.get("webhook")

    if isinstance(raw, str):
        urls = [raw]
    elif isinstance(raw, Mapping):
        urls = list(raw.values())
    elif isinstance(raw, (list, tuple)):
        urls = list(raw)
    else:
        urls = []

    urls = [url for url in urls if isinstance(url, str) and url.strip()]
    if not urls:
        raise ConfigError("feishu backend requires at least one webhook URL (webhooks)")
    return urls


def build_card_payload(title: str, message: str, config: Mapping[str, Any]) -> Dict[str, Any]:
    elements: List[Dict[str, Any]] = [
        {
            "tag": "div",
            "text": {"content": f"**{title}**\n\n{message}", "tag": "lark_md"},
        }
    ]

    if config.get("at_all"):
        elements.append({
            "tag": "div",
            "text": {"content": '<at user_id="all">所有人</at>', "tag": "lark_md"},
        })

    at_user_ids = config.get("at_user_ids") or []
    if at_user_ids:
        mentions = " ".join(f'<at user_id="{user_id}"></at>' for user_id in at_user_ids)
        elements.append({
            "tag": "div",
            "text": {"content": mentions, "tag": "lark_md"},
        })

    return {
        "msg_type": "interactive",
        "card": {
            "elements": elements,
            "header": {
                "title": {"content": title, "tag": "plain_text"},
                "template": "blue",
            },
        },
    }


def _accepted(body: Any) -> bool:
    if not isinstance(body, Mapping):
        return False
    if "code" in body:
        return body["code"] == 0
    return body.get("StatusCode") == 0


class FeishuBackend(NotificationBackend):
    """Feishu group bot via custom webhook"""

    name = "feishu"
    description = "Feishu/Lark group bot notifications via custom webhook"
    required_config = ("webhooks",)

    def validate_config(self, config: Dict[str, Any]) -> bool:
        normalize_webhooks(config)
        at_user_ids = config.get("at_user_ids")
        if at_user_ids is not None and not isinstance(at_user_ids, (list, tuple)):
            raise ConfigError("at_user_ids must be a list of user ids")
        return True

    async def send(self, title: str, message: str, config: Dict[str, Any]) -> Dict[str, Any]:
        urls = normalize_webhooks(config)
        payload = build_card_payload(title, message, config)

        secret = config.get("secret")
        if secret:
            timestamp = int(time.time())
            payload["timestamp"] = str(timestamp)
            payload["sign"] = generate_sign(timestamp, secret)

        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"notice-mcp/{__version__}",
        }
        timeout = float(config.get("timeout", DEFAULT_TIMEOUT))

        async with httpx.AsyncClient(timeout=timeout) as client:
            results = await asyncio.gather(
                *(
                    self._post(client, index, url, payload, headers)
                    for index, url in enumerate(urls)
                )
            )

        success_count = sum(1 for r in results if r["success"])
        failure_count = len(results) - success_count

        if success_count == 0:
            errors = "; ".join(f"{r['url']}: {r.get('error', 'unknown error')}" for r in results)
            raise BackendError(f"Feishu delivery failed for all webhooks: {errors}")

        logger.info(
            "feishu_sent",
            title=title,
            success_count=success_count,
            failure_count=failure_count,
        )
        return {
            "message_id": make_message_id("feishu"),
            "metadata": {
                "platform": "feishu",
                "webhookCount": len(results),
                "successCount": success_count,
                "failureCount": failure_count,
                "hasSecret": bool(secret),
                "results": results,
            },
        }

    async def _post(
        self,
        client: httpx.AsyncClient,
        index: int,
        url: str,
        payload: Dict[str, Any],
        headers: Dict[str, str],
    ) -> Dict[str, Any]:
        result: Dict[str, Any] = {"index": index, "url": url, "success": False}
        try:
            response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            result["error"] = str(e) or e.__class__.__name__
            return result

        result["statusCode"] = response.status_code
        body: Optional[Any]
        try:
            body = response.json()
        except ValueError:
            body = None
        result["response"] = body if body is not None else response.text[:200]

        if not 200 <= response.status_code < 300:
            result["error"] = f"HTTP {response.status_code}"
        elif not _accepted(body):
            msg = body.get("msg") if isinstance(body, Mapping) else None
            result["error"] = f"Feishu rejected message: {msg or 'unexpected response'}"
        else:
            result["success"] = True
        return result
