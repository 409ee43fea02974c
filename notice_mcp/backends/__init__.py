"""Delivery backends.

- DesktopBackend: native desktop notification (osascript / notify-send)
- FeishuBackend: Feishu/Lark group bot webhooks, signed when a secret is set
- WebhookBackend: generic HTTP webhook
- EmailBackend: simulated email
- SlackBackend: Slack incoming webhook
"""

from .base import NotificationBackend
from .desktop import DesktopBackend
from .email import EmailBackend
from .feishu import FeishuBackend
from .registry import BackendRegistry, build_default_registry
from .slack import SlackBackend
from .webhook import WebhookBackend

__all__ = [
    "NotificationBackend",
    "BackendRegistry",
    "build_default_registry",
    "DesktopBackend",
    "EmailBackend",
    "FeishuBackend",
    "SlackBackend",
    "WebhookBackend",
]
