from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import structlog

from notice_mcp.backends.base import NotificationBackend
from notice_mcp.backends.desktop import DesktopBackend
from notice_mcp.backends.email import EmailBackend
from notice_mcp.backends.feishu import FeishuBackend
from notice_mcp.backends.slack import SlackBackend
from notice_mcp.backends.webhook import WebhookBackend
from notice_mcp.exceptions import RegistryError

logger = structlog.get_logger(__name__)


class BackendRegistry:
    """Name -> backend map, populated at startup and frozen before serving."""

    def __init__(self, backends: Iterable[NotificationBackend] = ()) -> None:
        self._backends: Dict[str, NotificationBackend] = {}
        self._frozen = False
        for backend in backends:
            self.register(backend)

    def register(self, backend: NotificationBackend, name: Optional[str] = None) -> None:
        key = name or backend.name
        if self._frozen:
            raise RegistryError(f"Registry is frozen; cannot register backend: {key}")
        if not key:
            raise RegistryError("Backend name must not be empty")
        if key in self._backends:
            raise RegistryError(f"Backend already registered: {key}")
        self._backends[key] = backend
        logger.debug("backend_registered", backend=key)

    def freeze(self) -> "BackendRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Optional[NotificationBackend]:
        return self._backends.get(name)

    def names(self) -> List[str]:
        return list(self._backends.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._backends

    def __len__(self) -> int:
        return len(self._backends)


def build_default_registry() -> BackendRegistry:
    """Registry with every built-in backend, frozen."""
    return BackendRegistry([
        DesktopBackend(),
        FeishuBackend(),
        WebhookBackend(),
        EmailBackend(),
        SlackBackend(),
    ]).freeze()
