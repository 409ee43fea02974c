"""Notification dispatch engine.

Resolves the target backends for a request, merges stored configuration with
the caller's overrides, runs every target concurrently and aggregates the
outcomes. A backend failure only ever affects that backend's outcome.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Mapping, Union

import structlog

from notice_mcp.backends.registry import BackendRegistry
from notice_mcp.config import ConfigProvider
from notice_mcp.exceptions import BackendError, ConfigError, UnknownBackendError
from notice_mcp.merge import deep_merge
from notice_mcp.models import BackendOutcome, DispatchResult, NotificationRequest

logger = structlog.get_logger(__name__)

__all__ = ["NotificationDispatcher", "deep_merge"]


class NotificationDispatcher:
    """Fans a notification out to backends and collects their outcomes."""

    def __init__(self, registry: BackendRegistry, config: ConfigProvider) -> None:
        self._registry = registry
        self._config = config

    @property
    def registry(self) -> BackendRegistry:
        return self._registry

    @property
    def config(self) -> ConfigProvider:
        return self._config

    def resolve_targets(self, request: NotificationRequest) -> List[str]:
        """Backends to invoke for ``request``.

        An explicitly named backend is always attempted, enabled or not.
        Otherwise every registered backend enabled in configuration.
        """
        if request.backend is not None:
            if request.backend not in self._registry:
                raise UnknownBackendError(request.backend, self._registry.names())
            return [request.backend]
        return self._config.enabled_backends(self._registry.names())

    async def dispatch(
        self, request: Union[NotificationRequest, Mapping[str, Any]]
    ) -> DispatchResult:
        if not isinstance(request, NotificationRequest):
            request = NotificationRequest.from_arguments(request)

        targets = self.resolve_targets(request)
        if not targets:
            logger.warning("dispatch_no_enabled_backends", title=request.title)
            return DispatchResult(success=False, results=[])

        # Snapshot configuration before the first suspension point.
        overrides = request.config or {}
        resolved = {name: deep_merge(self._config.get_config(name), overrides) for name in targets}

        logger.info("dispatch_started", backends=targets, explicit=request.backend is not None)
        outcomes = await asyncio.gather(
            *(self._invoke(name, request, resolved[name]) for name in targets)
        )

        result = DispatchResult.from_outcomes(list(outcomes))
        logger.info(
            "dispatch_completed",
            success=result.success,
            delivered=[o.backend for o in outcomes if o.success],
            failed=[o.backend for o in outcomes if not o.success],
        )
        return result

    async def _invoke(
        self, name: str, request: NotificationRequest, config: Dict[str, Any]
    ) -> BackendOutcome:
        backend = self._registry.get(name)
        started = time.monotonic()
        try:
            if not backend.validate_config(config):
                raise ConfigError(f"Invalid configuration for backend: {name}")
            partial = await backend.send(request.title, request.message, config)
            if partial is None:
                partial = {}
            if not isinstance(partial, Mapping):
                raise BackendError(
                    f"Backend {name} returned {type(partial).__name__}, expected a mapping"
                )
            if partial.get("success") is not False:
                outcome = BackendOutcome.from_partial(name, partial)
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.warning(
                "backend_failed",
                backend=name,
                error=error,
                error_type=e.__class__.__name__,
                elapsed_ms=round((time.monotonic() - started) * 1000, 1),
            )
            return BackendOutcome.failure(name, error)

        if partial.get("success") is False:
            error = str(partial.get("error") or "Backend reported failure")
            logger.warning("backend_failed", backend=name, error=error)
            return BackendOutcome.failure(name, error)

        logger.info(
            "backend_delivered",
            backend=name,
            message_id=outcome.message_id,
            elapsed_ms=round((time.monotonic() - started) * 1000, 1),
        )
        return outcome
