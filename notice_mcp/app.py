"""Application wiring: settings -> config -> registry -> dispatcher -> server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from notice_mcp import __version__
from notice_mcp.backends.registry import BackendRegistry, build_default_registry
from notice_mcp.config import ConfigProvider
from notice_mcp.dispatch import NotificationDispatcher
from notice_mcp.logging_config import configure_logging
from notice_mcp.mcp.server import NoticeMCPServer
from notice_mcp.mcp.transport import StdioTransport
from notice_mcp.settings import Settings

logger = structlog.get_logger(__name__)


@dataclass
class Application:
    config: ConfigProvider
    registry: BackendRegistry
    dispatcher: NotificationDispatcher
    server: NoticeMCPServer


def build_application(
    settings: Optional[Settings] = None,
    config: Optional[ConfigProvider] = None,
    registry: Optional[BackendRegistry] = None,
) -> Application:
    settings = settings or Settings()
    config = config or ConfigProvider.from_file(settings.CONFIG_PATH)
    registry = registry or build_default_registry()
    dispatcher = NotificationDispatcher(registry, config)
    server = NoticeMCPServer(dispatcher, registry, config)
    return Application(config=config, registry=registry, dispatcher=dispatcher, server=server)


def setup_logging(settings: Settings) -> None:
    configure_logging(
        level=settings.LOG_LEVEL,
        json_logs=settings.LOG_JSON,
        log_file=settings.LOG_FILE,
    )


async def run_stdio_server(settings: Optional[Settings] = None) -> None:
    settings = settings or Settings()
    app = build_application(settings)
    logger.info(
        "notice_mcp_starting",
        version=__version__,
        config_path=settings.CONFIG_PATH,
        backends=app.registry.names(),
        enabled=app.config.enabled_backends(app.registry.names()),
    )
    await StdioTransport(app.server).run()
