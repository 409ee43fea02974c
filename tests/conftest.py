"""Pytest configuration for notice-mcp tests."""

import asyncio

import pytest

from notice_mcp.backends.base import NotificationBackend
from notice_mcp.backends.registry import BackendRegistry
from notice_mcp.config import ConfigProvider
from notice_mcp.dispatch import NotificationDispatcher
from notice_mcp.exceptions import BackendError


@pytest.fixture(autouse=True)
def configure_structlog():
    """Configure structlog for testing."""
    import structlog

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


class FakeBackend(NotificationBackend):
    """Records every send; optionally fails or sleeps first."""

    description = "fake backend for tests"

    def __init__(self, name, fail=None, delay=0.0, partial=None, required=()):
        self.name = name
        self.fail = fail
        self.delay = delay
        self.partial = partial
        self.required_config = tuple(required)
        self.calls = []

    async def send(self, title, message, config):
        self.calls.append({"title": title, "message": message, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise BackendError(self.fail)
        if isinstance(self.partial, dict):
            return dict(self.partial)
        if self.partial is not None:
            return self.partial
        return {"message_id": f"{self.name}_1", "metadata": {"seen": config}}


@pytest.fixture
def fake_backend_factory():
    return FakeBackend


@pytest.fixture
def fake_backends():
    return {
        "alpha": FakeBackend("alpha"),
        "beta": FakeBackend("beta"),
        "gamma": FakeBackend("gamma"),
    }


@pytest.fixture
def fake_registry(fake_backends):
    return BackendRegistry(fake_backends.values()).freeze()


@pytest.fixture
def fake_config():
    return ConfigProvider({
        "server": {"name": "notice-mcp", "version": "test"},
        "backends": {
            "alpha": {"enabled": True, "channel": "ops", "nested": {"a": 1, "b": 2}},
            "beta": {"enabled": True},
            "gamma": {"enabled": False, "channel": "quiet"},
        },
    })


@pytest.fixture
def dispatcher(fake_registry, fake_config):
    return NotificationDispatcher(fake_registry, fake_config)
