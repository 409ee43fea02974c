"""Unit tests for DesktopBackend"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from notice_mcp.backends.desktop import (
    TIMEOUT_AUTO_DISMISS,
    TIMEOUT_DEFAULT,
    TIMEOUT_PERSIST,
    DesktopBackend,
    DesktopNotification,
    Notifier,
    NotifySendNotifier,
    OsascriptNotifier,
    build_notification,
)
from notice_mcp.exceptions import BackendError, ConfigError


class RecordingNotifier(Notifier):
    platform = "test"

    def __init__(self):
        self.shown = []

    def command(self, notification):
        return ["true"]

    async def notify(self, notification):
        self.shown.append(notification)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def desktop_backend(notifier):
    return DesktopBackend(notifier=notifier)


class TestTimeoutTriState:
    def test_absent_timeout_is_platform_default(self):
        notification = build_notification("t", "m", {})
        assert notification.timeout is None
        assert notification.timeout_mode == TIMEOUT_DEFAULT

    def test_false_timeout_persists(self):
        notification = build_notification("t", "m", {"timeout": False})
        assert notification.timeout is False
        assert notification.timeout_mode == TIMEOUT_PERSIST

    def test_numeric_timeout_auto_dismisses(self):
        notification = build_notification("t", "m", {"timeout": 5})
        assert notification.timeout == 5.0
        assert notification.timeout_mode == TIMEOUT_AUTO_DISMISS

    def test_zero_is_not_confused_with_false(self):
        # 0 == False in Python; only the boolean means "persist"
        notification = build_notification("t", "m", {"timeout": 0})
        assert notification.timeout_mode == TIMEOUT_AUTO_DISMISS


def test_sound_defaults_to_true():
    assert build_notification("t", "m", {}).sound is True
    assert build_notification("t", "m", {"sound": False}).sound is False
    assert build_notification("t", "m", {"sound": "Ping"}).sound == "Ping"


@pytest.mark.parametrize("config", [
    {"timeout": -1},
    {"timeout": 0},
    {"timeout": True},
    {"timeout": "5"},
    {"sound": 3},
    {"subtitle": 1},
    {"wait": "yes"},
])
def test_validate_config_rejects(desktop_backend, config):
    with pytest.raises(ConfigError):
        desktop_backend.validate_config(config)


def test_validate_config_accepts_empty(desktop_backend):
    assert desktop_backend.validate_config({}) is True
    assert desktop_backend.validate_config({"timeout": False, "sound": "Glass"}) is True


@pytest.mark.asyncio
async def test_send_reports_timeout_mode(desktop_backend, notifier):
    result = await desktop_backend.send("Done", "Build ok", {"timeout": False, "subtitle": "CI"})

    assert notifier.shown[0].title == "Done"
    assert notifier.shown[0].subtitle == "CI"
    assert result["message_id"].startswith("desktop_")
    assert result["metadata"]["timeout_mode"] == TIMEOUT_PERSIST
    assert result["metadata"]["timeout"] is False
    assert result["metadata"]["platform"] == "test"


@pytest.mark.asyncio
async def test_missing_platform_integration_fails():
    backend = DesktopBackend()
    with patch("notice_mcp.backends.desktop.detect_notifier", return_value=None):
        with pytest.raises(BackendError, match="not available"):
            await backend.send("t", "m", {})


class TestNotifySendCommand:
    def test_default_timeout_passes_no_expire_time(self):
        cmd = NotifySendNotifier().command(DesktopNotification(title="t", message="m"))
        assert "--expire-time" not in cmd
        assert cmd[-2:] == ["t", "m"]

    def test_persist(self):
        cmd = NotifySendNotifier().command(DesktopNotification(title="t", message="m", timeout=False))
        assert cmd[cmd.index("--expire-time") + 1] == "0"

    def test_auto_dismiss_in_milliseconds(self):
        cmd = NotifySendNotifier().command(DesktopNotification(title="t", message="m", timeout=2.5))
        assert cmd[cmd.index("--expire-time") + 1] == "2500"

    def test_subtitle_prefixes_body(self):
        cmd = NotifySendNotifier().command(
            DesktopNotification(title="t", message="m", subtitle="sub", app_icon="/i.png")
        )
        assert cmd[-1] == "sub\nm"
        assert cmd[cmd.index("--icon") + 1] == "/i.png"


class TestOsascriptCommand:
    def test_escapes_quotes_and_uses_default_sound(self):
        cmd = OsascriptNotifier().command(DesktopNotification(title='Say "hi"', message="a\\b"))
        script = cmd[2]
        assert cmd[:2] == ["osascript", "-e"]
        assert 'with title "Say \\"hi\\""' in script
        assert 'display notification "a\\\\b"' in script
        assert 'sound name "Glass"' in script

    def test_no_sound(self):
        cmd = OsascriptNotifier().command(DesktopNotification(title="t", message="m", sound=False))
        assert "sound name" not in cmd[2]


@pytest.mark.asyncio
async def test_notifier_nonzero_exit_raises():
    process = MagicMock()
    process.returncode = 1
    process.communicate = AsyncMock(return_value=(b"", b"no display"))

    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
        with pytest.raises(BackendError, match="no display"):
            await NotifySendNotifier().notify(DesktopNotification(title="t", message="m"))


@pytest.mark.asyncio
async def test_notifier_missing_binary_raises():
    with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("notify-send"))):
        with pytest.raises(BackendError, match="Could not start notify-send"):
            await NotifySendNotifier().notify(DesktopNotification(title="t", message="m"))


def test_notify_send_passes_content_image_hint():
    cmd = NotifySendNotifier().command(
        DesktopNotification(title="t", message="m", content_image="/tmp/chart.png")
    )
    assert cmd[cmd.index("--hint") + 1] == "string:image-path:/tmp/chart.png"


def test_osascript_reports_options_it_cannot_show():
    notification = build_notification(
        "t", "m", {"subtitle": "s", "timeout": 5, "wait": True, "content_image": "/i.png"}
    )
    assert OsascriptNotifier().ignored_options(notification) == ["timeout", "content_image", "wait"]
    assert NotifySendNotifier().ignored_options(notification) == []


@pytest.mark.asyncio
async def test_send_lists_ignored_options_in_metadata():
    class SubtitleOnlyNotifier(RecordingNotifier):
        supported_options = ("subtitle",)

    backend = DesktopBackend(notifier=SubtitleOnlyNotifier())
    result = await backend.send("t", "m", {"subtitle": "s", "timeout": False})

    assert result["metadata"]["ignored_options"] == ["timeout"]
