"""Desktop notification backend.

Shows a native notification through ``osascript`` on macOS or
``notify-send`` on Linux. When neither is available the send fails.

``timeout`` is a tri-state:
    key absent  -> platform default dismissal
    false       -> persist until the user dismisses it
    <number>    -> auto-dismiss after that many seconds

Not every platform honors every option: ``osascript`` shows subtitle and
sound only, ``notify-send`` has no sound. Options the active notifier cannot
show are listed under ``ignored_options`` in the result metadata.
"""

from __future__ import annotations

import asyncio
import shutil
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import structlog

from notice_mcp.backends.base import NotificationBackend, make_message_id
from notice_mcp.exceptions import BackendError, ConfigError

logger = structlog.get_logger(__name__)

DEFAULT_SOUND = "Glass"

TIMEOUT_DEFAULT = "default"
TIMEOUT_PERSIST = "persist"
TIMEOUT_AUTO_DISMISS = "auto-dismiss"

AVAILABLE_SOUNDS = (
    "Basso", "Blow", "Bottle", "Frog", "Funk", "Glass", "Hero",
    "Morse", "Ping", "Pop", "Purr", "Sosumi", "Submarine", "Tink",
)


@dataclass(frozen=True)
class DesktopNotification:
    title: str
    message: str
    subtitle: Optional[str] = None
    sound: Union[str, bool] = True
    # None: platform default, False: persist, float: seconds
    timeout: Union[None, bool, float] = None
    app_icon: Optional[str] = None
    content_image: Optional[str] = None
    wait: bool = False

    @property
    def timeout_mode(self) -> str:
        if self.timeout is None:
            return TIMEOUT_DEFAULT
        if self.timeout is False:
            return TIMEOUT_PERSIST
        return TIMEOUT_AUTO_DISMISS

    def set_options(self) -> List[str]:
        """Optional display settings given for this notification."""
        options = []
        if self.subtitle:
            options.append("subtitle")
        if self.timeout is not None:
            options.append("timeout")
        if self.app_icon:
            options.append("app_icon")
        if self.content_image:
            options.append("content_image")
        if self.wait:
            options.append("wait")
        return options


def build_notification(title: str, message: str, config: Dict[str, Any]) -> DesktopNotification:
    timeout = config.get("timeout")
    if timeout is not None and timeout is not False:
        timeout = float(timeout)

    sound = config.get("sound")
    if sound is None:
        sound = True

    return DesktopNotification(
        title=title,
        message=message,
        subtitle=config.get("subtitle") or None,
        sound=sound,
        timeout=timeout,
        app_icon=config.get("app_icon"),
        content_image=config.get("content_image"),
        wait=bool(config.get("wait", False)),
    )


class Notifier(ABC):
    """Platform integration that displays a DesktopNotification."""

    platform: str = ""
    supported_options: Tuple[str, ...] = ()

    @abstractmethod
    def command(self, notification: DesktopNotification) -> List[str]:
        pass

    def ignored_options(self, notification: DesktopNotification) -> List[str]:
        return [o for o in notification.set_options() if o not in self.supported_options]

    async def notify(self, notification: DesktopNotification) -> None:
        cmd = self.command(notification)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise BackendError(f"Could not start {cmd[0]}: {e}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise BackendError(f"{cmd[0]} exited with status {process.returncode}: {detail}")


def _applescript_quote(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


class OsascriptNotifier(Notifier):
    """macOS Notification Center via AppleScript."""

    platform = "macos"
    supported_options = ("subtitle",)

    def command(self, notification: DesktopNotification) -> List[str]:
        script = (
            f"display notification {_applescript_quote(notification.message)} "
            f"with title {_applescript_quote(notification.title)}"
        )
        if notification.subtitle:
            script += f" subtitle {_applescript_quote(notification.subtitle)}"
        if notification.sound is True:
            script += f" sound name {_applescript_quote(DEFAULT_SOUND)}"
        elif isinstance(notification.sound, str) and notification.sound:
            script += f" sound name {_applescript_quote(notification.sound)}"
        return ["osascript", "-e", script]


class NotifySendNotifier(Notifier):
    """freedesktop notifications via libnotify's notify-send."""

    platform = "linux"
    supported_options = ("subtitle", "timeout", "app_icon", "content_image", "wait")

    def command(self, notification: DesktopNotification) -> List[str]:
        cmd = ["notify-send", "--app-name", "notice-mcp"]
        if notification.timeout_mode == TIMEOUT_PERSIST:
            cmd += ["--expire-time", "0"]
        elif notification.timeout_mode == TIMEOUT_AUTO_DISMISS:
            cmd += ["--expire-time", str(int(notification.timeout * 1000))]
        if notification.app_icon:
            cmd += ["--icon", notification.app_icon]
        if notification.content_image:
            cmd += ["--hint", f"string:image-path:{notification.content_image}"]
        if notification.wait:
            cmd.append("--wait")

        body = notification.message
        if notification.subtitle:
            body = f"{notification.subtitle}\n{body}"
        cmd += [notification.title, body]
        return cmd


def detect_notifier() -> Optional[Notifier]:
    if sys.platform == "darwin" and shutil.which("osascript"):
        return OsascriptNotifier()
    if shutil.which("notify-send"):
        return NotifySendNotifier()
    return None


class DesktopBackend(NotificationBackend):
    name = "desktop"
    description = "Native desktop notifications (macOS Notification Center, Linux notify-send)"
    required_config = ()

    def __init__(self, notifier: Optional[Notifier] = None) -> None:
        self._notifier = notifier

    def validate_config(self, config: Dict[str, Any]) -> bool:
        sound = config.get("sound")
        if sound is not None and not isinstance(sound, (str, bool)):
            raise ConfigError("sound must be a sound name or a boolean")

        timeout = config.get("timeout")
        if timeout is not None and timeout is not False:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ConfigError("timeout must be a positive number of seconds or false")

        for key in ("subtitle", "app_icon", "content_image"):
            value = config.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{key} must be a string")

        if "wait" in config and not isinstance(config["wait"], bool):
            raise ConfigError("wait must be a boolean")
        return True

    def describe(self) -> Dict[str, Any]:
        description = super().describe()
        description["sounds"] = list(AVAILABLE_SOUNDS)
        return description

    async def send(self, title: str, message: str, config: Dict[str, Any]) -> Dict[str, Any]:
        notifier = self._notifier or detect_notifier()
        if notifier is None:
            raise BackendError(
                "Desktop notifications are not available: neither osascript nor notify-send was found"
            )

        notification = build_notification(title, message, config)
        ignored = notifier.ignored_options(notification)
        if ignored:
            logger.info("desktop_options_ignored", platform=notifier.platform, options=ignored)
        await notifier.notify(notification)

        logger.info(
            "desktop_notification_shown",
            platform=notifier.platform,
            timeout_mode=notification.timeout_mode,
        )
        return {
            "message_id": make_message_id("desktop"),
            "metadata": {
                "platform": notifier.platform,
                "subtitle": notification.subtitle,
                "sound": notification.sound,
                "timeout": notification.timeout,
                "timeout_mode": notification.timeout_mode,
                "ignored_options": ignored,
            },
        }
