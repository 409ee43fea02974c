"""Configuration provider backed by a TOML file.

The provider is built once at startup and never mutated afterwards; every
accessor hands out copies.

Example ``config.toml``::

    [backends.desktop]
    enabled = true
    sound = "Glass"

    [backends.feishu]
    enabled = true
    webhooks = ["https://open.feishu.cn/open-apis/bot/v2/hook/..."]

    [environment]
    "backends.feishu.secret" = "FEISHU_SECRET"
"""

from __future__ import annotations

import copy
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from notice_mcp import __version__
from notice_mcp.merge import deep_merge

logger = structlog.get_logger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {
        "name": "notice-mcp",
        "version": __version__,
    },
    "backends": {
        "desktop": {"enabled": True},
        "feishu": {"enabled": False},
        "webhook": {"enabled": False, "method": "POST", "timeout": 10},
        "email": {"enabled": False},
        "slack": {"enabled": False},
    },
    # dotted config path -> environment variable name
    "environment": {},
}

TABLE_SECTIONS = ("server", "backends", "environment")


class ConfigProvider:
    """Read-only view of per-backend configuration."""

    def __init__(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(data or {}))

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigProvider":
        """Layer ``data`` over the defaults and apply environment overrides.

        A top-level section that is not a table discards ``data`` entirely.
        """
        bad = [key for key in TABLE_SECTIONS if key in data and not isinstance(data[key], Mapping)]
        if bad:
            logger.warning(
                "config_file_invalid",
                error=f"expected a table for: {', '.join(bad)}",
            )
            data = {}
        merged = deep_merge(DEFAULT_CONFIG, data)
        _apply_environment(merged, os.environ if environ is None else environ)
        return cls(merged)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ConfigProvider":
        """Load ``path``; a missing or unreadable file falls back to defaults."""
        config_path = Path(path)
        if not config_path.exists():
            logger.warning("config_file_missing", path=str(config_path))
            return cls.from_dict({}, environ=environ)

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("config_file_invalid", path=str(config_path), error=str(e))
            return cls.from_dict({}, environ=environ)

        provider = cls.from_dict(data, environ=environ)
        logger.info(
            "config_loaded",
            path=str(config_path),
            enabled_backends=provider.enabled_backends(provider.backend_names()),
        )
        return provider

    @property
    def server(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data.get("server", {}))

    def backend_names(self) -> List[str]:
        return list(self._data.get("backends", {}).keys())

    def section(self, name: str) -> Dict[str, Any]:
        """Raw backend section, ``enabled`` flag included."""
        section = self._data.get("backends", {}).get(name)
        if not isinstance(section, Mapping):
            return {}
        return copy.deepcopy(dict(section))

    def is_enabled(self, name: str) -> bool:
        return self.section(name).get("enabled") is True

    def get_config(self, name: str) -> Dict[str, Any]:
        """Backend configuration without the ``enabled`` flag."""
        config = self.section(name)
        config.pop("enabled", None)
        return config

    def enabled_backends(self, names: Iterable[str]) -> List[str]:
        return [name for name in names if self.is_enabled(name)]


def _apply_environment(data: Dict[str, Any], environ: Mapping[str, str]) -> None:
    mapping = data.get("environment") or {}
    for dotted_path, env_name in mapping.items():
        if not isinstance(env_name, str):
            continue
        value = environ.get(env_name)
        if not value:
            continue
        *parents, leaf = dotted_path.split(".")
        node = data
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[leaf] = value
