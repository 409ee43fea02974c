"""Unit tests for ConfigProvider"""

import pytest

from notice_mcp.config import DEFAULT_CONFIG, ConfigProvider


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        """
[backends.desktop]
enabled = false

[backends.feishu]
enabled = true
webhooks = ["https://open.feishu.cn/open-apis/bot/v2/hook/a"]
secret = "from-file"

[backends.webhook]
enabled = "yes"
url = "https://example.com/hook"

[environment]
"backends.feishu.secret" = "TEST_FEISHU_SECRET"
"backends.email.to" = "TEST_EMAIL_TO"
""",
        encoding="utf-8",
    )
    return path


def test_defaults_enable_only_desktop():
    provider = ConfigProvider.from_dict({}, environ={})
    names = provider.backend_names()

    assert provider.enabled_backends(names) == ["desktop"]
    assert provider.server["name"] == "notice-mcp"


def test_from_file_layers_over_defaults(config_file):
    provider = ConfigProvider.from_file(config_file, environ={})

    assert provider.is_enabled("feishu") is True
    assert provider.is_enabled("desktop") is False
    assert provider.get_config("feishu")["secret"] == "from-file"
    # defaults survive where the file is silent
    assert provider.get_config("webhook")["method"] == "POST"


def test_enabled_requires_literal_true(config_file):
    provider = ConfigProvider.from_file(config_file, environ={})
    assert provider.is_enabled("webhook") is False


def test_unknown_backend_is_disabled_and_empty():
    provider = ConfigProvider.from_dict({}, environ={})
    assert provider.is_enabled("carrier-pigeon") is False
    assert provider.get_config("carrier-pigeon") == {}


def test_get_config_strips_enabled_and_returns_copy(config_file):
    provider = ConfigProvider.from_file(config_file, environ={})

    config = provider.get_config("feishu")
    assert "enabled" not in config
    assert provider.section("feishu")["enabled"] is True

    config["webhooks"].append("https://evil.example.com")
    assert provider.get_config("feishu")["webhooks"] == [
        "https://open.feishu.cn/open-apis/bot/v2/hook/a"
    ]


def test_environment_overrides(config_file):
    provider = ConfigProvider.from_file(
        config_file,
        environ={"TEST_FEISHU_SECRET": "from-env", "TEST_EMAIL_TO": "ops@example.com"},
    )

    assert provider.get_config("feishu")["secret"] == "from-env"
    assert provider.get_config("email")["to"] == "ops@example.com"


def test_unset_environment_variable_keeps_file_value(config_file):
    provider = ConfigProvider.from_file(config_file, environ={})
    assert provider.get_config("feishu")["secret"] == "from-file"


def test_missing_file_falls_back_to_defaults(tmp_path):
    provider = ConfigProvider.from_file(tmp_path / "nope.toml", environ={})
    assert provider.enabled_backends(provider.backend_names()) == ["desktop"]


def test_invalid_toml_falls_back_to_defaults(tmp_path):
    path = tmp_path / "broken.toml"
    path.write_text("[backends.feishu\nenabled = ", encoding="utf-8")

    provider = ConfigProvider.from_file(path, environ={})
    assert provider.enabled_backends(provider.backend_names()) == ["desktop"]


def test_defaults_are_not_mutated(config_file):
    ConfigProvider.from_file(config_file, environ={"TEST_FEISHU_SECRET": "x"})
    assert "secret" not in DEFAULT_CONFIG["backends"]["feishu"]
    assert DEFAULT_CONFIG["backends"]["desktop"]["enabled"] is True


@pytest.mark.parametrize("content", [
    "backends = 1",
    'server = "notice"',
    "environment = [1, 2]",
])
def test_non_table_section_falls_back_to_defaults(tmp_path, content):
    path = tmp_path / "config.toml"
    path.write_text(content, encoding="utf-8")

    provider = ConfigProvider.from_file(path, environ={})

    assert provider.enabled_backends(provider.backend_names()) == ["desktop"]
    assert provider.server["name"] == "notice-mcp"


def test_non_string_environment_target_ignored():
    provider = ConfigProvider.from_dict(
        {"environment": {"backends.email.to": 5}}, environ={}
    )
    assert "to" not in provider.get_config("email")
