import importlib

import pytest


@pytest.fixture
def vars_module(monkeypatch):
    import relay.vars as vars_module

    yield vars_module
    # Reload with the original environment restored
    monkeypatch.undo()
    importlib.reload(vars_module)


def _reload(module):
    importlib.reload(module)
    return module


def test_defaults(monkeypatch, vars_module):
    for name in (
        "TARGET_URL",
        "PROXY_TIMEOUT",
        "FORWARD_IP",
        "EXCLUDED_HEADERS",
        "PROXY_MOUNT_PATH",
        "PATH_STRIP_SEGMENTS",
        "MAX_UPLOAD_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)

    module = _reload(vars_module)

    assert module.TARGET_URL == ""
    assert module.PROXY_TIMEOUT == 30
    assert module.FORWARD_IP is True
    assert module.EXCLUDED_HEADERS == module.DEFAULT_EXCLUDED_HEADERS
    assert module.PROXY_MOUNT_PATH == "/proxy/api"
    assert module.PATH_STRIP_SEGMENTS == 3
    assert module.MAX_UPLOAD_SIZE is None


def test_header_lists_parsed_and_lowercased(monkeypatch, vars_module):
    monkeypatch.setenv("EXCLUDED_HEADERS", "Host, Cookie ,,X-Secret")
    monkeypatch.setenv("AUTHORIZATION_FALLBACK_HEADERS", "X-Auth")

    module = _reload(vars_module)

    assert module.EXCLUDED_HEADERS == ("host", "cookie", "x-secret")
    assert module.AUTHORIZATION_FALLBACK_HEADERS == ("x-auth",)


def test_mount_path_trailing_slash_dropped(monkeypatch, vars_module):
    monkeypatch.setenv("PROXY_MOUNT_PATH", "/relay/")

    assert _reload(vars_module).PROXY_MOUNT_PATH == "/relay"


def test_config_from_env(monkeypatch, vars_module):
    monkeypatch.setenv("TARGET_URL", "https://api.example.com/")
    monkeypatch.setenv("PROXY_TIMEOUT", "12")
    monkeypatch.setenv("FORWARD_IP", "false")
    monkeypatch.setenv("EXCLUDED_HEADERS", "Host, Cookie")
    monkeypatch.setenv("OUTBOUND_USER_AGENT", "custom/1.0")
    monkeypatch.setenv("PATH_STRIP_SEGMENTS", "2")
    monkeypatch.setenv("AUTHORIZATION_FALLBACK_HEADERS", "X-Auth")
    monkeypatch.setenv("MAX_UPLOAD_SIZE", "1024")
    _reload(vars_module)

    from relay.app_proxy.config import ProxyConfig

    config = ProxyConfig.from_env()

    assert config.target_url == "https://api.example.com/"
    assert config.timeout == 12
    assert config.forward_ip is False
    assert config.excluded_headers == frozenset({"host", "cookie"})
    assert config.user_agent == "custom/1.0"
    assert config.strip_segments == 2
    assert config.authorization_sources == ("x-auth",)
    assert config.max_upload_size == 1024
