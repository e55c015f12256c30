import logging

import httpx
import pytest

from relay.app_proxy.config import ProxyConfig
from relay.utils import diagnostics

TEST_TARGET_URL = "https://api.example.com/"


@pytest.fixture
def proxy_config():
    """Config with the default exclusions, mounted three segments deep."""
    return ProxyConfig(
        target_url=TEST_TARGET_URL,
        timeout=5,
        forward_ip=True,
        user_agent="relay-tests/1.0",
        strip_segments=3,
        authorization_sources=("x-original-authorization",),
    )


@pytest.fixture
def upstream_response():
    """Build an httpx response whose body is still an unread raw stream."""

    def _create_response(status_code=200, headers=None, content=b""):
        return httpx.Response(
            status_code,
            headers=headers or [],
            stream=httpx.ByteStream(content),
        )

    return _create_response


@pytest.fixture(autouse=True)
def diagnostics_log(tmp_path, monkeypatch):
    """Send the diagnostics sink to a temp file for the duration of a test."""
    log_file = tmp_path / "proxy_log.log"
    monkeypatch.setattr(diagnostics, "PROXY_LOG_FILE", str(log_file))
    monkeypatch.setattr(diagnostics, "_file_handler", None)
    yield log_file
    handler = diagnostics._file_handler
    if handler is not None:
        handler.close()
        logging.getLogger(diagnostics.DIAGNOSTICS_LOGGER_NAME).removeHandler(handler)
