"""
Append-only diagnostics log for upstream transport failures.

Each entry is ``[YYYY-mm-dd HH:MM:SS] cURL Error for [METHOD] url`` followed by
the error text on the next line. Writing never raises into the request path:
``logging`` reports handler failures on stderr and carries on.
"""

import logging
import threading
from typing import Optional

from relay.vars import PROXY_LOG_FILE

DIAGNOSTICS_LOGGER_NAME = "relay.diagnostics"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_lock = threading.Lock()
# The sink this module attached; other handlers on the logger are left alone
_file_handler: Optional[logging.FileHandler] = None


def get_diagnostics_logger(path: Optional[str] = None) -> logging.Logger:
    """Return the diagnostics logger, attaching its file handler on first use."""
    global _file_handler
    diagnostics = logging.getLogger(DIAGNOSTICS_LOGGER_NAME)
    with _lock:
        if _file_handler is None or _file_handler not in diagnostics.handlers:
            handler = logging.FileHandler(
                path or PROXY_LOG_FILE, mode="a", encoding="utf-8", delay=True
            )
            handler.setFormatter(
                logging.Formatter("[%(asctime)s] %(message)s", datefmt=TIMESTAMP_FORMAT)
            )
            diagnostics.addHandler(handler)
            diagnostics.setLevel(logging.INFO)
            diagnostics.propagate = False
            _file_handler = handler
    return diagnostics


def record_transport_error(method: str, url: str, error_text: str) -> None:
    get_diagnostics_logger().error(f"cURL Error for [{method}] {url}\n{error_text}")
