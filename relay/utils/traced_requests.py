import logging
from contextlib import contextmanager
from typing import Dict, Optional

from opentelemetry.trace import Tracer

logger = logging.getLogger("uvicorn.error")


@contextmanager
def traced_proxy_request(
    tracer: Tracer,
    method: str,
    target_url: str,
    extra_attrs: Optional[Dict] = None,
):
    """Context manager to create a proxy span, set common attributes, and log a start message."""
    with tracer.start_as_current_span("proxy_request") as span:
        span.set_attribute("proxy.method", method)
        span.set_attribute("proxy.target_url", target_url)
        if extra_attrs:
            for k, v in extra_attrs.items():
                span.set_attribute(k, v)
        logger.debug(f"[Proxy] {method} -> {target_url}")
        yield span
