import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from opentelemetry import trace

from relay.app_proxy.config import ProxyConfig, get_proxy_config
from relay.app_proxy.headers import (
    HeaderList,
    filter_request_headers,
    parse_response_headers,
)
from relay.app_proxy.payload import inbound_payload
from relay.app_proxy.upstream import (
    UpstreamResponse,
    UpstreamTransportError,
    send_upstream,
)
from relay.utils import mask_authorization
from relay.utils.diagnostics import record_transport_error
from relay.utils.exception_logging import format_transport_error, log_transport_failure
from relay.utils.traced_requests import traced_proxy_request
from relay.vars import PROXY_MOUNT_PATH

# Initialize components
router = APIRouter(prefix=PROXY_MOUNT_PATH)
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]


def get_upstream_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for the outbound client; None means httpx's default."""
    return None


def request_uri(request: Request) -> str:
    """The request URI as sent by the caller: undecoded path plus query string."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        # Some ASGI test servers leave the query on raw_path
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


def resolve_target_url(target_url: str, uri: str, strip_segments: int) -> str:
    """
    Append the inbound URI, minus its first ``strip_segments`` segments, to the base URL.

    The leading empty segment before the first "/" counts. Nothing is encoded,
    normalized or validated; a URI shorter than the prefix gives the bare base.
    """
    remainder = "/".join(uri.split("/")[strip_segments:])
    return target_url + remainder


def relay_response(upstream: UpstreamResponse) -> Response:
    """
    Reproduce the upstream response for the caller: status, header lines, body.

    Only the upstream's own header lines are emitted. Without an upstream
    Content-Length the ASGI server frames the body itself.
    """
    response = Response(content=upstream.body, status_code=upstream.status_code)
    # Repeated names stay separate header lines
    response.raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in parse_response_headers(upstream.header_block)
    ]
    return response


def _transport_failure_response(error: UpstreamTransportError) -> JSONResponse:
    message = format_transport_error(error.cause)
    log_transport_failure(logger, error.method, error.url, error.cause)
    record_transport_error(error.method, error.url, message)
    return JSONResponse(
        status_code=502,
        content={"error": f"Failed to proxy request: {message}"},
    )


async def forward_to_target(
    request: Request,
    config: ProxyConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Response:
    """
    Forward the inbound request to the configured upstream and relay its response.

    - URL: base URL + inbound URI minus the mount prefix segments
    - Headers: inbound headers filtered by policy
    - Body: re-encoded per content type; never read for body-less methods
    - Transport failure: 502 with a JSON error body, no retry
    """
    if not config.target_url:
        return JSONResponse(
            status_code=503,
            content={"error": "TARGET_URL is not configured. Proxy is unavailable."},
        )

    method = request.method.upper()
    target_url = resolve_target_url(
        config.target_url, request_uri(request), config.strip_segments
    )

    with traced_proxy_request(tracer, method, target_url) as span:
        headers = filter_request_headers(
            HeaderList.from_raw(request.headers.raw),
            config,
            content_type=request.headers.get("content-type"),
            client_ip=request.client.host if request.client else None,
        )
        logger.debug(
            f"[Proxy] Forwarding headers {headers.names()}, "
            f"Authorization: {mask_authorization(headers.get('authorization'))}"
        )

        async with inbound_payload(request, config) as payload:
            span.set_attribute("proxy.payload", type(payload).__name__)
            try:
                upstream = await send_upstream(
                    method, target_url, headers, payload, config, transport=transport
                )
            except UpstreamTransportError as e:
                span.set_attribute("proxy.error", format_transport_error(e.cause))
                return _transport_failure_response(e)

        span.set_attribute("proxy.status_code", upstream.status_code)
        return relay_response(upstream)


# Register catch-all route for proxying
@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy_all(
    request: Request,
    path: str,
    config: ProxyConfig = Depends(get_proxy_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_upstream_transport),
):
    """Catch-all route that proxies all requests to the target server."""
    return await forward_to_target(request, config, transport)
