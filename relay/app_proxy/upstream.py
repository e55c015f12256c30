import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import httpx

from relay.app_proxy.config import ProxyConfig
from relay.app_proxy.headers import HeaderList
from relay.app_proxy.payload import Payload

logger = logging.getLogger("uvicorn.error")


class UpstreamTransportError(Exception):
    """The upstream call failed below HTTP: connect, DNS, timeout, redirects."""

    def __init__(self, method: str, url: str, cause: Exception):
        super().__init__(str(cause))
        self.method = method
        self.url = url
        self.cause = cause


@dataclass(frozen=True)
class UpstreamResponse:
    """
    Upstream status plus one combined buffer: raw header block then body.

    ``header_size`` is the offset of the first body byte in ``raw``.
    """

    status_code: int
    raw: bytes
    header_size: int

    @property
    def header_block(self) -> str:
        return self.raw[: self.header_size].decode("latin-1")

    @property
    def body(self) -> bytes:
        return self.raw[self.header_size:]

    @classmethod
    def from_parts(
        cls,
        status_code: int,
        raw_headers: Iterable[Tuple[bytes, bytes]],
        body: bytes,
        *,
        http_version: str = "HTTP/1.1",
        reason_phrase: str = "",
    ) -> "UpstreamResponse":
        status_line = f"{http_version} {status_code} {reason_phrase}".rstrip()
        lines = [status_line.encode("latin-1")]
        lines.extend(name + b": " + value for name, value in raw_headers)
        head = b"\r\n".join(lines) + b"\r\n\r\n"
        return cls(status_code=status_code, raw=head + body, header_size=len(head))


def _client(config: ProxyConfig, transport: Optional[httpx.AsyncBaseTransport]):
    client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=True,
        headers={"User-Agent": config.user_agent},
        transport=transport,
    )
    # The body is relayed undecoded, so never ask for a compressed one
    del client.headers["accept-encoding"]
    return client


async def _exchange(
    method: str,
    url: str,
    headers: HeaderList,
    payload: Payload,
    config: ProxyConfig,
    transport: Optional[httpx.AsyncBaseTransport],
) -> Tuple[httpx.Response, bytes]:
    async with _client(config, transport) as client:
        request = client.build_request(
            method,
            url,
            headers=headers.items(),
            **payload.request_kwargs(),
        )
        response = await client.send(request, stream=True)
        try:
            body = b"".join([chunk async for chunk in response.aiter_raw()])
        finally:
            await response.aclose()
    return response, body


async def send_upstream(
    method: str,
    url: str,
    headers: HeaderList,
    payload: Payload,
    config: ProxyConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> UpstreamResponse:
    """
    Issue the single outbound request and capture the raw response.

    ``config.timeout`` bounds the whole exchange, body included; httpx's own
    timeouts only bound each connect/read/write step.

    Raises:
        UpstreamTransportError: the request never produced a complete response.
    """
    try:
        response, body = await asyncio.wait_for(
            _exchange(method, url, headers, payload, config, transport),
            timeout=config.timeout,
        )
    except asyncio.TimeoutError as e:
        cause = TimeoutError(f"Operation timed out after {config.timeout} seconds")
        raise UpstreamTransportError(method, url, cause) from e
    except (httpx.RequestError, httpx.InvalidURL) as e:
        raise UpstreamTransportError(method, url, e) from e

    logger.debug(f"Upstream {method} {url} -> {response.status_code}")
    return UpstreamResponse.from_parts(
        response.status_code,
        response.headers.raw,
        body,
        http_version=response.http_version,
        reason_phrase=response.reason_phrase,
    )
