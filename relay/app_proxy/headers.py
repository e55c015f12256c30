"""
Header handling for both legs of the proxy.

Request side: the inbound header set is filtered by policy into the outbound
header list. Response side: the raw upstream header block is parsed into the
header lines relayed to the caller.
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from relay.app_proxy.config import ProxyConfig

MULTIPART_FORM_DATA = "multipart/form-data"

# Never relayed back to the caller; the ASGI server frames the response itself.
RESPONSE_EXCLUDED_HEADERS = {"transfer-encoding", "connection"}


class HeaderList:
    """
    Ordered list of (name, value) pairs with case-insensitive lookup.

    Names keep the casing they were added with. Duplicate names are allowed;
    ``set`` collapses them into a single entry.
    """

    def __init__(self, items: Optional[Iterable[Tuple[str, str]]] = None):
        self._items: List[Tuple[str, str]] = list(items or [])

    @classmethod
    def from_raw(cls, raw: Iterable[Tuple[bytes, bytes]]) -> "HeaderList":
        """Build from ASGI-style raw header pairs."""
        return cls(
            (name.decode("latin-1"), value.decode("latin-1")) for name, value in raw
        )

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __repr__(self) -> str:
        return f"HeaderList({self._items!r})"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        lowered = name.lower()
        for key, value in self._items:
            if key.lower() == lowered:
                return value
        return default

    def add(self, name: str, value: str) -> None:
        self._items.append((name, value))

    def set(self, name: str, value: str) -> None:
        """Replace every entry for ``name`` with a single one, in place of the first."""
        lowered = name.lower()
        result = []
        replaced = False
        for key, existing in self._items:
            if key.lower() != lowered:
                result.append((key, existing))
            elif not replaced:
                result.append((key, value))
                replaced = True
        if not replaced:
            result.append((name, value))
        self._items = result

    def remove(self, name: str) -> None:
        lowered = name.lower()
        self._items = [(k, v) for k, v in self._items if k.lower() != lowered]

    def names(self) -> List[str]:
        return [key for key, _ in self._items]

    def items(self) -> List[Tuple[str, str]]:
        return list(self._items)


def _authorization_from(inbound: HeaderList, sources: Iterable[str]) -> str:
    for name in ("authorization", *sources):
        value = inbound.get(name)
        if value is not None:
            return value
    return ""


def filter_request_headers(
    inbound: HeaderList,
    config: ProxyConfig,
    *,
    content_type: Optional[str] = None,
    client_ip: Optional[str] = None,
) -> HeaderList:
    """
    Compute the outbound header list from the inbound headers.

    Args:
        inbound: Headers as received from the caller.
        config: Proxy settings (exclusions, IP forwarding, auth fallbacks).
        content_type: Content type reported by the server outside the header
            set, injected when no Content-Type header survived filtering.
        client_ip: Remote address of the caller.

    Returns:
        The headers to send upstream. Excluded names never appear in it.
    """
    headers = HeaderList(
        (name, value) for name, value in inbound if not config.is_excluded(name)
    )

    if (
        "content-type" not in headers
        and content_type
        and not config.is_excluded("content-type")
    ):
        headers.add("Content-Type", content_type)

    # The transport writes its own multipart Content-Type with a fresh boundary
    if MULTIPART_FORM_DATA in (headers.get("content-type") or ""):
        headers.remove("content-type")

    if config.forward_ip and not config.is_excluded("x-forwarded-for"):
        headers.set("X-Forwarded-For", inbound.get("x-forwarded-for") or client_ip or "")

    # An empty Authorization is still sent when the caller had none
    if "authorization" not in headers and not config.is_excluded("authorization"):
        headers.add(
            "Authorization",
            _authorization_from(inbound, config.authorization_sources),
        )

    return headers


def parse_response_headers(header_block: str) -> List[Tuple[str, str]]:
    """
    Parse a raw upstream header block into (name, value) pairs.

    Lines without a colon (the status line, blank lines, garbage) are skipped.
    Order and repeated names are preserved; hop-by-hop framing headers are
    dropped.
    """
    pairs = []
    for line in header_block.split("\r\n"):
        if ":" not in line:
            continue
        name, value = line.split(":", 1)
        name = name.strip()
        value = value.strip()
        if name.lower() in RESPONSE_EXCLUDED_HEADERS:
            continue
        pairs.append((name, value))
    return pairs
