import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "form-relay")

TARGET_URL = os.environ.get("TARGET_URL", "")
PROXY_TIMEOUT = int(os.environ.get("PROXY_TIMEOUT", "30"))
FORWARD_IP = os.environ.get("FORWARD_IP", "true").lower() == "true"
OUTBOUND_USER_AGENT = os.environ.get(
    "OUTBOUND_USER_AGENT", "Mozilla/5.0 (compatible; ProxyScript/1.0)"
)

# Where the proxy route is mounted, and how many leading URI segments
# ("" + each mount segment) are dropped before appending to TARGET_URL.
PROXY_MOUNT_PATH = os.environ.get("PROXY_MOUNT_PATH", "/proxy/api").rstrip("/")
PATH_STRIP_SEGMENTS = int(os.environ.get("PATH_STRIP_SEGMENTS", "3"))

DEFAULT_EXCLUDED_HEADERS = (
    "host",
    "connection",
    "content-length",
    "content-md5",
    "expect",
    "max-forwards",
    "pragma",
    "range",
    "te",
    "if-match",
    "if-none-match",
    "if-modified-since",
    "if-unmodified-since",
    "if-range",
    "accept-encoding",
    "content-encoding",
    "transfer-encoding",
)


def _parse_header_names(raw: str, default=()) -> tuple:
    if not raw:
        return tuple(default)
    return tuple(h.strip().lower() for h in raw.split(",") if h.strip())


EXCLUDED_HEADERS = _parse_header_names(
    os.getenv("EXCLUDED_HEADERS", ""), DEFAULT_EXCLUDED_HEADERS
)
AUTHORIZATION_FALLBACK_HEADERS = _parse_header_names(
    os.getenv(
        "AUTHORIZATION_FALLBACK_HEADERS",
        "x-original-authorization,x-forwarded-authorization",
    )
)

MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", "0")) or None

PROXY_LOG_FILE = os.getenv("PROXY_LOG_FILE", "proxy_log.log")

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
