from dataclasses import dataclass, field
from functools import lru_cache
from typing import FrozenSet, Optional, Tuple

from relay import vars as env


@dataclass(frozen=True)
class ProxyConfig:
    """Process-wide proxy settings. Built once, never mutated."""

    target_url: str
    timeout: int = 30
    forward_ip: bool = True
    excluded_headers: FrozenSet[str] = field(
        default_factory=lambda: frozenset(env.DEFAULT_EXCLUDED_HEADERS)
    )
    user_agent: str = "Mozilla/5.0 (compatible; ProxyScript/1.0)"
    strip_segments: int = 3
    authorization_sources: Tuple[str, ...] = ()
    max_upload_size: Optional[int] = None

    def __post_init__(self):
        # Header names are compared lowercased everywhere.
        object.__setattr__(
            self,
            "excluded_headers",
            frozenset(name.lower() for name in self.excluded_headers),
        )

    def is_excluded(self, header_name: str) -> bool:
        return header_name.lower() in self.excluded_headers

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        return cls(
            target_url=env.TARGET_URL,
            timeout=env.PROXY_TIMEOUT,
            forward_ip=env.FORWARD_IP,
            excluded_headers=frozenset(env.EXCLUDED_HEADERS),
            user_agent=env.OUTBOUND_USER_AGENT,
            strip_segments=env.PATH_STRIP_SEGMENTS,
            authorization_sources=tuple(env.AUTHORIZATION_FALLBACK_HEADERS),
            max_upload_size=env.MAX_UPLOAD_SIZE,
        )


@lru_cache(maxsize=1)
def get_proxy_config() -> ProxyConfig:
    """FastAPI dependency returning the config loaded from the environment."""
    return ProxyConfig.from_env()
