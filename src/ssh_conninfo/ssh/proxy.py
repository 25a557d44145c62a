"""Proxy type resolution and proxy configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .credentials import Credential, validate_port

logger = logging.getLogger(__name__)


class ProxyKind(str, Enum):
    """Proxy transports a session can tunnel through."""

    HTTP = "HTTP"
    SOCKS4 = "Socks4"
    SOCKS5 = "Socks5"


DEFAULT_PROXY_KIND = ProxyKind.HTTP

_LABELS = {kind.value: kind for kind in ProxyKind}


def resolve_proxy_kind(label: Optional[str]) -> ProxyKind:
    """Map a proxy type label to a :class:`ProxyKind`.

    Matching is exact and case-sensitive. Any other label, including an empty
    one, falls back to HTTP. Existing callers rely on that fallback, so an
    unknown label only produces a warning.
    """
    kind = _LABELS.get(label or "")
    if kind is None:
        logger.warning(
            "Unrecognized proxy type %r, using %s", label, DEFAULT_PROXY_KIND.value
        )
        return DEFAULT_PROXY_KIND
    return kind


@dataclass(frozen=True)
class ProxySettings:
    """Proxy options as the caller supplies them."""

    host: str = ""
    proxy_type: str = DEFAULT_PROXY_KIND.value
    port: int = 8080
    credential: Optional[Credential] = None


@dataclass(frozen=True)
class ProxyConfig:
    """Resolved proxy routing carried by a connection descriptor."""

    kind: ProxyKind
    host: str
    port: int
    credential: Optional[Credential] = None

    def __post_init__(self) -> None:
        validate_port(self.port, "proxy port")

    @property
    def username(self) -> Optional[str]:
        return self.credential.username if self.credential else None


def resolve_proxy(settings: Optional[ProxySettings]) -> Optional[ProxyConfig]:
    """Return the proxy config for ``settings``, or None without a proxy host."""
    if settings is None or not settings.host:
        return None
    return ProxyConfig(
        kind=resolve_proxy_kind(settings.proxy_type),
        host=settings.host,
        port=settings.port,
        credential=settings.credential,
    )
