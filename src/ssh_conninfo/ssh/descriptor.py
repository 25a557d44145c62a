"""Authentication methods and the connection descriptor."""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import paramiko

from ..utils.secret import SecretString
from .credentials import Target
from .proxy import ProxyConfig

# paramiko's keyboard-interactive callback: (title, instructions, [(prompt, echo)]) -> answers
InteractiveHandler = Callable[[str, str, Sequence[Tuple[str, bool]]], List[str]]


class AuthKind(str, Enum):
    PASSWORD = "password"
    PRIVATE_KEY = "publickey"
    KEYBOARD_INTERACTIVE = "keyboard-interactive"


def key_fingerprint(key: paramiko.PKey) -> str:
    digest = hashlib.sha256(key.asbytes()).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class PasswordAuth:
    username: str
    secret: SecretString

    kind = AuthKind.PASSWORD

    def authenticate(self, transport: paramiko.Transport) -> List[str]:
        with self.secret.reveal() as password:
            return transport.auth_password(self.username, password)

    def to_dict(self) -> Dict[str, Any]:
        return {"method": self.kind.value, "username": self.username}


@dataclass(frozen=True)
class PrivateKeyAuth:
    username: str
    key: paramiko.PKey

    kind = AuthKind.PRIVATE_KEY

    def authenticate(self, transport: paramiko.Transport) -> List[str]:
        return transport.auth_publickey(self.username, self.key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.kind.value,
            "username": self.username,
            "key_type": self.key.get_name(),
            "fingerprint": key_fingerprint(self.key),
        }


@dataclass(frozen=True)
class KeyboardInteractiveAuth:
    username: str
    handler: InteractiveHandler

    kind = AuthKind.KEYBOARD_INTERACTIVE

    def authenticate(self, transport: paramiko.Transport) -> List[str]:
        return transport.auth_interactive(self.username, self.handler)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.kind.value,
            "username": self.username,
            "handler": type(self.handler).__name__,
        }


AuthMethod = Union[PasswordAuth, PrivateKeyAuth, KeyboardInteractiveAuth]


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Everything a session needs to connect and authenticate.

    ``auth_methods`` is tried in order by the session layer.
    """

    target: Target
    username: str
    auth_methods: Tuple[AuthMethod, ...]
    proxy: Optional[ProxyConfig] = None

    def __post_init__(self) -> None:
        if not self.auth_methods:
            raise ValueError("a connection descriptor needs at least one auth method")

    @property
    def method_kinds(self) -> Tuple[AuthKind, ...]:
        return tuple(method.kind for method in self.auth_methods)

    def to_dict(self) -> Dict[str, Any]:
        """Secret-free summary for logs and CLI output."""
        proxy = None
        if self.proxy is not None:
            proxy = {
                "kind": self.proxy.kind.value,
                "host": self.proxy.host,
                "port": self.proxy.port,
                "username": self.proxy.username,
            }
        return {
            "host": self.target.host,
            "port": self.target.port,
            "username": self.username,
            "proxy": proxy,
            "auth_methods": [method.to_dict() for method in self.auth_methods],
        }
