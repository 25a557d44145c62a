"""SSH connection descriptors and the session that consumes them."""

from .builders import build_from_bundle, build_key_connection, build_password_connection
from .credentials import Credential, Target, UserPasswordAndKeyCredential
from .descriptor import (
    AuthKind,
    ConnectionDescriptor,
    KeyboardInteractiveAuth,
    PasswordAuth,
    PrivateKeyAuth,
)
from .errors import (
    ConnectionConfigError,
    InvalidCredentialError,
    InvalidTargetError,
    KeyParseError,
    NotFoundError,
)
from .keys import KeyMaterial, KeySource, load_key_material, load_private_key, parse_private_key
from .proxy import ProxyConfig, ProxyKind, ProxySettings, resolve_proxy, resolve_proxy_kind
from .session import SSHAuthenticationError, SSHCommandResult, SSHConnectionError, SSHSession

__all__ = [
    "AuthKind",
    "ConnectionConfigError",
    "ConnectionDescriptor",
    "Credential",
    "InvalidCredentialError",
    "InvalidTargetError",
    "KeyMaterial",
    "KeyParseError",
    "KeySource",
    "KeyboardInteractiveAuth",
    "NotFoundError",
    "PasswordAuth",
    "PrivateKeyAuth",
    "ProxyConfig",
    "ProxyKind",
    "ProxySettings",
    "SSHAuthenticationError",
    "SSHCommandResult",
    "SSHConnectionError",
    "SSHSession",
    "Target",
    "UserPasswordAndKeyCredential",
    "build_from_bundle",
    "build_key_connection",
    "build_password_connection",
    "load_key_material",
    "load_private_key",
    "parse_private_key",
    "resolve_proxy",
    "resolve_proxy_kind",
]
