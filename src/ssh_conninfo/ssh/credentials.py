"""SSH credential helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..utils.secret import SecretString
from .errors import InvalidCredentialError, InvalidTargetError
from .keys import KeySource

MIN_PORT = 1
MAX_PORT = 65535


def validate_port(port: int, what: str = "port") -> None:
    if isinstance(port, bool) or not isinstance(port, int):
        raise InvalidTargetError(f"{what} must be an integer, got {port!r}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise InvalidTargetError(f"{what} must be between {MIN_PORT} and {MAX_PORT}, got {port}")


@dataclass(frozen=True)
class Target:
    """Host and port of the remote SSH server."""

    host: str
    port: int = 22

    def __post_init__(self) -> None:
        if not self.host or not self.host.strip():
            raise InvalidTargetError("host must be a non-empty string")
        validate_port(self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class Credential:
    """Username plus an optional secret."""

    username: str
    secret: Optional[SecretString] = None

    @classmethod
    def from_plain(cls, username: str, password: Optional[str] = None) -> "Credential":
        return cls(username, SecretString(password) if password is not None else None)

    @property
    def has_secret(self) -> bool:
        return bool(self.secret)

    def require_username(self) -> str:
        if not self.username:
            raise InvalidCredentialError("Credential has no username")
        return self.username

    def require_secret(self) -> SecretString:
        if not self.has_secret:
            raise InvalidCredentialError(f"Credential for {self.username!r} has no password")
        return self.secret


@dataclass(frozen=True)
class UserPasswordAndKeyCredential:
    """Credential bundled with a private key given as a file or as text lines.

    Exactly one of ``key_file`` and ``key_lines`` is expected. The passphrase
    only applies to ``key_file``; keys passed as text must be unencrypted or
    be given a passphrase through the builder directly.
    """

    credential: Credential
    key_file: Optional[str] = None
    key_passphrase: Optional[SecretString] = None
    key_lines: Tuple[str, ...] = ()

    @classmethod
    def with_key_file(
        cls, credential: Credential, key_file: str, key_passphrase: Optional[SecretString] = None
    ) -> "UserPasswordAndKeyCredential":
        return cls(credential=credential, key_file=key_file, key_passphrase=key_passphrase)

    @classmethod
    def with_key_lines(cls, credential: Credential, key_lines: Sequence[str]) -> "UserPasswordAndKeyCredential":
        return cls(credential=credential, key_lines=tuple(key_lines))

    def key_source(self) -> KeySource:
        if self.key_file and self.key_lines:
            raise InvalidCredentialError("Provide either a key file or key lines, not both")
        if self.key_file:
            return KeySource.from_path(self.key_file)
        if self.key_lines:
            return KeySource.from_lines(self.key_lines)
        raise InvalidCredentialError("No private key file or key content provided")
