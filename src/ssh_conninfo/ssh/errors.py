"""Exceptions raised while turning caller input into a connection descriptor."""

from __future__ import annotations

from typing import Optional


class ConnectionConfigError(Exception):
    """Base class for descriptor construction failures."""


class InvalidTargetError(ConnectionConfigError, ValueError):
    """Raised when a host or port cannot be used as a connection endpoint."""


class NotFoundError(ConnectionConfigError):
    """Raised when a private key file does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"File {path} not found")
        self.path = path


class KeyParseError(ConnectionConfigError):
    """Raised when key bytes cannot be turned into a private key."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.source = source


class InvalidCredentialError(ConnectionConfigError):
    """Raised when the credential does not cover the requested auth mode."""
