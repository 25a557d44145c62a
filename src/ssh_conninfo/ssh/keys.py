"""Private key loading.

A key reaches the builders either as a path on disk or as the lines of a key
file already held in memory. Both are normalized into one byte buffer
(:class:`KeyMaterial`) and parsed by :func:`parse_private_key`, so the parsing
and error handling exist once.
"""

from __future__ import annotations

import io
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Sequence, Tuple, Type

import paramiko

from ..utils.secret import SecretString, wipe
from .errors import KeyParseError, NotFoundError

logger = logging.getLogger(__name__)

KEY_ENCODING = "utf-8"

# Tried in order; each class rejects key files of another type with SSHException.
KEY_CLASSES: Tuple[Type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.RSAKey,
    paramiko.ECDSAKey,
)


@dataclass
class KeyMaterial:
    """Raw key bytes plus the passphrase that unlocks them, if any."""

    data: bytearray
    passphrase: Optional[SecretString] = None
    origin: str = "<memory>"

    def wipe(self) -> None:
        wipe(self.data)


@dataclass(frozen=True)
class KeySource:
    """Where key bytes come from: a file path or in-memory lines, never both."""

    path: Optional[str] = None
    lines: Tuple[str, ...] = field(default=())

    @classmethod
    def from_path(cls, path: str) -> "KeySource":
        return cls(path=path)

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "KeySource":
        return cls(lines=tuple(lines))

    @property
    def is_file(self) -> bool:
        return self.path is not None

    def resolved_path(self) -> str:
        if self.path is None:
            raise ValueError("key source is not a file")
        return os.path.abspath(os.path.expanduser(self.path))

    def describe(self) -> str:
        return self.resolved_path() if self.is_file else "<key content>"


def read_key_bytes(source: KeySource) -> bytearray:
    """Return the raw bytes of ``source``."""
    if source.is_file:
        full_path = source.resolved_path()
        if not os.path.isfile(full_path):
            raise NotFoundError(full_path)
        with open(full_path, "rb") as handle:
            return bytearray(handle.read())
    return bytearray("\n".join(source.lines).encode(KEY_ENCODING))


@contextmanager
def load_key_material(
    source: KeySource, passphrase: Optional[SecretString] = None
) -> Iterator[KeyMaterial]:
    """Yield the key bytes of ``source``; the buffer is zeroed on exit."""
    material = KeyMaterial(
        data=read_key_bytes(source), passphrase=passphrase, origin=source.describe()
    )
    try:
        yield material
    finally:
        material.wipe()


def _decode(material: KeyMaterial) -> str:
    try:
        return bytes(material.data).decode(KEY_ENCODING)
    except UnicodeDecodeError as exc:
        raise KeyParseError(
            f"Key data from {material.origin} is not valid {KEY_ENCODING} text", material.origin
        ) from exc


def parse_private_key(material: KeyMaterial) -> paramiko.PKey:
    """Parse ``material`` into a paramiko key.

    The passphrase is only used when the key is encrypted; paramiko ignores it
    for plain keys.
    """
    text = _decode(material)
    if not text.strip():
        raise KeyParseError(f"Key data from {material.origin} is empty", material.origin)

    if material.passphrase is None:
        return _try_key_classes(text, None, material.origin)
    with material.passphrase.reveal() as password:
        return _try_key_classes(text, password, material.origin)


def _try_key_classes(text: str, password: Optional[str], origin: str) -> paramiko.PKey:
    last_error: Optional[Exception] = None
    for key_cls in KEY_CLASSES:
        try:
            key = key_cls.from_private_key(io.StringIO(text), password=password)
        except paramiko.PasswordRequiredException as exc:
            raise KeyParseError(
                f"Private key from {origin} is encrypted and no passphrase was given", origin
            ) from exc
        except (paramiko.SSHException, ValueError) as exc:
            last_error = exc
            continue
        logger.debug("Loaded %s key from %s", key.get_name(), origin)
        return key
    raise KeyParseError(
        f"Unable to parse private key from {origin}: {last_error}", origin
    ) from last_error


def load_private_key(source: KeySource, passphrase: Optional[SecretString] = None) -> paramiko.PKey:
    """Read and parse ``source`` in one scoped step."""
    with load_key_material(source, passphrase) as material:
        return parse_private_key(material)
