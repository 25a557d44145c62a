"""Opaque holder for passwords and passphrases."""

from __future__ import annotations

import hmac
from contextlib import contextmanager
from typing import Iterator, Union


def wipe(buffer: bytearray) -> None:
    """Overwrite ``buffer`` with zeros in place."""
    buffer[:] = bytes(len(buffer))


class SecretString:
    """A secret kept in a mutable buffer that can be zeroed.

    The plain text is only reachable through :meth:`reveal`, which yields it
    for the duration of a ``with`` block and zeroes its scratch copy on exit.
    ``repr``/``str`` never show the value.
    """

    __slots__ = ("_buffer",)

    def __init__(self, value: Union[str, bytes, bytearray] = "") -> None:
        if isinstance(value, str):
            value = value.encode("utf-8")
        self._buffer = bytearray(value)

    @contextmanager
    def reveal(self) -> Iterator[str]:
        scratch = bytearray(self._buffer)
        try:
            yield scratch.decode("utf-8")
        finally:
            wipe(scratch)

    def copy(self) -> "SecretString":
        return SecretString(self._buffer)

    def clear(self) -> None:
        wipe(self._buffer)
        del self._buffer[:]

    def __len__(self) -> int:
        return len(self._buffer)

    def __bool__(self) -> bool:
        return len(self._buffer) > 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SecretString):
            return NotImplemented
        return hmac.compare_digest(bytes(self._buffer), bytes(other._buffer))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "SecretString('********')"

    __str__ = __repr__
