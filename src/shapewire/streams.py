"""Byte sinks and sources used by the codec.

A sink is any object with a ``write(data)`` method (binary files,
``io.BytesIO``, ``socket.makefile("wb")``). A source is any object with a
``read(n)`` method that may return fewer than ``n`` bytes, and returns an
empty result at end of data.
"""

from __future__ import annotations

from typing import Protocol

from .exceptions import EndOfInput


class Sink(Protocol):
    def write(self, data: bytes, /) -> object: ...


class Source(Protocol):
    def read(self, size: int, /) -> bytes: ...


class CountingSink:
    """Sink that discards everything and counts the bytes written.

    Example:
        >>> sink = CountingSink()
        >>> sink.write(b"abc")
        3
        >>> sink.bytes_written
        3
    """

    def __init__(self) -> None:
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        n = len(data)
        self.bytes_written += n
        return n


class Reader:
    """Reads exact byte counts from a source.

    Short reads are retried until the requested count is gathered; an empty
    read before that raises ``EndOfInput``.
    """

    def __init__(self, source: Source) -> None:
        self._source = source
        self.position = 0

    def read_exact(self, n: int) -> bytes:
        """Read exactly ``n`` bytes.

        Raises:
            EndOfInput: If the source runs out of data first
        """
        if n == 0:
            return b""
        chunks = []
        remaining = n
        while remaining:
            chunk = self._source.read(remaining)
            if not chunk:
                raise EndOfInput(
                    f"expected {n} bytes at offset {self.position}, got {n - remaining}"
                )
            chunks.append(chunk)
            remaining -= len(chunk)
        self.position += n
        return b"".join(chunks)
