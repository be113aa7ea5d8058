"""
Shared helpers for gringo P2P wire tests.

These utilities are imported by individual test modules, e.g.:

    from gringo_p2p.tests import ChunkedReader, TrackingReader, FailingWriter, raw_frame

They intentionally avoid pytest-specific fixtures so they can be used from
both pytest and ad-hoc scripts.
"""
from __future__ import annotations

import struct
from typing import List, Optional

from gringo_p2p.constants import MAGIC


def raw_frame(msg_type: int, body: bytes, *, magic: bytes = MAGIC, length: Optional[int] = None) -> bytes:
    """Hand-build header || body; `length` overrides the declared body length."""
    declared = len(body) if length is None else length
    return magic + struct.pack("!BQ", msg_type, declared) + body


class ChunkedReader:
    """Serves `data` at most `chunk` bytes per read(), like a slow socket."""

    def __init__(self, data: bytes, chunk: int = 1) -> None:
        self._data = data
        self._pos = 0
        self._chunk = chunk

    @property
    def pos(self) -> int:
        return self._pos

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._data) - self._pos
        n = min(size, self._chunk)
        out = self._data[self._pos:self._pos + n]
        self._pos += len(out)
        return out


class TrackingReader:
    """
    Serves `data` and counts what was handed out. If `fail_after` is set, any
    read that would go past that many bytes raises AssertionError.
    """

    def __init__(self, data: bytes, *, fail_after: Optional[int] = None) -> None:
        self._data = data
        self.pos = 0
        self.fail_after = fail_after

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._data) - self.pos
        if self.fail_after is not None and size > 0 and self.pos + size > self.fail_after:
            raise AssertionError(f"read past byte {self.fail_after} (at {self.pos}, wanted {size})")
        out = self._data[self.pos:self.pos + size]
        self.pos += len(out)
        return out


class FailingWriter:
    """
    Accepts at most `accept` bytes in total, then raises BrokenPipeError.
    Each write() takes at most `chunk` bytes (returns a short count).
    """

    def __init__(self, accept: int, chunk: Optional[int] = None) -> None:
        self.accept = accept
        self.chunk = chunk
        self.data = bytearray()
        self.flushes = 0
        self.writes: List[int] = []

    def write(self, b) -> int:
        room = self.accept - len(self.data)
        if room <= 0:
            raise BrokenPipeError("peer went away")
        n = min(len(b), room)
        if self.chunk is not None:
            n = min(n, self.chunk)
        self.data += bytes(b[:n])
        self.writes.append(n)
        return n

    def flush(self) -> None:
        self.flushes += 1


__all__ = [
    "raw_frame",
    "ChunkedReader",
    "TrackingReader",
    "FailingWriter",
]
