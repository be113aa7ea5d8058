"""
gringo P2P wire encoding primitives.

This module provides:
  • Fixed-width big-endian integer codecs (u8/u16/u32/u64). There is no varint
    anywhere in the protocol; every field has one width.
  • A bounded reader that refuses to yield bytes past a declared boundary.
  • Exact reads that fail on a short stream instead of returning a partial
    value.
  • A write loop that survives short writes.
  • The u64 length-prefixed text codec with a pre-read size guard.

Message codecs (messages.py) and the envelope (frames.py) are built only from
these helpers, so every read in the wire layer goes through `read_exact`.
"""

from __future__ import annotations

import logging
import struct
from typing import Optional, Protocol

from ..errors import FrameWriteError, OversizedField, TruncatedStream

log = logging.getLogger("gringo.p2p.wire")

U8 = struct.Struct("!B")
U16 = struct.Struct("!H")
U32 = struct.Struct("!I")
U64 = struct.Struct("!Q")

U16_MAX = (1 << 16) - 1
U32_MAX = (1 << 32) - 1
U64_MAX = (1 << 64) - 1


class BinaryReader(Protocol):
    def read(self, size: int = -1) -> Optional[bytes]: ...


class BinaryWriter(Protocol):
    def write(self, data: bytes) -> Optional[int]: ...


# ------------------------------------------
# Bounded reads
# ------------------------------------------


class LimitedReader:
    """
    Reader that yields at most `limit` bytes from `inner`, then reports EOF.

    Used twice per message: once around the header (so the header decoder can
    never reach into the body) and once around the body (so a malformed body
    can never reach into the next message).
    """

    __slots__ = ("_inner", "remaining", "limit")

    def __init__(self, inner: BinaryReader, limit: int) -> None:
        if limit < 0:
            raise ValueError("limit must be >= 0")
        self._inner = inner
        self.limit = limit
        self.remaining = limit

    @property
    def consumed(self) -> int:
        return self.limit - self.remaining

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0 or size > self.remaining:
            size = self.remaining
        if size == 0:
            return b""
        data = self._inner.read(size) or b""
        self.remaining -= len(data)
        return data

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"LimitedReader(limit={self.limit}, remaining={self.remaining})"


def read_exact(r: BinaryReader, n: int) -> bytes:
    """
    Read exactly `n` bytes or raise TruncatedStream. Short reads from the
    underlying stream are retried until it reports EOF.
    """
    if n == 0:
        return b""
    buf = bytearray()
    while len(buf) < n:
        chunk = r.read(n - len(buf))
        if not chunk:
            raise TruncatedStream.short_read(n, len(buf))
        buf += chunk
    return bytes(buf)


def write_all(w: BinaryWriter, data: bytes) -> int:
    """
    Hand all of `data` to `w`, retrying short writes. Returns the number of
    bytes `w.write()` accepted, which is len(data) on success. Accepted is not
    delivered: a buffering writer may still hold them.
    """
    written = 0
    try:
        while written < len(data):
            n = w.write(data[written:] if written else data)
            if n == 0:
                raise OSError("stream accepted zero bytes")
            # Buffered and file writers return None or the full length.
            written = len(data) if n is None else written + n
    except (OSError, ValueError) as e:
        # ValueError covers writes to an already-closed file object.
        raise FrameWriteError(
            message=f"write failed: {e}",
            written=written,
            cause=e,
        ).with_detail(stage="write") from e
    return written


# ------------------------------------------
# Fixed-width integers
# ------------------------------------------


def read_u8(r: BinaryReader) -> int:
    return U8.unpack(read_exact(r, U8.size))[0]


def read_u16(r: BinaryReader) -> int:
    return U16.unpack(read_exact(r, U16.size))[0]


def read_u32(r: BinaryReader) -> int:
    return U32.unpack(read_exact(r, U32.size))[0]


def read_u64(r: BinaryReader) -> int:
    return U64.unpack(read_exact(r, U64.size))[0]


def ensure_uint(name: str, value: int, maximum: int) -> None:
    """Range check used by message constructors; raises ValueError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > maximum:
        raise ValueError(f"{name} out of range: {value} not in [0, {maximum}]")


# ------------------------------------------
# Length-prefixed text
# ------------------------------------------


# Text on the wire is raw bytes. Invalid UTF-8 is kept as lone surrogates so
# that whatever a peer sent is re-encoded byte for byte.
TEXT_ERRORS = "surrogateescape"


def encode_text(s: str) -> bytes:
    """u64 byte length + UTF-8 bytes. No ceiling here; the receiver enforces it."""
    raw = s.encode("utf-8", TEXT_ERRORS)
    return U64.pack(len(raw)) + raw


def read_text(r: BinaryReader, *, max_len: int, name: str = "string") -> str:
    """
    Decode a u64 length-prefixed string. The declared length is checked
    against `max_len` before a single payload byte is read. Any byte sequence
    is accepted.
    """
    n = read_u64(r)
    log.debug("%s len: %d", name, n)
    if n > max_len:
        log.warning("too big %s len value: %d > %d", name, n, max_len)
        raise OversizedField.declared(name, n, max_len)
    return read_exact(r, n).decode("utf-8", TEXT_ERRORS)


__all__ = [
    "U8",
    "U16",
    "U32",
    "U64",
    "U16_MAX",
    "U32_MAX",
    "U64_MAX",
    "BinaryReader",
    "BinaryWriter",
    "LimitedReader",
    "read_exact",
    "write_all",
    "read_u8",
    "read_u16",
    "read_u32",
    "read_u64",
    "ensure_uint",
    "TEXT_ERRORS",
    "encode_text",
    "read_text",
]
