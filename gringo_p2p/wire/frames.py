from __future__ import annotations

"""
Message envelope and framed stream I/O.

Header layout (big-endian, no padding)
--------------------------------------
magic:   2 bytes   network-wide marker (WireConfig.magic, default 1e c5)
type:    1 byte    MsgType tag
length:  8 bytes   exact byte length of the body that follows

Total header size = 11 bytes.

Reading
-------
`read_message` decodes the header through a reader bounded to 11 bytes, checks
the tag against the class the caller expects, rejects a declared length above
`max_message_bytes` before touching the body, then hands a reader bounded to
exactly `length` bytes to the message's own decoder. A body that is not fully
consumed by its decoder is rejected as malformed.

Writing
-------
`write_message` serializes the body, builds the header from it and pushes
header + body through one scoped buffer with a single flush. A failing stream
surfaces as FrameWriteError carrying the byte count write() accepted and
whether the write or the flush failed; the stream can no longer be trusted
for framing after that.

The stream must not be shared between concurrent writers (or readers) without
external serialization; see transport.stream.AsyncMessageStream.
"""

import io
import logging
import socket
import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Mapping, Optional, Tuple, Type, TypeVar

from ..config import DEFAULT_CONFIG, WireConfig
from ..constants import HEADER_FMT, HEADER_SIZE, MAGIC, MAGIC_SIZE
from ..errors import (
    FrameWriteError,
    InvalidMagic,
    MalformedMessage,
    MessageTooLarge,
    UnexpectedMessageType,
    UnknownMessageType,
)
from .encoding import U64_MAX, BinaryReader, BinaryWriter, LimitedReader, ensure_uint, read_exact, write_all
from .message_ids import MsgType, type_name
from .messages import REGISTRY, Message

log = logging.getLogger("gringo.p2p.wire")

M = TypeVar("M", bound=Message)

_TYPE_LEN = struct.Struct("!BQ")


@dataclass(frozen=True)
class MessageHeader:
    msg_type: int
    length: int
    magic: bytes = MAGIC

    def __post_init__(self):
        ensure_uint("msg_type", int(self.msg_type), 0xFF)
        ensure_uint("length", self.length, U64_MAX)
        if len(self.magic) != MAGIC_SIZE:
            raise ValueError(f"magic must be {MAGIC_SIZE} bytes")

    def encode(self) -> bytes:
        return struct.pack(HEADER_FMT, bytes(self.magic), int(self.msg_type), self.length)

    def write(self, w: BinaryWriter) -> int:
        """Write the encoded header to `w`; short writes are retried."""
        return write_all(w, self.encode())

    @classmethod
    def read(cls, r: BinaryReader, *, magic: bytes = MAGIC) -> "MessageHeader":
        got = read_exact(r, MAGIC_SIZE)
        if got != magic:
            raise InvalidMagic.mismatch(got, magic)
        msg_type, length = _TYPE_LEN.unpack(read_exact(r, _TYPE_LEN.size))
        return cls(msg_type=msg_type, length=length, magic=got)

    def __repr__(self) -> str:
        return f"MessageHeader(type={type_name(self.msg_type)}, length={self.length})"


# ---------------------------------------------------------------------------
# Shared helpers (also used by the asyncio adapters)
# ---------------------------------------------------------------------------


def encode_message(msg: Message, config: WireConfig = DEFAULT_CONFIG) -> bytes:
    """header || body for `msg`."""
    body = msg.to_bytes()
    header = MessageHeader(msg_type=msg.msg_type, length=len(body), magic=config.magic)
    return header.encode() + body


def check_header(
    header: MessageHeader,
    expected: Optional[int],
    config: WireConfig,
) -> None:
    """Tag and length checks applied before any body byte is read."""
    log.debug("got header: %r", header)
    if expected is not None and header.msg_type != expected:
        raise UnexpectedMessageType.mismatch(header.msg_type, int(expected))
    if header.length > config.max_message_bytes:
        log.warning("too big message size: %d > %d", header.length, config.max_message_bytes)
        raise MessageTooLarge.declared(header.length, config.max_message_bytes)


def decode_body(cls: Type[M], r: BinaryReader, length: int, config: WireConfig = DEFAULT_CONFIG) -> M:
    """Decode one body of exactly `length` bytes from `r` with `cls`'s codec."""
    body = LimitedReader(r, length)
    msg = cls.read(body, config)
    if body.remaining:
        raise MalformedMessage.trailing(int(cls.msg_type), body.remaining)
    return msg


def decode_message(data: bytes, cls: Type[M], config: WireConfig = DEFAULT_CONFIG) -> M:
    """Decode a complete frame held in memory; trailing bytes are an error."""
    stream = io.BytesIO(data)
    msg, consumed = read_message(stream, cls, config)
    if consumed != len(data):
        raise MalformedMessage.trailing(int(cls.msg_type), len(data) - consumed)
    return msg


# ---------------------------------------------------------------------------
# Blocking stream API
# ---------------------------------------------------------------------------


@contextmanager
def _buffered(w: BinaryWriter) -> Iterator[bytearray]:
    """
    Collect a whole frame, then hand it to `w` and flush once. If the body
    of the `with` raises, the buffer is dropped and nothing reaches `w`.
    """
    buf = bytearray()
    yield buf
    _write_all(w, bytes(buf))


def _write_all(w: BinaryWriter, data: bytes) -> None:
    written = write_all(w, data)
    flush = getattr(w, "flush", None)
    if flush is None:
        return
    try:
        flush()
    except (OSError, ValueError) as e:
        # every byte was accepted by write() but may still sit in w's buffer
        raise FrameWriteError(
            message=f"flush failed: {e}",
            written=written,
            cause=e,
        ).with_detail(stage="flush") from e


def write_message(w: BinaryWriter, msg: Message, config: WireConfig = DEFAULT_CONFIG) -> int:
    """
    Write one framed message to `w` and return the number of bytes written
    (header + body).
    """
    body = msg.to_bytes()
    header = MessageHeader(msg_type=msg.msg_type, length=len(body), magic=config.magic)
    with _buffered(w) as buf:
        buf += header.encode()
        buf += body
    return HEADER_SIZE + len(body)


def read_message(
    r: BinaryReader,
    cls: Type[M],
    config: WireConfig = DEFAULT_CONFIG,
) -> Tuple[M, int]:
    """
    Read one framed message of type `cls` from `r`.

    Returns (message, bytes consumed). On a tag mismatch or an oversized
    declaration exactly HEADER_SIZE bytes have been consumed.
    """
    header = MessageHeader.read(LimitedReader(r, HEADER_SIZE), magic=config.magic)
    check_header(header, cls.msg_type, config)
    msg = decode_body(cls, r, header.length, config)
    return msg, HEADER_SIZE + header.length


def read_any_message(
    r: BinaryReader,
    config: WireConfig = DEFAULT_CONFIG,
    registry: Optional[Mapping[MsgType, Type[Message]]] = None,
) -> Tuple[Message, int]:
    """
    Read one framed message whose type is decided by its header, dispatching
    through `registry` (default: every registered codec).
    """
    registry = REGISTRY if registry is None else registry
    header = MessageHeader.read(LimitedReader(r, HEADER_SIZE), magic=config.magic)
    try:
        cls = registry.get(MsgType(header.msg_type))
    except ValueError:
        cls = None
    if cls is None:
        raise UnknownMessageType.tag(header.msg_type)
    check_header(header, None, config)
    msg = decode_body(cls, r, header.length, config)
    return msg, HEADER_SIZE + header.length


# Streaming helpers -----------------------------------------------------------


class MessageStream:
    """
    Convenience helper that binds a binary stream to a WireConfig and keeps
    byte counters. Not thread-safe: one writer and one reader at a time.
    """

    def __init__(
        self,
        stream,
        *,
        config: WireConfig = DEFAULT_CONFIG,
    ) -> None:
        self._stream = stream
        self._config = config
        self.bytes_sent = 0
        self.bytes_recv = 0

    @classmethod
    def from_socket(cls, sock: socket.socket, *, config: WireConfig = DEFAULT_CONFIG) -> "MessageStream":
        return cls(sock.makefile("rwb"), config=config)

    @property
    def config(self) -> WireConfig:
        return self._config

    @property
    def transmitted_bytes(self) -> int:
        return self.bytes_sent + self.bytes_recv

    def send(self, msg: Message) -> int:
        try:
            n = write_message(self._stream, msg, self._config)
        except FrameWriteError as e:
            self.bytes_sent += e.written
            raise
        self.bytes_sent += n
        return n

    def recv(self, cls: Type[M]) -> M:
        msg, n = read_message(self._stream, cls, self._config)
        self.bytes_recv += n
        return msg

    def recv_any(self) -> Message:
        msg, n = read_any_message(self._stream, self._config)
        self.bytes_recv += n
        return msg

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> "MessageStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


__all__ = [
    "HEADER_SIZE",
    "MessageHeader",
    "encode_message",
    "decode_message",
    "check_header",
    "decode_body",
    "write_message",
    "read_message",
    "read_any_message",
    "MessageStream",
]
