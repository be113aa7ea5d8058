from __future__ import annotations

import asyncio
import io
import logging
from typing import Mapping, Optional, Tuple, Type, TypeVar

from ..config import DEFAULT_CONFIG, WireConfig
from ..constants import HEADER_SIZE, MAGIC_SIZE
from ..errors import FrameWriteError, InvalidMagic, TruncatedStream, UnknownMessageType
from ..wire.frames import MessageHeader, check_header, decode_body, encode_message
from ..wire.message_ids import MsgType
from ..wire.messages import REGISTRY, Message

log = logging.getLogger("gringo.p2p.transport")

M = TypeVar("M", bound=Message)

__all__ = [
    "read_message_async",
    "read_any_message_async",
    "write_message_async",
    "AsyncMessageStream",
]


async def _readexactly(reader: asyncio.StreamReader, n: int) -> bytes:
    if n == 0:
        return b""
    try:
        return await reader.readexactly(n)
    except asyncio.IncompleteReadError as e:
        raise TruncatedStream.short_read(n, len(e.partial)).with_cause(e) from e


async def _read_header(reader: asyncio.StreamReader, config: WireConfig) -> MessageHeader:
    magic = await _readexactly(reader, MAGIC_SIZE)
    if magic != config.magic:
        raise InvalidMagic.mismatch(magic, config.magic)
    rest = await _readexactly(reader, HEADER_SIZE - MAGIC_SIZE)
    return MessageHeader.read(io.BytesIO(magic + rest), magic=config.magic)


async def _read_body(reader: asyncio.StreamReader, cls: Type[M], header: MessageHeader, config: WireConfig) -> M:
    # check_header has already bounded header.length by max_message_bytes
    body = await _readexactly(reader, header.length)
    return decode_body(cls, io.BytesIO(body), header.length, config)


async def read_message_async(
    reader: asyncio.StreamReader,
    cls: Type[M],
    config: WireConfig = DEFAULT_CONFIG,
) -> Tuple[M, int]:
    """asyncio counterpart of frames.read_message; same checks, same order."""
    header = await _read_header(reader, config)
    check_header(header, cls.msg_type, config)
    msg = await _read_body(reader, cls, header, config)
    return msg, HEADER_SIZE + header.length


async def read_any_message_async(
    reader: asyncio.StreamReader,
    config: WireConfig = DEFAULT_CONFIG,
    registry: Optional[Mapping[MsgType, Type[Message]]] = None,
) -> Tuple[Message, int]:
    """asyncio counterpart of frames.read_any_message."""
    registry = REGISTRY if registry is None else registry
    header = await _read_header(reader, config)
    try:
        cls = registry.get(MsgType(header.msg_type))
    except ValueError:
        cls = None
    if cls is None:
        raise UnknownMessageType.tag(header.msg_type)
    check_header(header, None, config)
    msg = await _read_body(reader, cls, header, config)
    return msg, HEADER_SIZE + header.length


async def write_message_async(
    writer: asyncio.StreamWriter,
    msg: Message,
    config: WireConfig = DEFAULT_CONFIG,
) -> int:
    """
    Write header + body in one write() and wait for the transport buffer to
    drain. A failing transport surfaces as FrameWriteError; StreamWriter does
    not report partial progress, so `written` is 0.
    """
    data = encode_message(msg, config)
    try:
        writer.write(data)
        await writer.drain()
    except (ConnectionError, OSError, RuntimeError) as e:
        # RuntimeError: write() after the transport was closed
        raise FrameWriteError(message=f"send failed: {e}", written=0, cause=e) from e
    return len(data)


class AsyncMessageStream:
    """
    Framed messages over an asyncio reader/writer pair.

    Header and body of one message are never interleaved with another: sends
    are serialized by a write lock and receives by a read lock, so several
    tasks may share one stream.
    """

    __slots__ = (
        "_reader",
        "_writer",
        "_config",
        "_write_lock",
        "_read_lock",
        "bytes_sent",
        "bytes_recv",
        "_closed",
    )

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        config: WireConfig = DEFAULT_CONFIG,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._config = config
        self._write_lock = asyncio.Lock()
        self._read_lock = asyncio.Lock()
        self.bytes_sent = 0
        self.bytes_recv = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def transmitted_bytes(self) -> int:
        return self.bytes_sent + self.bytes_recv

    async def send(self, msg: Message) -> int:
        async with self._write_lock:
            n = await write_message_async(self._writer, msg, self._config)
            self.bytes_sent += n
            return n

    async def recv(self, cls: Type[M]) -> M:
        async with self._read_lock:
            msg, n = await read_message_async(self._reader, cls, self._config)
            self.bytes_recv += n
            return msg

    async def recv_any(self) -> Message:
        async with self._read_lock:
            msg, n = await read_any_message_async(self._reader, self._config)
            self.bytes_recv += n
            return msg

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as e:
            log.debug("close: %s", e)

    async def __aenter__(self) -> "AsyncMessageStream":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
