import asyncio

import pytest

from gringo_p2p.constants import HEADER_SIZE
from gringo_p2p.errors import (
    FrameWriteError,
    InvalidMagic,
    MessageTooLarge,
    TruncatedStream,
    UnexpectedMessageType,
    UnknownMessageType,
)
from gringo_p2p.tests import raw_frame
from gringo_p2p.transport import (
    AsyncMessageStream,
    read_any_message_async,
    read_message_async,
    write_message_async,
)
from gringo_p2p.wire.frames import encode_message
from gringo_p2p.wire.message_ids import MsgType
from gringo_p2p.wire.messages import GetPeerAddrs, PeerAddr, PeerAddrs, PeerError, Ping, Pong


def _reader(data: bytes) -> asyncio.StreamReader:
    # must be called with a running loop
    r = asyncio.StreamReader()
    r.feed_data(data)
    r.feed_eof()
    return r


class FakeWriter:
    def __init__(self, fail: bool = False) -> None:
        self.data = bytearray()
        self.fail = fail
        self.closed = False
        self.drains = 0

    def write(self, data: bytes) -> None:
        if self.fail:
            raise ConnectionResetError("reset by peer")
        self.data += data

    async def drain(self) -> None:
        self.drains += 1

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        raise BrokenPipeError("already gone")


def test_read_message_async():
    async def go():
        frame = encode_message(Ping(total_difficulty=1000, height=42))
        return await read_message_async(_reader(frame), Ping)

    msg, n = asyncio.run(go())
    assert msg == Ping(total_difficulty=1000, height=42)
    assert n == 27


def test_async_type_mismatch_leaves_body_unread():
    async def go():
        r = _reader(encode_message(Pong()))
        with pytest.raises(UnexpectedMessageType):
            await read_message_async(r, Ping)
        return await r.read()

    assert len(asyncio.run(go())) == 16


def test_async_oversized_leaves_body_unread(tight_config):
    async def go():
        r = _reader(raw_frame(MsgType.ERROR, bytes(65)))
        with pytest.raises(MessageTooLarge):
            await read_message_async(r, PeerError, tight_config)
        return await r.read()

    assert len(asyncio.run(go())) == 65


def test_async_bad_magic_reads_two_bytes():
    async def go():
        r = _reader(b"\xff\xff" + bytes(HEADER_SIZE - 2))
        with pytest.raises(InvalidMagic):
            await read_message_async(r, Ping)
        return await r.read()

    assert len(asyncio.run(go())) == HEADER_SIZE - 2


def test_async_truncated():
    async def go():
        frame = encode_message(Ping())
        with pytest.raises(TruncatedStream):
            await read_message_async(_reader(frame[:-1]), Ping)
        with pytest.raises(EOFError):
            await read_message_async(_reader(frame[:5]), Ping)

    asyncio.run(go())


def test_async_read_any():
    async def go():
        data = encode_message(GetPeerAddrs(capabilities=2)) + raw_frame(MsgType.SHAKE, b"")
        r = _reader(data)
        first = await read_any_message_async(r)
        with pytest.raises(UnknownMessageType):
            await read_any_message_async(r)
        return first

    msg, n = asyncio.run(go())
    assert msg == GetPeerAddrs(capabilities=2)
    assert n == HEADER_SIZE + 4


def test_write_message_async():
    w = FakeWriter()
    msg = PeerAddrs(peers=(PeerAddr.parse("1.2.3.4:5"),))
    n = asyncio.run(write_message_async(w, msg))
    assert bytes(w.data) == encode_message(msg)
    assert n == len(w.data)
    assert w.drains == 1


def test_write_message_async_failure():
    with pytest.raises(FrameWriteError) as ei:
        asyncio.run(write_message_async(FakeWriter(fail=True), Ping()))
    assert ei.value.written == 0


def test_async_stream_close_is_idempotent():
    async def go():
        w = FakeWriter()
        s = AsyncMessageStream(_reader(b""), w)
        async with s:
            await s.send(Ping())
        await s.close()
        return s, w

    s, w = asyncio.run(go())
    assert s.closed and w.closed
    assert s.bytes_sent == 27


def test_async_stream_end_to_end():
    async def go():
        async def handle(reader, writer):
            async with AsyncMessageStream(reader, writer) as conn:
                ping = await conn.recv(Ping)
                await conn.send(Pong(total_difficulty=ping.total_difficulty + 1, height=ping.height))
                await conn.send(PeerError(code=0, message="done"))

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            async with AsyncMessageStream(reader, writer) as conn:
                await conn.send(Ping(total_difficulty=99, height=7))
                pong = await conn.recv(Pong)
                err = await conn.recv_any()
                return pong, err, conn.bytes_sent, conn.bytes_recv

    pong, err, sent, recv = asyncio.run(go())
    assert pong == Pong(total_difficulty=100, height=7)
    assert err == PeerError(code=0, message="done")
    assert sent == 27
    assert recv == 27 + HEADER_SIZE + 4 + 8 + 4
