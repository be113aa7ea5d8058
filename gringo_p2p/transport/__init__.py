from __future__ import annotations

"""
gringo P2P transports
=====================

Adapters that run the wire framing over concrete stream types. The blocking
API in ``gringo_p2p.wire.frames`` works on any binary file-like object
(``socket.makefile("rwb")``, ``io.BytesIO``); this subpackage adds the asyncio
flavour on top of ``asyncio.StreamReader`` / ``asyncio.StreamWriter``.

Connection lifecycle (dialing, handshake, keep-alive, reconnects) belongs to
the connection manager and is not handled here.
"""

from .stream import AsyncMessageStream, read_any_message_async, read_message_async, write_message_async

__all__ = [
    "AsyncMessageStream",
    "read_message_async",
    "read_any_message_async",
    "write_message_async",
]
