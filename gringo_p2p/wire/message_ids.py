"""
gringo P2P message type registry.

Every message on the wire carries a one-byte type tag in its header. Tags are
stable: new message kinds take the next free value and existing values are
never renumbered.

Tags 0x00-0x04 have codecs in this package. 0x05-0x0B are reserved for the
handshake and sync messages of the wider node; they are listed here so that
no other message claims them.

Changing this table requires bumping WIRE_SCHEMA_VERSION.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Optional, Union

# Bump when adding/removing/renaming message types.
WIRE_SCHEMA_VERSION: int = 1


class MsgType(IntEnum):
    # ---------------------------
    # Liveness
    # ---------------------------
    PING = 0x00  # sender's chain state, expects PONG
    PONG = 0x01  # same payload as PING

    # ---------------------------
    # Peer discovery
    # ---------------------------
    GET_PEER_ADDRS = 0x02  # capability filter
    PEER_ADDRS = 0x03  # count-prefixed address list

    # ---------------------------
    # Errors
    # ---------------------------
    ERROR = 0x04  # code + text, usually followed by close

    # ---------------------------
    # Reserved (wider node)
    # ---------------------------
    HAND = 0x05
    SHAKE = 0x06
    GET_HEADERS = 0x07
    HEADERS = 0x08
    GET_BLOCK = 0x09
    BLOCK = 0x0A
    TRANSACTION = 0x0B


# Request → Response mapping
_REQUEST_RESPONSE: Dict[MsgType, MsgType] = {
    MsgType.PING: MsgType.PONG,
    MsgType.GET_PEER_ADDRS: MsgType.PEER_ADDRS,
    MsgType.HAND: MsgType.SHAKE,
    MsgType.GET_HEADERS: MsgType.HEADERS,
    MsgType.GET_BLOCK: MsgType.BLOCK,
}


def is_request(mt: MsgType) -> bool:
    """Return True if `mt` expects a reply."""
    return mt in _REQUEST_RESPONSE


def response_for(mt: MsgType) -> Optional[MsgType]:
    """Return the canonical response type for a request, if any."""
    return _REQUEST_RESPONSE.get(mt)


def type_name(tag: Union[int, MsgType]) -> str:
    """Readable name for a raw tag; unknown tags render as hex."""
    try:
        return MsgType(int(tag)).name
    except ValueError:
        return f"0x{int(tag):02x}"


__all__ = [
    "WIRE_SCHEMA_VERSION",
    "MsgType",
    "is_request",
    "response_for",
    "type_name",
]
