from __future__ import annotations

"""
Typed P2P wire messages.

Each message is a frozen dataclass that satisfies the `Message` protocol:

  msg_type   class-level tag written into the header (see message_ids.py)
  to_bytes() body bytes, a pure function of the fields
  read()     classmethod decoding a body from a reader that is already
             bounded to the declared body length

Framing (magic, tag, length, bounded sub-readers) lives in frames.py. Body
layouts (all integers big-endian):

  Ping / Pong    total_difficulty[8] | height[8]
  GetPeerAddrs   capabilities[4]
  PeerAddrs      count[4] | count x { family[1] | addr[4|16] | port[2] }
  PeerError      code[4] | msg_len[8] | msg[msg_len]
"""

import ipaddress
import logging
from dataclasses import dataclass, field
from enum import IntFlag
from typing import ClassVar, Dict, Optional, Protocol, Tuple, Type, TypeVar, Union, runtime_checkable

from ..config import DEFAULT_CONFIG, WireConfig
from ..constants import ADDR_FAMILY_IPV4, ADDR_FAMILY_IPV6
from ..errors import OversizedCollection
from .encoding import (
    U8,
    U16,
    U16_MAX,
    U32,
    U32_MAX,
    U64,
    U64_MAX,
    TEXT_ERRORS,
    BinaryReader,
    encode_text,
    ensure_uint,
    read_exact,
    read_u8,
    read_u16,
    read_u32,
    read_u64,
    read_text,
)
from .message_ids import MsgType

log = logging.getLogger("gringo.p2p.wire")

# ---------------------------
# Common aliases / small types
# ---------------------------

Difficulty = int  # consensus difficulty, opaque u64 on the wire
Height = int
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

M = TypeVar("M", bound="Message")


@runtime_checkable
class Message(Protocol):
    """Anything that can report its tag, serialize itself and decode itself."""

    msg_type: ClassVar[MsgType]

    def to_bytes(self) -> bytes: ...

    @classmethod
    def read(cls: Type[M], r: BinaryReader, config: WireConfig = DEFAULT_CONFIG) -> M: ...


class Capabilities(IntFlag):
    """Features a peer advertises; used to filter peer-discovery answers."""

    UNKNOWN = 0
    FULL_HIST = 1 << 0  # full archival history
    UTXO_HIST = 1 << 1  # can provide the UTXO set at a recent height
    PEER_LIST = 1 << 2  # answers GetPeerAddrs
    FULL_NODE = FULL_HIST | UTXO_HIST | PEER_LIST


# ---------------------------
# Addresses
# ---------------------------


@dataclass(frozen=True)
class PeerAddr:
    ip: IPAddress
    port: int

    def __post_init__(self):
        if not isinstance(self.ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            object.__setattr__(self, "ip", ipaddress.ip_address(self.ip))
        ensure_uint("port", self.port, U16_MAX)

    @classmethod
    def parse(cls, s: str) -> "PeerAddr":
        """Parse "1.2.3.4:3414" or "[2001:db8::1]:3414"."""
        s = s.strip()
        if s.startswith("["):
            host, sep, port = s[1:].partition("]:")
            if not sep:
                raise ValueError(f"invalid peer address: {s!r}")
        else:
            host, sep, port = s.rpartition(":")
            if not sep or ":" in host:
                raise ValueError(f"invalid peer address: {s!r}")
        return cls(ip=ipaddress.ip_address(host), port=int(port))

    @property
    def family(self) -> int:
        return ADDR_FAMILY_IPV4 if self.ip.version == 4 else ADDR_FAMILY_IPV6

    def to_bytes(self) -> bytes:
        return U8.pack(self.family) + self.ip.packed + U16.pack(self.port)

    @classmethod
    def read(cls, r: BinaryReader) -> "PeerAddr":
        flag = read_u8(r)
        if flag == ADDR_FAMILY_IPV4:
            ip: IPAddress = ipaddress.IPv4Address(read_exact(r, 4))
        else:
            ip = ipaddress.IPv6Address(read_exact(r, 16))
        return cls(ip=ip, port=read_u16(r))

    def __str__(self) -> str:
        if self.ip.version == 6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"


# ---------------------------
# Liveness
# ---------------------------


@dataclass(frozen=True)
class Ping:
    msg_type: ClassVar[MsgType] = MsgType.PING

    # total difficulty accumulated by the sender, used to check whether sync
    # may be needed
    total_difficulty: Difficulty = 0
    height: Height = 0

    def __post_init__(self):
        ensure_uint("total_difficulty", self.total_difficulty, U64_MAX)
        ensure_uint("height", self.height, U64_MAX)

    def to_bytes(self) -> bytes:
        return U64.pack(self.total_difficulty) + U64.pack(self.height)

    @classmethod
    def read(cls, r, config=DEFAULT_CONFIG):
        total_difficulty = read_u64(r)
        height = read_u64(r)
        return cls(total_difficulty=total_difficulty, height=height)


@dataclass(frozen=True)
class Pong(Ping):
    """Reply to Ping with the responder's chain state; same body layout."""

    msg_type: ClassVar[MsgType] = MsgType.PONG


# ---------------------------
# Peer discovery
# ---------------------------


@dataclass(frozen=True)
class GetPeerAddrs:
    msg_type: ClassVar[MsgType] = MsgType.GET_PEER_ADDRS

    # filters on the capabilities we'd like the peers to have
    capabilities: Capabilities = Capabilities.UNKNOWN

    def __post_init__(self):
        ensure_uint("capabilities", int(self.capabilities), U32_MAX)
        if not isinstance(self.capabilities, Capabilities):
            object.__setattr__(self, "capabilities", Capabilities(self.capabilities))

    def to_bytes(self) -> bytes:
        return U32.pack(int(self.capabilities))

    @classmethod
    def read(cls, r, config=DEFAULT_CONFIG):
        return cls(capabilities=Capabilities(read_u32(r)))


@dataclass(frozen=True)
class PeerAddrs:
    """Peers we know of that are fresh enough, in response to GetPeerAddrs."""

    msg_type: ClassVar[MsgType] = MsgType.PEER_ADDRS

    peers: Tuple[PeerAddr, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.peers, tuple):
            object.__setattr__(self, "peers", tuple(self.peers))
        ensure_uint("peers count", len(self.peers), U32_MAX)

    def to_bytes(self) -> bytes:
        parts = [U32.pack(len(self.peers))]
        parts.extend(p.to_bytes() for p in self.peers)
        return b"".join(parts)

    @classmethod
    def read(cls, r, config=DEFAULT_CONFIG):
        count = read_u32(r)
        if count > config.max_peer_addrs:
            log.warning("too big peersCount value: %d > %d", count, config.max_peer_addrs)
            raise OversizedCollection.declared("peers", count, config.max_peer_addrs)
        return cls(peers=tuple(PeerAddr.read(r) for _ in range(count)))


# ---------------------------
# Errors
# ---------------------------


@dataclass(frozen=True)
class PeerError:
    """Error sent back to a peer, usually followed by closing the connection."""

    msg_type: ClassVar[MsgType] = MsgType.ERROR

    code: int = 0
    # slightly more user friendly message
    message: str = ""

    def __post_init__(self):
        ensure_uint("code", self.code, U32_MAX)
        if not isinstance(self.message, str):
            raise ValueError(f"message must be str, got {type(self.message).__name__}")
        try:
            self.message.encode("utf-8", TEXT_ERRORS)
        except UnicodeEncodeError as e:
            raise ValueError(f"message not encodable: {e}") from e

    def to_bytes(self) -> bytes:
        return U32.pack(self.code) + encode_text(self.message)

    @classmethod
    def read(cls, r, config=DEFAULT_CONFIG):
        code = read_u32(r)
        message = read_text(r, max_len=config.max_string_length, name="messageLen")
        return cls(code=code, message=message)


# ---------------------------
# Registry
# ---------------------------

MessageClass = Type[Message]

REGISTRY: Dict[MsgType, MessageClass] = {}


def register_message(cls: MessageClass) -> MessageClass:
    """
    Register a message codec under its tag. Usable as a class decorator by
    extensions adding the reserved message kinds. A tag may only be claimed
    once.
    """
    tag = MsgType(cls.msg_type)
    current = REGISTRY.get(tag)
    if current is not None and current is not cls:
        raise ValueError(f"message type {tag.name} already registered to {current.__name__}")
    REGISTRY[tag] = cls
    return cls


def message_class_for(tag: int) -> Optional[MessageClass]:
    """Codec class registered for a raw header tag, or None."""
    try:
        return REGISTRY.get(MsgType(tag))
    except ValueError:
        return None


for _cls in (Ping, Pong, GetPeerAddrs, PeerAddrs, PeerError):
    register_message(_cls)
del _cls


__all__ = [
    "Message",
    "Capabilities",
    "PeerAddr",
    "Ping",
    "Pong",
    "GetPeerAddrs",
    "PeerAddrs",
    "PeerError",
    "REGISTRY",
    "register_message",
    "message_class_for",
    # aliases
    "Difficulty",
    "Height",
    "IPAddress",
]
