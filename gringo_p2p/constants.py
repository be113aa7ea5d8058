"""
Protocol-wide constants for the gringo P2P wire layer.

These are the defaults; `gringo_p2p.config` layers environment overrides on
top of them and hands the result to the framing functions as a `WireConfig`.
"""
from __future__ import annotations

import struct
from typing import Final

__all__ = [
    # Identity / versioning
    "WIRE_VERSION",
    "USER_AGENT",
    # Envelope
    "MAGIC",
    "MAGIC_SIZE",
    "HEADER_FMT",
    "HEADER_SIZE",
    # Sizing limits
    "MAX_MESSAGE_BYTES",
    "MAX_STRING_LENGTH",
    "MAX_PEER_ADDRS",
    # Address families
    "ADDR_FAMILY_IPV4",
    "ADDR_FAMILY_IPV6",
]


# ---- identity & versioning ----------------------------------------------------

# Wire protocol major version. Backward-incompatible layout changes MUST bump this.
WIRE_VERSION: Final[int] = 1

# Name and version of the software, announced to peers during handshake.
USER_AGENT: Final[str] = "gringo v0.0.1"


# ---- envelope -----------------------------------------------------------------

# Network-wide marker at the start of every message.
MAGIC: Final[bytes] = bytes((0x1E, 0xC5))
MAGIC_SIZE: Final[int] = len(MAGIC)

# magic(2) | type(1) | length(8), big-endian, no padding
HEADER_FMT: Final[str] = "!2sBQ"
HEADER_SIZE: Final[int] = struct.calcsize(HEADER_FMT)  # 11


# ---- sizing limits ------------------------------------------------------------

# Largest body a peer may declare in a header.
MAX_MESSAGE_BYTES: Final[int] = 20_000_000

# Largest length-prefixed string inside a body (PeerError.message).
MAX_STRING_LENGTH: Final[int] = 1024

# Largest number of entries in a PeerAddrs response.
MAX_PEER_ADDRS: Final[int] = 256


# ---- address families ---------------------------------------------------------

ADDR_FAMILY_IPV4: Final[int] = 0
ADDR_FAMILY_IPV6: Final[int] = 1
