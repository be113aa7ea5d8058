"""
gringo_p2p.config
=================

Wire-layer configuration. The framing functions never read module constants
directly; they take a `WireConfig` so the same codecs can serve production
peers and test harnesses with tightened bounds.

Env prefix: GRINGO_P2P_

- GRINGO_P2P_MAGIC=1ec5              (hex, exactly 2 bytes)
- GRINGO_P2P_MAX_MSG_LEN=20000000
- GRINGO_P2P_MAX_STRING_LEN=1024
- GRINGO_P2P_MAX_PEER_ADDRS=256
"""
from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from typing import Mapping, Optional

from .constants import (
    MAGIC,
    MAGIC_SIZE,
    MAX_MESSAGE_BYTES,
    MAX_PEER_ADDRS,
    MAX_STRING_LENGTH,
)
from .errors import ConfigError

__all__ = [
    "WireConfig",
    "DEFAULT_CONFIG",
    "load_config",
]

ENV_PREFIX = "GRINGO_P2P_"


# ---------- parsing helpers ----------------------------------------------------

def _getenv(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    v = env.get(name)
    if v is None:
        return default
    return v.strip()


def _getenv_int(env: Mapping[str, str], name: str, default: int) -> int:
    v = _getenv(env, name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _getenv_magic(env: Mapping[str, str], name: str, default: bytes) -> bytes:
    v = _getenv(env, name)
    if not v:
        return default
    if v.lower().startswith("0x"):
        v = v[2:]
    try:
        return bytes.fromhex(v)
    except ValueError:
        return default


# ---------- dataclass ----------------------------------------------------------

@dataclass(frozen=True, slots=True)
class WireConfig:
    # Network-wide marker expected at the start of every header
    magic: bytes = MAGIC

    # Largest body length a header may declare
    max_message_bytes: int = MAX_MESSAGE_BYTES

    # Largest length-prefixed string inside a body
    max_string_length: int = MAX_STRING_LENGTH

    # Largest address count in a PeerAddrs body
    max_peer_addrs: int = MAX_PEER_ADDRS

    def __post_init__(self) -> None:
        if not isinstance(self.magic, (bytes, bytearray)) or len(self.magic) != MAGIC_SIZE:
            raise ConfigError(
                message=f"magic must be {MAGIC_SIZE} bytes",
                details={"magic": repr(self.magic)},
            )
        for name in ("max_message_bytes", "max_string_length", "max_peer_addrs"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, int) or v < 0:
                raise ConfigError(
                    message=f"{name} must be a non-negative int",
                    details={name: v},
                )

    def with_limits(self, **changes) -> "WireConfig":
        """Return a copy with some fields replaced (validated again)."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["magic"] = bytes(self.magic).hex()
        return d


DEFAULT_CONFIG = WireConfig()


# ---------- loader -------------------------------------------------------------

def load_config(env: Optional[Mapping[str, str]] = None) -> WireConfig:
    """
    Build a WireConfig from environment variables. Unparseable values fall back
    to the defaults; parseable but invalid ones (wrong magic width, negative
    limits) raise ConfigError.
    """
    env = os.environ if env is None else env

    magic = _getenv_magic(env, ENV_PREFIX + "MAGIC", MAGIC)
    max_message_bytes = _getenv_int(env, ENV_PREFIX + "MAX_MSG_LEN", MAX_MESSAGE_BYTES)
    max_string_length = _getenv_int(env, ENV_PREFIX + "MAX_STRING_LEN", MAX_STRING_LENGTH)
    max_peer_addrs = _getenv_int(env, ENV_PREFIX + "MAX_PEER_ADDRS", MAX_PEER_ADDRS)

    return WireConfig(
        magic=magic,
        max_message_bytes=max_message_bytes,
        max_string_length=max_string_length,
        max_peer_addrs=max_peer_addrs,
    )


# ---------- quick dump for debugging ------------------------------------------

if __name__ == "__main__":
    import json
    print(json.dumps(load_config().to_dict(), indent=2))
