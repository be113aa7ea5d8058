"""
gringo P2P wire layer.

This package contains:
  - encoding.py    : fixed-width integer codecs, bounded reads, length-prefixed text
  - message_ids.py : one-byte type tags for every wire message (PING, PEER_ADDRS, …)
  - messages.py    : typed message dataclasses and the tag → codec registry
  - frames.py      : envelope (magic, type, length), size guards, framed stream I/O

Design goals:
  • Bit-exact layouts: big-endian, fixed widths, no varints
  • Every declared length is bounded before anything is allocated
  • Additive evolution: new message kinds take new tags, old tags never move
"""

from __future__ import annotations

from importlib import import_module as _import_module
from typing import Any, List

from ..version import __version__

__all__: List[str] = [
    "encoding",
    "message_ids",
    "messages",
    "frames",
    "__version__",
]


def __getattr__(name: str) -> Any:
    """
    Lazy-import submodules so downstreams can do:

        from gringo_p2p.wire import frames, messages

    without importing everything eagerly.
    """
    if name in ("encoding", "message_ids", "messages", "frames"):
        return _import_module(f"{__name__}.{name}")
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> List[str]:  # pragma: no cover - trivial
    return sorted(list(globals().keys()) + __all__)
