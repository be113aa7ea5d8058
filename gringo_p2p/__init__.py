"""
gringo P2P: wire framing layer & lightweight public API.

- Exposes __version__
- Provides lazy re-exports for the framing functions and message types so
  importing the package stays cheap (PEP 562 __getattr__).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .version import __version__, user_agent

__all__ = [
    "__version__",
    "user_agent",
    # Lazy re-exports (see __getattr__)
    "WireConfig",
    "load_config",
    "MsgType",
    "Ping",
    "Pong",
    "GetPeerAddrs",
    "PeerAddrs",
    "PeerAddr",
    "PeerError",
    "Capabilities",
    "write_message",
    "read_message",
    "read_any_message",
    "MessageStream",
]

if TYPE_CHECKING:
    from .config import WireConfig, load_config
    from .wire.frames import MessageStream, read_any_message, read_message, write_message
    from .wire.message_ids import MsgType
    from .wire.messages import Capabilities, GetPeerAddrs, PeerAddr, PeerAddrs, PeerError, Ping, Pong

_LAZY = {
    "WireConfig": ".config",
    "load_config": ".config",
    "MsgType": ".wire.message_ids",
    "Ping": ".wire.messages",
    "Pong": ".wire.messages",
    "GetPeerAddrs": ".wire.messages",
    "PeerAddrs": ".wire.messages",
    "PeerAddr": ".wire.messages",
    "PeerError": ".wire.messages",
    "Capabilities": ".wire.messages",
    "write_message": ".wire.frames",
    "read_message": ".wire.frames",
    "read_any_message": ".wire.frames",
    "MessageStream": ".wire.frames",
}


def __getattr__(name: str):
    """
    Lazy attribute loader for selected public symbols.
    This keeps top-level imports fast and side-effect free.
    """
    mod = _LAZY.get(name)
    if mod is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(mod, __name__), name)
