#!/usr/bin/env python3
"""
gringo P2P CLI: wire inspector
===============================

Build framed messages as hex, or pull a captured frame apart. Useful when
comparing bytes against another implementation of the protocol.

Examples
--------
# Frame a Ping
python -m gringo_p2p.cli.wire encode ping --total-difficulty 1000 --height 42

# Frame a peer list
python -m gringo_p2p.cli.wire encode peer-addrs --peer 10.0.0.1:3414 --peer [2001:db8::1]:3414

# Decode whatever the header says it is
python -m gringo_p2p.cli.wire decode 1ec500000000000000000010...

# Decode, insisting on a type
python -m gringo_p2p.cli.wire decode --expect pong 1ec501...

# List tags
python -m gringo_p2p.cli.wire types
"""
from __future__ import annotations

import argparse
import io
import logging
import sys
from typing import Any, Dict, List, Optional

import msgspec

from ..config import WireConfig, load_config
from ..errors import P2PError, as_error_dict
from ..version import __version__
from ..wire.frames import HEADER_SIZE, MessageHeader, encode_message, read_any_message, read_message
from ..wire.encoding import TEXT_ERRORS
from ..wire.message_ids import MsgType, is_request, response_for
from ..wire.messages import (
    REGISTRY,
    Capabilities,
    GetPeerAddrs,
    Message,
    PeerAddr,
    PeerAddrs,
    PeerError,
    Ping,
    Pong,
)

log = logging.getLogger("gringo.p2p.cli")

_BY_NAME = {
    "ping": Ping,
    "pong": Pong,
    "get-peer-addrs": GetPeerAddrs,
    "peer-addrs": PeerAddrs,
    "error": PeerError,
}

_json = msgspec.json.Encoder()


# ---- Logging --------------------------------------------------------------------------
def _setup_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )


# ---- Rendering ------------------------------------------------------------------------
def _capability_names(caps: int) -> List[str]:
    names = [
        c.name
        for c in (Capabilities.FULL_HIST, Capabilities.UTXO_HIST, Capabilities.PEER_LIST)
        if caps & c
    ]
    return names or [Capabilities.UNKNOWN.name]


def describe(msg: Message) -> Dict[str, Any]:
    """Plain-data view of a message, safe to hand to any JSON encoder."""
    out: Dict[str, Any] = {"type": MsgType(msg.msg_type).name}
    if isinstance(msg, Ping):  # Pong included
        out["total_difficulty"] = msg.total_difficulty
        out["height"] = msg.height
    elif isinstance(msg, GetPeerAddrs):
        out["capabilities"] = int(msg.capabilities)
        out["capability_names"] = _capability_names(int(msg.capabilities))
    elif isinstance(msg, PeerAddrs):
        out["peers"] = [str(p) for p in msg.peers]
    elif isinstance(msg, PeerError):
        out["code"] = msg.code
        # bytes that were not valid UTF-8 show up as \xNN escapes
        raw = msg.message.encode("utf-8", TEXT_ERRORS)
        out["message"] = raw.decode("utf-8", "backslashreplace")
    return out


def _emit(obj: Any, *, stream=None) -> None:
    stream = stream or sys.stdout
    stream.write(msgspec.json.format(_json.encode(obj), indent=2).decode("utf-8"))
    stream.write("\n")


def _parse_hex(s: str) -> bytes:
    s = "".join(s.split())
    if s.lower().startswith("0x"):
        s = s[2:]
    return bytes.fromhex(s)


# ---- Commands -------------------------------------------------------------------------
def _build_message(args: argparse.Namespace) -> Message:
    kind = args.kind
    if kind in ("ping", "pong"):
        return _BY_NAME[kind](total_difficulty=args.total_difficulty, height=args.height)
    if kind == "get-peer-addrs":
        return GetPeerAddrs(capabilities=Capabilities(args.capabilities))
    if kind == "peer-addrs":
        return PeerAddrs(peers=tuple(PeerAddr.parse(p) for p in args.peer))
    return PeerError(code=args.code, message=args.message)


def cmd_encode(args: argparse.Namespace, config: WireConfig) -> int:
    msg = _build_message(args)
    frame = encode_message(msg, config)
    log.debug("encoded %r into %d bytes", msg, len(frame))
    print(frame.hex())
    return 0


def cmd_decode(args: argparse.Namespace, config: WireConfig) -> int:
    try:
        data = _parse_hex(args.hex)
    except ValueError as e:
        print(f"invalid hex: {e}", file=sys.stderr)
        return 2

    stream = io.BytesIO(data)
    try:
        if args.expect:
            msg, consumed = read_message(stream, _BY_NAME[args.expect], config)
        else:
            msg, consumed = read_any_message(stream, config)
    except P2PError as e:
        _emit({"error": as_error_dict(e)}, stream=sys.stderr)
        return 1

    header = MessageHeader.read(io.BytesIO(data[:HEADER_SIZE]), magic=config.magic)
    _emit(
        {
            "header": {
                "magic": bytes(header.magic).hex(),
                "type": int(header.msg_type),
                "length": header.length,
            },
            "consumed": consumed,
            "trailing": len(data) - consumed,
            "message": describe(msg),
        }
    )
    return 0


def cmd_types(args: argparse.Namespace, config: WireConfig) -> int:
    rows = []
    for mt in MsgType:
        codec = REGISTRY.get(mt)
        resp = response_for(mt)
        rows.append(
            {
                "tag": int(mt),
                "name": mt.name,
                "codec": codec.__name__ if codec else None,
                "request": is_request(mt),
                "response": resp.name if resp is not None else None,
            }
        )
    _emit(rows)
    return 0


# ---- Args -----------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="gringo-wire", description="gringo P2P wire inspector")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--magic", default=None, help="Override magic (hex, 2 bytes)")
    sub = p.add_subparsers(dest="cmd", metavar="<cmd>")

    sp = sub.add_parser("encode", help="Frame a message and print it as hex")
    kinds = sp.add_subparsers(dest="kind", metavar="<type>")
    for name in ("ping", "pong"):
        k = kinds.add_parser(name)
        k.add_argument("--total-difficulty", type=int, default=0)
        k.add_argument("--height", type=int, default=0)
    k = kinds.add_parser("get-peer-addrs")
    k.add_argument("--capabilities", type=int, default=int(Capabilities.UNKNOWN))
    k = kinds.add_parser("peer-addrs")
    k.add_argument("--peer", action="append", default=[], help="host:port (repeatable)")
    k = kinds.add_parser("error")
    k.add_argument("--code", type=int, default=0)
    k.add_argument("--message", default="")
    sp.set_defaults(func=cmd_encode)

    sp = sub.add_parser("decode", help="Decode one hex frame")
    sp.add_argument("hex", help="Frame bytes as hex (0x prefix and whitespace allowed)")
    sp.add_argument("--expect", choices=sorted(_BY_NAME), default=None,
                    help="Require this message type instead of dispatching on the header")
    sp.set_defaults(func=cmd_decode)

    sp = sub.add_parser("types", help="List message type tags")
    sp.set_defaults(func=cmd_types)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    func = getattr(args, "func", None)
    if not func or (args.cmd == "encode" and not args.kind):
        parser.print_help()
        return 2

    config = load_config()
    try:
        if args.magic:
            config = config.with_limits(magic=_parse_hex(args.magic))
        return int(func(args, config) or 0)
    except (P2PError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\n^C")
        return 130


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
