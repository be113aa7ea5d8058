import io
import ipaddress

import pytest

from gringo_p2p.errors import OversizedCollection, OversizedField, TruncatedStream
from gringo_p2p.tests import TrackingReader
from gringo_p2p.wire.message_ids import MsgType
from gringo_p2p.wire.messages import (
    Capabilities,
    GetPeerAddrs,
    Message,
    PeerAddr,
    PeerAddrs,
    PeerError,
    Ping,
    Pong,
)


def _decode(cls, body, config=None):
    r = io.BytesIO(body)
    msg = cls.read(r) if config is None else cls.read(r, config)
    assert r.read() == b"", "decoder left bytes behind"
    return msg


# ---------------------------------------------------------------------------
# Ping / Pong
# ---------------------------------------------------------------------------


def test_ping_body_layout():
    body = Ping(total_difficulty=1000, height=42).to_bytes()
    assert body == bytes.fromhex("00000000000003e8" "000000000000002a")
    assert _decode(Ping, body) == Ping(total_difficulty=1000, height=42)


def test_pong_shares_ping_layout_but_not_identity():
    ping = Ping(total_difficulty=5, height=6)
    pong = Pong(total_difficulty=5, height=6)
    assert pong.to_bytes() == ping.to_bytes()
    assert Ping.msg_type == MsgType.PING
    assert Pong.msg_type == MsgType.PONG
    assert pong != ping
    assert _decode(Pong, pong.to_bytes()) == pong


def test_ping_u64_extremes():
    top = (1 << 64) - 1
    assert _decode(Ping, Ping(total_difficulty=top, height=top).to_bytes()).height == top
    with pytest.raises(ValueError):
        Ping(total_difficulty=1 << 64)
    with pytest.raises(ValueError):
        Ping(height=-1)


def test_messages_satisfy_protocol():
    for m in (Ping(), Pong(), GetPeerAddrs(), PeerAddrs(), PeerError()):
        assert isinstance(m, Message)


# ---------------------------------------------------------------------------
# GetPeerAddrs
# ---------------------------------------------------------------------------


def test_get_peer_addrs_layout():
    msg = GetPeerAddrs(capabilities=Capabilities.FULL_NODE)
    assert msg.to_bytes() == b"\x00\x00\x00\x07"
    assert _decode(GetPeerAddrs, msg.to_bytes()) == msg


def test_get_peer_addrs_keeps_unknown_bits():
    msg = _decode(GetPeerAddrs, b"\x80\x00\x00\x04")
    assert int(msg.capabilities) == 0x80000004
    assert msg.capabilities & Capabilities.PEER_LIST
    assert msg.to_bytes() == b"\x80\x00\x00\x04"


def test_get_peer_addrs_accepts_plain_int():
    assert GetPeerAddrs(capabilities=4).capabilities is Capabilities.PEER_LIST


# ---------------------------------------------------------------------------
# PeerAddrs
# ---------------------------------------------------------------------------


def test_empty_peer_addrs_is_four_bytes():
    r = io.BytesIO(b"\x00\x00\x00\x00" + b"next message")
    msg = PeerAddrs.read(r)
    assert msg.peers == ()
    assert r.tell() == 4


def test_peer_addrs_entry_layout():
    v4 = PeerAddr.parse("10.0.0.1:3414")
    v6 = PeerAddr.parse("[2001:db8::1]:13414")
    body = PeerAddrs(peers=(v4, v6)).to_bytes()
    assert body[:4] == b"\x00\x00\x00\x02"
    assert body[4:11] == b"\x00" + bytes([10, 0, 0, 1]) + (3414).to_bytes(2, "big")
    assert body[11] == 1
    assert body[12:28] == ipaddress.IPv6Address("2001:db8::1").packed
    assert body[28:30] == (13414).to_bytes(2, "big")
    assert len(body) == 30
    assert _decode(PeerAddrs, body).peers == (v4, v6)


def test_any_nonzero_family_means_ipv6():
    entry = b"\x07" + bytes(15) + b"\x01" + b"\x00\x50"
    msg = _decode(PeerAddrs, b"\x00\x00\x00\x01" + entry)
    assert msg.peers == (PeerAddr(ipaddress.IPv6Address("::1"), 80),)


def test_peer_addrs_count_checked_before_entries(tight_config):
    body = b"\x00\x00\x00\x03" + PeerAddr.parse("1.2.3.4:1").to_bytes() * 3
    r = TrackingReader(body, fail_after=4)
    with pytest.raises(OversizedCollection) as ei:
        PeerAddrs.read(r, tight_config)
    assert r.pos == 4
    assert ei.value.details["count"] == 3
    assert ei.value.details["limit"] == 2


def test_peer_addrs_at_limit_is_fine(tight_config):
    peers = (PeerAddr.parse("1.2.3.4:1"), PeerAddr.parse("5.6.7.8:2"))
    assert _decode(PeerAddrs, PeerAddrs(peers=peers).to_bytes(), tight_config).peers == peers


def test_peer_addrs_truncated_entry():
    body = b"\x00\x00\x00\x01" + b"\x00\x01\x02"
    with pytest.raises(TruncatedStream):
        PeerAddrs.read(io.BytesIO(body))


def test_peer_addrs_list_becomes_tuple():
    msg = PeerAddrs(peers=[PeerAddr.parse("1.1.1.1:1")])
    assert isinstance(msg.peers, tuple)


@pytest.mark.parametrize("text", ["1.2.3.4", "::1:80", "[::1]80", "1.2.3.4:70000", "host:1"])
def test_peer_addr_parse_rejects(text):
    with pytest.raises(ValueError):
        PeerAddr.parse(text)


def test_peer_addr_str():
    assert str(PeerAddr.parse("1.2.3.4:5")) == "1.2.3.4:5"
    assert str(PeerAddr.parse("[::1]:5")) == "[::1]:5"
    assert PeerAddr("192.168.0.1", 1).ip == ipaddress.IPv4Address("192.168.0.1")


# ---------------------------------------------------------------------------
# PeerError
# ---------------------------------------------------------------------------


def test_peer_error_layout():
    body = PeerError(code=9, message="bad").to_bytes()
    assert body == b"\x00\x00\x00\x09" + (3).to_bytes(8, "big") + b"bad"
    assert _decode(PeerError, body) == PeerError(code=9, message="bad")


def test_peer_error_unicode_length_is_bytes():
    msg = PeerError(code=1, message="héllo")
    assert msg.to_bytes()[4:12] == (6).to_bytes(8, "big")
    assert _decode(PeerError, msg.to_bytes()) == msg


def test_peer_error_encode_does_not_enforce_ceiling(tight_config):
    long = PeerError(code=1, message="x" * 100)
    assert len(long.to_bytes()) == 4 + 8 + 100
    with pytest.raises(OversizedField):
        PeerError.read(io.BytesIO(long.to_bytes()), tight_config)


def test_peer_error_length_checked_before_payload(tight_config):
    huge = (1 << 63).to_bytes(8, "big")
    r = TrackingReader(b"\x00\x00\x00\x01" + huge, fail_after=12)
    with pytest.raises(OversizedField) as ei:
        PeerError.read(r, tight_config)
    assert r.pos == 12
    assert ei.value.details["length"] == 1 << 63


def test_peer_error_keeps_non_utf8_bytes():
    body = b"\x00\x00\x00\x07" + (2).to_bytes(8, "big") + b"\xff\xfe"
    msg = _decode(PeerError, body)
    assert msg.code == 7
    assert msg.to_bytes() == body


def test_peer_error_mixed_text_and_raw_bytes():
    raw = "ok ".encode() + b"\xc3" + " é".encode()
    body = b"\x00\x00\x00\x01" + len(raw).to_bytes(8, "big") + raw
    msg = _decode(PeerError, body)
    assert msg.message.startswith("ok ")
    assert msg.message.endswith(" é")
    assert msg.to_bytes() == body


def test_peer_error_rejects_unencodable_text():
    with pytest.raises(ValueError):
        PeerError(code=1, message="\ud800")


def test_peer_error_short_payload():
    body = b"\x00\x00\x00\x01" + (5).to_bytes(8, "big") + b"ab"
    with pytest.raises(TruncatedStream):
        PeerError.read(io.BytesIO(body))
