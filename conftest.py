import io

import pytest

from gringo_p2p.config import DEFAULT_CONFIG, WireConfig


@pytest.fixture
def tight_config() -> WireConfig:
    """Small ceilings so limit checks can be hit with tiny inputs."""
    return DEFAULT_CONFIG.with_limits(max_message_bytes=64, max_string_length=8, max_peer_addrs=2)


@pytest.fixture
def buf() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture(autouse=True)
def _clean_wire_env(monkeypatch):
    """Keep a developer's GRINGO_P2P_* environment out of the tests."""
    import os

    for k in list(os.environ):
        if k.startswith("GRINGO_P2P_"):
            monkeypatch.delenv(k, raising=False)
