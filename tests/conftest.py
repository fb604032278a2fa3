"""
Shared fixtures for the FloppyIO test suite.

Most tests run a host and a peer channel over one in-memory region. A
small region keeps buffers short so truncation and chunking are easy to
exercise: with 64 bytes each buffer holds 31 bytes, i.e. 30 payload bytes
in text framing and 27 in binary framing.
"""

import threading

import pytest

from floppyio import ChannelConfig, FloppyIO, MemoryStore, Role
from floppyio.protocol.waiter import PollingWaiter


REGION_SIZE = 64
BUFFER_SIZE = REGION_SIZE // 2 - 1
TEXT_CAPACITY = BUFFER_SIZE - 1
BINARY_CAPACITY = BUFFER_SIZE - 4


class FakeClock:
    """Deterministic clock; sleeping advances time instantly."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def run_in_thread(func, *args):
    """
    Run func(*args) on a daemon thread.

    Returns:
        (thread, result) where result gets "value" or "error" once the
        thread finishes.
    """
    result = {}

    def target():
        try:
            result["value"] = func(*args)
        except Exception as e:
            result["error"] = e

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread, result


@pytest.fixture
def background():
    """Runner for the other side of a synchronized transfer."""
    return run_in_thread


@pytest.fixture
def region():
    """Shared region bytes for a host/peer pair."""
    return bytearray(REGION_SIZE)


@pytest.fixture
def fake_clock():
    """Fake clock for driving polling waits without delays."""
    return FakeClock()


@pytest.fixture
def make_pair(region):
    """
    Factory for a host and a peer channel sharing one region.

    Keyword arguments are ChannelConfig fields applied to both sides. The
    host initializes the region; the peer opens it without wiping.
    """

    def _make(**fields):
        fields.setdefault("region_size", REGION_SIZE)
        fields.setdefault("poll_interval", 0.001)
        host = FloppyIO(
            MemoryStore(region),
            ChannelConfig(**{**fields, "role": Role.HOST}),
        )
        peer = FloppyIO(
            MemoryStore(region),
            ChannelConfig(**{**fields, "role": Role.PEER, "skip_init": True}),
        )
        return host, peer

    return _make


@pytest.fixture
def make_lonely(region, fake_clock):
    """
    Factory for a single channel with no peer, polling on the fake clock.

    Synchronized operations on such a channel always time out.
    """

    def _make(**fields):
        fields.setdefault("region_size", REGION_SIZE)
        fields.setdefault("synchronized", True)
        fields.setdefault("sync_timeout", 1)
        store = MemoryStore(region)
        waiter = PollingWaiter(
            store, interval=0.01, clock=fake_clock, sleep=fake_clock.sleep
        )
        return FloppyIO(store, ChannelConfig(**fields), waiter=waiter)

    return _make
