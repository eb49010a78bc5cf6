from __future__ import annotations

import socket
import threading
from typing import Callable, List, Union

import pytest

from udptp.bench import loopback_pair
from udptp.packet import ControlFrame

STOP = ControlFrame.stop().to_bytes()

# an inbound item is a datagram, an exception to raise from recv_into, or a
# callable that builds the datagram from the last frame we sent
Inbound = Union[bytes, BaseException, Callable[[bytes], bytes]]


class FakeEndpoint:
    def __init__(self, inbound: List[Inbound] | None = None):
        self.inbound = list(inbound or [])
        self.sent: List[bytes] = []
        self.closed = False
        self.local_address = ("127.0.0.1", 40000)

    def send(self, data: bytes, impaired: bool = True) -> None:
        if self.closed:
            raise OSError("send on closed endpoint")
        self.sent.append(bytes(data))

    def recv_into(self, buf: bytearray) -> int:
        if not self.inbound:
            raise socket.timeout("timed out")
        item = self.inbound.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            item = item(self.sent[-1])
        n = min(len(item), len(buf))
        buf[:n] = item[:n]
        return n

    def close(self) -> None:
        self.closed = True

    def stops(self) -> int:
        return sum(1 for frame in self.sent if frame == STOP)


@pytest.fixture
def fake():
    return FakeEndpoint


@pytest.fixture
def pair():
    a, b = loopback_pair(timeout_ms=2000)
    yield a, b
    for ep in (a, b):
        try:
            ep.close()
        except OSError:
            pass


def run_in_thread(fn):
    """Start ``fn`` in a daemon thread; the returned dict receives its result or error."""
    out: dict = {}

    def runner():
        try:
            out["result"] = fn()
        except BaseException as exc:
            out["error"] = exc

    t = threading.Thread(target=runner, daemon=True)
    t.start()
    out["thread"] = t
    return out


@pytest.fixture
def spawn():
    return run_in_thread
