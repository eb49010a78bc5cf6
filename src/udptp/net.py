from __future__ import annotations

import random
import socket
import time
from dataclasses import dataclass
from typing import Tuple

Address = Tuple[str, int]


@dataclass(frozen=True, slots=True)
class Impairment:
    loss_rate: float = 0.0
    delay_ms: int = 0

    def should_drop(self) -> bool:
        return random.random() < self.loss_rate

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)


class UdpEndpoint:
    """A UDP socket bound to a local address and connected to one peer."""

    def __init__(self, sock: socket.socket, impairment: Impairment | None = None):
        self.sock = sock
        self.impairment = impairment or Impairment()

    @classmethod
    def bound(
        cls,
        local: Address,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(local)
        except OSError:
            sock.close()
            raise
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, impairment)

    @classmethod
    def connected(
        cls,
        local: Address,
        remote: Address,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        endpoint = cls.bound(local, timeout_ms=timeout_ms, impairment=impairment)
        try:
            endpoint.connect(remote)
        except OSError:
            endpoint.close()
            raise
        return endpoint

    @property
    def local_address(self) -> Address:
        return self.sock.getsockname()

    def connect(self, remote: Address) -> None:
        self.sock.connect(remote)

    def send(self, data: bytes, impaired: bool = True) -> None:
        if impaired:
            if self.impairment.should_drop():
                return
            self.impairment.sleep_if_needed()
        self.sock.send(data)

    def recv_into(self, buf: bytearray) -> int:
        """Receive one datagram into ``buf``; anything past the buffer is discarded."""
        return self.sock.recv_into(buf)

    def close(self) -> None:
        self.sock.close()
