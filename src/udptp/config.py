from __future__ import annotations

import enum
import random
import socket
import string
from dataclasses import dataclass, replace
from typing import Optional

from .constants import DEFAULT_SIZE, DEFAULT_TIME, DEFAULT_TIMEOUT_MS, MAX_PAYLOAD
from .net import Address, Impairment

_ALPHANUMERIC = string.ascii_letters + string.digits


class Role(enum.Enum):
    HOST = "host"
    CLIENT = "client"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    local: Address
    remote: Address
    role: Role = Role.HOST
    size: int = DEFAULT_SIZE
    duration: int = DEFAULT_TIME
    payload: bytes = b""
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    loss_rate: float = 0.0
    delay_ms: int = 0

    def __post_init__(self) -> None:
        for host, port in (self.local, self.remote):
            if not 0 <= port <= 65535:
                raise ValueError(f"port out of range: {host}:{port}")
        if self.size <= 0:
            raise ValueError(f"payload size must be positive, got {self.size}")
        if self.size > MAX_PAYLOAD:
            raise ValueError(f"payload size must fit in one datagram, got {self.size} > {MAX_PAYLOAD}")
        if self.duration <= 0:
            raise ValueError(f"duration must be positive, got {self.duration}")
        if self.role is Role.HOST and len(self.payload) != self.size:
            raise ValueError(f"payload is {len(self.payload)} bytes, expected {self.size}")
        if not 0.0 <= self.loss_rate <= 1.0:
            raise ValueError(f"loss rate must be within [0, 1], got {self.loss_rate}")

    @property
    def is_client(self) -> bool:
        return self.role is Role.CLIENT

    @property
    def impairment(self) -> Impairment:
        return Impairment(loss_rate=self.loss_rate, delay_ms=self.delay_ms)

    def agreed(self, size: int, duration: int) -> "SessionConfig":
        """Copy with the parameters learned from the host during the handshake."""
        return replace(self, size=size, duration=duration)


def random_payload(size: int) -> bytes:
    return "".join(random.choices(_ALPHANUMERIC, k=size)).encode("ascii")


def discover_local_address() -> Optional[str]:
    """Address of the interface that routes to the internet, if any.

    Connecting a UDP socket sends nothing; it only makes the kernel pick a
    route and a source address.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("8.8.8.8", 80))
        return sock.getsockname()[0]
    except OSError:
        return None
    finally:
        sock.close()


def prompt(question: str) -> str:
    return input(question).strip().lower()
