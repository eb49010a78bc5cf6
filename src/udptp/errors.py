from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


class ThroughputError(Exception):
    """Base class for everything that ends a session early."""

    exit_code = 1
    message = "throughput session failed"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.message)


class PeerStopped(ThroughputError):
    """The other side asked to stop. An expected way for a session to end."""


class HostStopSignal(PeerStopped):
    exit_code = 3
    message = "host sent a stop signal"


class ClientStopSignal(PeerStopped):
    exit_code = 4
    message = "client sent a stop signal"


class ClientErrorSignal(ThroughputError):
    exit_code = 5
    message = "client reported an error"


class InvalidSignal(ThroughputError):
    exit_code = 6
    message = "invalid signal received"


class UDPError(ThroughputError):
    exit_code = 7
    message = "UDP transport error"


class MaximumFailedRequests(ThroughputError):
    exit_code = 8
    message = "too many initialization attempts"


@contextmanager
def udp_errors(action: str) -> Iterator[None]:
    """Re-raise socket failures inside the block as ``UDPError``."""
    try:
        yield
    except OSError as exc:
        raise UDPError(f"{action}: {exc}") from exc
