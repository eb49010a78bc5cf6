from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .config import Role, SessionConfig, random_payload
from .constants import DEFAULT_SIZE, DEFAULT_TIME
from .metrics import Report
from .net import UdpEndpoint
from .session import Session, finish

LOOPBACK = "127.0.0.1"


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    host: Report
    client: Report
    host_stop: Optional[str] = None
    client_stop: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "host": {**self.host.as_dict(), "stopped_by_peer": self.host_stop},
            "client": {**self.client.as_dict(), "stopped_by_peer": self.client_stop},
        }


def loopback_pair(timeout_ms: int = 0) -> Tuple[UdpEndpoint, UdpEndpoint]:
    """Two endpoints on 127.0.0.1, each connected to the other."""
    a = UdpEndpoint.bound((LOOPBACK, 0), timeout_ms=timeout_ms)
    b = UdpEndpoint.bound((LOOPBACK, 0), timeout_ms=timeout_ms)
    a.connect(b.local_address)
    b.connect(a.local_address)
    return a, b


def run_benchmark(
    *,
    size: int = DEFAULT_SIZE,
    duration: int = DEFAULT_TIME,
    timeout_ms: int = 2000,
) -> BenchmarkResult:
    host_ep, client_ep = loopback_pair(timeout_ms=timeout_ms)
    host_cfg = SessionConfig(
        local=host_ep.local_address,
        remote=client_ep.local_address,
        role=Role.HOST,
        size=size,
        duration=duration,
        payload=random_payload(size),
        timeout_ms=timeout_ms,
    )
    # the client learns size and duration during the handshake
    client_cfg = SessionConfig(
        local=client_ep.local_address,
        remote=host_ep.local_address,
        role=Role.CLIENT,
        timeout_ms=timeout_ms,
    )

    client = Session(client_cfg, udp=client_ep)
    client_holder: Dict[str, object] = {}

    def client_runner() -> None:
        try:
            client_holder["result"] = finish(client)
        except BaseException as exc:  # re-raised in the calling thread
            client_holder["error"] = exc

    t = threading.Thread(target=client_runner, daemon=True)
    t.start()

    host = Session(host_cfg, udp=host_ep)
    host_report, host_stop = finish(host)

    t.join(timeout=duration + timeout_ms / 1000.0 + 5.0)
    if "error" in client_holder:
        raise client_holder["error"]  # type: ignore[misc]
    if "result" not in client_holder:
        raise RuntimeError("client session did not finish")
    client_report, client_stop = client_holder["result"]  # type: ignore[misc]

    return BenchmarkResult(
        host=host_report,
        client=client_report,
        host_stop=host_stop,
        client_stop=client_stop,
    )
