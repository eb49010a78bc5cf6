from __future__ import annotations

import enum
import logging
import time
from typing import Callable, Optional, Tuple

from .config import SessionConfig
from .errors import PeerStopped, UDPError
from .handshake import Agreement, ClientHandshake, HostHandshake
from .metrics import Profile, Report
from .net import UdpEndpoint
from .packet import ControlFrame
from .sequence import SequenceTracker
from .transfer import ClientTransfer, HostTransfer


class State(enum.Enum):
    CREATED = "created"
    HANDSHAKING = "handshaking"
    TRANSFERRING = "transferring"
    CLOSED = "closed"


class Session:
    """One throughput test between this process and a single peer.

    The session owns its socket. Leaving it, by returning, raising or being
    interrupted, sends exactly one Stop frame to the peer and then closes the
    socket, so the peer is never left waiting on a datagram that will not come::

        with Session(config) as session:
            report = session.run()
    """

    def __init__(self, config: SessionConfig, udp: Optional[UdpEndpoint] = None):
        self.config = config
        self.state = State.CREATED
        self.udp = udp or UdpEndpoint.connected(
            config.local,
            config.remote,
            timeout_ms=config.timeout_ms,
            impairment=config.impairment,
        )
        self.profile = Profile()
        self.tracker = SequenceTracker()
        self.agreement: Optional[Agreement] = None
        self.last_activity: Optional[float] = None
        self.state = State.HANDSHAKING

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __str__(self) -> str:
        local = "%s:%d" % self.config.local
        remote = "%s:%d" % self.config.remote
        return f"Throughput UDP session from: {local} to: {remote}"

    def init_host(self) -> int:
        self.agreement = HostHandshake(self.udp, self.config.size, self.config.duration).run()
        return self.agreement.size

    def init_client(self) -> int:
        self.agreement = ClientHandshake(self.udp).run()
        self.config = self.config.agreed(self.agreement.size, self.agreement.duration)
        return self.agreement.size

    def handshake(self) -> int:
        if self.state is not State.HANDSHAKING:
            raise RuntimeError(f"cannot handshake in state {self.state.value}")
        size = self.init_client() if self.config.is_client else self.init_host()
        self.state = State.TRANSFERRING
        return size

    def transfer(self) -> Report:
        if self.state is not State.TRANSFERRING:
            raise RuntimeError(f"cannot transfer in state {self.state.value}")

        step: Callable[[], object]
        if self.config.is_client:
            step = ClientTransfer(self.udp, self.config.size, self.tracker, self.profile).step
        else:
            step = HostTransfer(self.udp, self.config.payload, self.tracker, self.profile).step

        logging.info("transferring for %ds", self.config.duration)
        start = time.monotonic()
        while time.monotonic() - start < self.config.duration:
            step()
            self.last_activity = time.monotonic()
        return self.profile.report()

    def run(self) -> Report:
        try:
            self.handshake()
            return self.transfer()
        finally:
            self.close()

    def close(self) -> None:
        if self.state is State.CLOSED:
            return
        self.state = State.CLOSED
        try:
            self.udp.send(ControlFrame.stop().to_bytes(), impaired=False)
        except OSError as exc:
            logging.warning("unable to send stop signal to %s:%d: %s", *self.config.remote, exc)
        finally:
            self.udp.close()
        logging.info("session closed; samples=%d", len(self.profile))


def finish(session: Session) -> Tuple[Report, Optional[str]]:
    """Run the session and return its report with the reason the peer ended it, if it did.

    After the handshake, a Stop from the peer, or the peer's port refusing our
    datagrams because it already closed, ends the test normally. Anything
    else, and anything before the handshake completes, is raised.
    """
    try:
        return session.run(), None
    except PeerStopped as exc:
        if session.agreement is None:
            raise
        reason = str(exc)
    except UDPError as exc:
        if session.agreement is None or not isinstance(exc.__cause__, ConnectionRefusedError):
            raise
        reason = "peer closed its socket"
    logging.info("%s; reporting what was measured", reason)
    return session.profile.report(), reason
