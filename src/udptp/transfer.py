from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from .constants import SEQ_LEN
from .errors import (
    ClientErrorSignal,
    ClientStopSignal,
    HostStopSignal,
    InvalidSignal,
    udp_errors,
)
from .metrics import MICROS_PER_SECOND, Profile, Sample, SampleKind
from .net import UdpEndpoint
from .packet import ControlFrame, DataFrame, Packet, Phase, SignalKind, new_buffer
from .sequence import SequenceTracker


@dataclass(slots=True)
class HostTransfer:
    """Sends one data frame per step and waits for the client's verdict."""

    udp: UdpEndpoint
    payload: bytes
    tracker: SequenceTracker
    profile: Profile

    def step(self) -> Optional[Sample]:
        frame = DataFrame(self.tracker.next_outbound(), self.payload)
        buf = new_buffer()
        started_at = time.time()
        with udp_errors("host transfer"):
            self.udp.send(frame.to_bytes())
            self.udp.recv_into(buf)

        packet = Packet.from_buffer(buf)
        kind = packet.signal(Phase.HOST_TRANSFER)
        if kind is SignalKind.OK:
            # the echoed length includes the sequence prefix
            if packet.count <= len(self.payload):
                raise InvalidSignal(
                    f"client acknowledged {packet.count} bytes of a {len(self.payload)} byte payload"
                )
            return self.profile.record(started_at, packet.elapsed_us, packet.count, SampleKind.DELIVERED)
        if kind is SignalKind.ERR:
            raise ClientErrorSignal()
        if kind is SignalKind.STOP:
            raise ClientStopSignal()
        if kind in (SignalKind.RESYNC, SignalKind.RESEND_FROM_SEQ):
            logging.debug("resync requested; sent seq=%d, resuming from seq=%d", frame.sequence, packet.value)
            self.tracker.resync_outbound(packet.value)
            return None
        raise InvalidSignal(f"unexpected code during transfer: {packet.code}")


@dataclass(slots=True)
class ClientTransfer:
    """Receives one data frame per step and acknowledges or resyncs it."""

    udp: UdpEndpoint
    size: int
    tracker: SequenceTracker
    profile: Profile

    def _reply(self, frame: ControlFrame) -> None:
        with udp_errors("client transfer"):
            self.udp.send(frame.to_bytes())

    def step(self) -> Sample:
        started_at = time.time()
        start = time.monotonic()
        buf = new_buffer(self.size + SEQ_LEN)
        with udp_errors("client transfer"):
            received = self.udp.recv_into(buf)

        if received == 0:
            self._reply(ControlFrame.err())
            raise InvalidSignal("empty datagram")
        if received < SEQ_LEN:
            packet = Packet.from_buffer(buf[:received])
            if packet.signal(Phase.CLIENT_TRANSFER) is SignalKind.STOP:
                raise HostStopSignal()

        seq = DataFrame.sequence_of(buf)
        elapsed_us = int((time.monotonic() - start) * MICROS_PER_SECOND)
        if self.tracker.accept(seq):
            self._reply(ControlFrame.ok(received, elapsed_us))
            return self.profile.record(started_at, elapsed_us, received, SampleKind.DELIVERED)

        logging.debug("out of sequence; expected=%d got=%d", self.tracker.expected, seq)
        self.tracker.resync_inbound(seq)
        self._reply(ControlFrame.resend_from(seq))
        return self.profile.record(started_at, elapsed_us, received, SampleKind.JITTERED)
