"""Parameter negotiation before the transfer starts.

The host keeps offering ``Start(size, duration)`` until the client answers with
a ``Syn`` echoing the same size. The client waits for a usable ``Start``,
adopts its parameters and answers once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .constants import MAX_PAYLOAD, MAXIMUM_SYN_REQUESTS
from .errors import ClientStopSignal, HostStopSignal, MaximumFailedRequests, udp_errors
from .net import UdpEndpoint
from .packet import ControlFrame, Packet, Phase, SignalKind, new_buffer


@dataclass(frozen=True, slots=True)
class Agreement:
    size: int
    duration: int


@dataclass(slots=True)
class HostHandshake:
    udp: UdpEndpoint
    size: int
    duration: int
    max_attempts: int = MAXIMUM_SYN_REQUESTS

    def run(self) -> Agreement:
        start = ControlFrame.start(self.size, self.duration).to_bytes()
        failures = 0
        logging.info("running host initialization; size=%d duration=%ds", self.size, self.duration)

        while True:
            buf = new_buffer()
            with udp_errors("host initialization"):
                self.udp.send(start)
                self.udp.recv_into(buf)

            packet = Packet.from_buffer(buf)
            kind = packet.signal(Phase.HOST_HANDSHAKE)
            if kind is SignalKind.STOP:
                raise ClientStopSignal()
            if kind is SignalKind.SYN and packet.count == self.size:
                logging.info("successfully initialized; attempts=%d", failures + 1)
                return Agreement(self.size, self.duration)

            # a zero count means the client has not accepted the offer yet
            failures += 1
            logging.debug(
                "initialization reply rejected; code=%d count=%d failures=%d",
                packet.code,
                packet.count,
                failures,
            )
            if failures >= self.max_attempts:
                raise MaximumFailedRequests(f"no valid reply after {failures} attempts")


@dataclass(slots=True)
class ClientHandshake:
    udp: UdpEndpoint

    def _reply(self, frame: ControlFrame) -> None:
        with udp_errors("client initialization"):
            self.udp.send(frame.to_bytes())

    def run(self) -> Agreement:
        logging.info("running client initialization")
        while True:
            buf = new_buffer()
            with udp_errors("client initialization"):
                self.udp.recv_into(buf)

            packet = Packet.from_buffer(buf)
            kind = packet.signal(Phase.CLIENT_HANDSHAKE)
            if kind is SignalKind.START:
                if packet.count == 0 or packet.value == 0 or packet.count > MAX_PAYLOAD:
                    logging.debug("unusable start offer; size=%d duration=%d", packet.count, packet.value)
                    self._reply(ControlFrame.err())
                    continue
                self._reply(ControlFrame.syn(packet.count))
                logging.info("successfully initialized; size=%d duration=%ds", packet.count, packet.value)
                return Agreement(packet.count, packet.value)
            if kind is SignalKind.ERR:
                continue
            if kind is SignalKind.STOP:
                raise HostStopSignal()

            logging.debug("unexpected code during initialization: %d", packet.code)
            self._reply(ControlFrame.err())
