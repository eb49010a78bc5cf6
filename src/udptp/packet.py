"""Wire codec for control and data frames.

Control frames are ``code(4) [ count(8) [ value(16) ] ]``, big-endian. They are
always decoded from a zero-filled ``BUFFER_SIZE`` buffer, so any field the peer
did not send reads back as zero. A zero ``count`` or ``value`` therefore means
"absent or explicitly zero"; the handshake relies on that.

Data frames are ``sequence(16) payload(N)``.
"""
from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Optional, Union

from .constants import (
    BUFFER_SIZE,
    CODE_ERR,
    CODE_FORMAT,
    CODE_OK,
    CODE_RESEND_FROM_SEQ,
    CODE_RESYNC,
    CODE_START,
    CODE_STOP,
    CODE_SYN,
    COUNT_FORMAT,
    SEQ_LEN,
)

Buffer = Union[bytes, bytearray, memoryview]

_MAX_COUNT = (1 << 64) - 1
_MAX_VALUE = (1 << 128) - 1
_MICROS_MASK = (1 << 64) - 1


class SignalKind(enum.Enum):
    START = "start"
    OK = "ok"
    SYN = "syn"
    ERR = "err"
    STOP = "stop"
    RESYNC = "resync"
    RESEND_FROM_SEQ = "resend_from_seq"

    @property
    def code(self) -> int:
        return _WIRE_CODES[self]


_WIRE_CODES = {
    SignalKind.START: CODE_START,
    SignalKind.OK: CODE_OK,
    SignalKind.SYN: CODE_SYN,
    SignalKind.ERR: CODE_ERR,
    SignalKind.STOP: CODE_STOP,
    SignalKind.RESYNC: CODE_RESYNC,
    SignalKind.RESEND_FROM_SEQ: CODE_RESEND_FROM_SEQ,
}


class Phase(enum.Enum):
    """Who is reading the frame, and when. Selects the meaning of a wire code."""

    HOST_HANDSHAKE = "host_handshake"
    CLIENT_HANDSHAKE = "client_handshake"
    HOST_TRANSFER = "host_transfer"
    CLIENT_TRANSFER = "client_transfer"


_INBOUND = {
    Phase.HOST_HANDSHAKE: {
        CODE_SYN: SignalKind.SYN,
        CODE_ERR: SignalKind.ERR,
        CODE_STOP: SignalKind.STOP,
    },
    Phase.CLIENT_HANDSHAKE: {
        CODE_START: SignalKind.START,
        CODE_ERR: SignalKind.ERR,
        CODE_STOP: SignalKind.STOP,
    },
    Phase.HOST_TRANSFER: {
        CODE_OK: SignalKind.OK,
        CODE_ERR: SignalKind.ERR,
        CODE_STOP: SignalKind.STOP,
        CODE_RESYNC: SignalKind.RESYNC,
        CODE_RESEND_FROM_SEQ: SignalKind.RESEND_FROM_SEQ,
    },
    Phase.CLIENT_TRANSFER: {
        CODE_ERR: SignalKind.ERR,
        CODE_STOP: SignalKind.STOP,
    },
}


def new_buffer(size: int = BUFFER_SIZE) -> bytearray:
    return bytearray(size)


@dataclass(frozen=True, slots=True)
class ControlFrame:
    kind: SignalKind
    count: Optional[int] = None
    value: Optional[int] = None

    def to_bytes(self) -> bytes:
        out = struct.pack(CODE_FORMAT, self.kind.code)
        if self.count is None and self.value is None:
            return out

        # fixed offsets: a value always follows a count slot, zeroed when no count is set
        count = self.count or 0
        if not 0 <= count <= _MAX_COUNT:
            raise ValueError(f"count out of range: {count}")
        out += struct.pack(COUNT_FORMAT, count)
        if self.value is None:
            return out

        if not 0 <= self.value <= _MAX_VALUE:
            raise ValueError(f"value out of range: {self.value}")
        return out + self.value.to_bytes(16, "big")

    @staticmethod
    def start(size: int, duration: int) -> "ControlFrame":
        return ControlFrame(SignalKind.START, count=size, value=duration)

    @staticmethod
    def ok(received: int, elapsed_us: int) -> "ControlFrame":
        return ControlFrame(SignalKind.OK, count=received, value=elapsed_us)

    @staticmethod
    def syn(size: int) -> "ControlFrame":
        return ControlFrame(SignalKind.SYN, count=size)

    @staticmethod
    def err() -> "ControlFrame":
        return ControlFrame(SignalKind.ERR)

    @staticmethod
    def stop() -> "ControlFrame":
        return ControlFrame(SignalKind.STOP)

    @staticmethod
    def resync(seq: int) -> "ControlFrame":
        return ControlFrame(SignalKind.RESYNC, value=seq)

    @staticmethod
    def resend_from(seq: int) -> "ControlFrame":
        return ControlFrame(SignalKind.RESEND_FROM_SEQ, value=seq)


@dataclass(frozen=True, slots=True)
class Packet:
    """Decoded view of a received control buffer."""

    code: int
    count: int
    value: int

    @staticmethod
    def from_buffer(buf: Buffer) -> "Packet":
        # shorter input is treated like the unused tail of a zeroed buffer
        raw = bytes(buf[:BUFFER_SIZE]).ljust(BUFFER_SIZE, b"\x00")
        (code,) = struct.unpack_from(CODE_FORMAT, raw, 0)
        (count,) = struct.unpack_from(COUNT_FORMAT, raw, 4)
        value = int.from_bytes(raw[12:28], "big")
        return Packet(code=code, count=count, value=value)

    @property
    def elapsed_us(self) -> int:
        return self.value & _MICROS_MASK

    def signal(self, phase: Phase) -> Optional[SignalKind]:
        return _INBOUND[phase].get(self.code)


@dataclass(frozen=True, slots=True)
class DataFrame:
    sequence: int
    payload: bytes = b""

    def to_bytes(self) -> bytes:
        if not 0 <= self.sequence <= _MAX_VALUE:
            raise ValueError(f"sequence out of range: {self.sequence}")
        return self.sequence.to_bytes(SEQ_LEN, "big") + self.payload

    @staticmethod
    def sequence_of(buf: Buffer) -> int:
        if len(buf) < SEQ_LEN:
            raise ValueError("buffer too small to hold a sequence number")
        return int.from_bytes(bytes(buf[:SEQ_LEN]), "big")
