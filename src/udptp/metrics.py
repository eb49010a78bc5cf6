from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Iterator, List

from .constants import BUFFER_SIZE

MICROS_PER_SECOND = 1_000_000


class SampleKind(enum.Enum):
    DELIVERED = "delivered"
    DROPPED = "dropped"
    JITTERED = "jittered"


@dataclass(frozen=True, slots=True)
class Sample:
    started_at: float  # wall clock, seconds since the epoch
    elapsed_us: int
    byte_length: int
    kind: SampleKind


@dataclass(frozen=True, slots=True)
class Report:
    total_bytes: int
    total_micros: int
    jitter_count: int
    sample_count: int

    @property
    def total_seconds(self) -> int:
        return self.total_micros // MICROS_PER_SECOND

    @property
    def gross_throughput(self) -> float:
        """Bytes per whole second. Infinite when less than a second was measured."""
        if self.total_seconds == 0:
            return math.inf
        return self.total_bytes / self.total_seconds

    @property
    def jitter_percent(self) -> int:
        if self.jitter_count == 0:
            return 0
        return self.jitter_count // self.sample_count

    @property
    def precise_throughput(self) -> float:
        if self.total_micros == 0:
            return math.inf
        return self.total_bytes * MICROS_PER_SECOND / self.total_micros

    @property
    def jitter_ratio(self) -> float:
        if self.sample_count == 0:
            return 0.0
        return self.jitter_count / self.sample_count

    def as_dict(self) -> dict:
        return {
            "bytes": self.total_bytes,
            "seconds": self.total_seconds,
            "throughput_bps": self.gross_throughput,
            "precise_throughput_bps": self.precise_throughput,
            "jitter_percent": self.jitter_percent,
            "jitter_ratio": self.jitter_ratio,
            "samples": self.sample_count,
            "jittered": self.jitter_count,
        }


@dataclass(slots=True)
class Profile:
    """Append-only log of per-datagram samples, in arrival order."""

    _samples: List[Sample] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    @property
    def samples(self) -> tuple[Sample, ...]:
        return tuple(self._samples)

    def record(self, started_at: float, elapsed_us: int, byte_length: int, kind: SampleKind) -> Sample:
        sample = Sample(started_at, elapsed_us, byte_length, kind)
        self._samples.append(sample)
        return sample

    def report(self) -> Report:
        # the handshake buffer is counted once
        total_bytes = BUFFER_SIZE
        total_micros = 0
        jitter = 0
        for sample in self._samples:
            if sample.kind is SampleKind.DELIVERED:
                total_bytes += sample.byte_length
                total_micros += sample.elapsed_us
            else:
                jitter += 1
        return Report(
            total_bytes=total_bytes,
            total_micros=total_micros,
            jitter_count=jitter,
            sample_count=len(self._samples),
        )
