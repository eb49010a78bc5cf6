from __future__ import annotations

from dataclasses import dataclass

FIRST_SEQUENCE = 1


@dataclass(slots=True)
class SequenceTracker:
    """Outbound counter for the host, expected counter for the client.

    Both sides start at ``FIRST_SEQUENCE``. Only ``accept`` advances the
    expected counter, only ``next_outbound`` advances the outbound one.
    """

    outbound: int = FIRST_SEQUENCE
    expected: int = FIRST_SEQUENCE

    def next_outbound(self) -> int:
        seq = self.outbound
        self.outbound += 1
        return seq

    def resync_outbound(self, seq: int) -> None:
        self.outbound = seq

    def accept(self, seq: int) -> bool:
        if seq != self.expected:
            return False
        self.expected += 1
        return True

    def resync_inbound(self, seq: int) -> None:
        self.expected = seq
