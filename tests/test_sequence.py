from __future__ import annotations

from udptp.sequence import FIRST_SEQUENCE, SequenceTracker


def test_outbound_post_increments():
    t = SequenceTracker()
    assert [t.next_outbound() for _ in range(3)] == [1, 2, 3]
    assert t.outbound == 4


def test_accept_advances_only_on_match():
    t = SequenceTracker()
    assert t.accept(FIRST_SEQUENCE) is True
    assert t.expected == 2
    assert t.accept(5) is False
    assert t.expected == 2


def test_resync_both_directions():
    t = SequenceTracker()
    t.resync_outbound(42)
    assert t.next_outbound() == 42
    t.resync_inbound(42)
    assert t.accept(42) is True
    assert t.expected == 43
