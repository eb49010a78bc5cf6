"""UDP throughput profiler (udptp)

Measures one-way UDP throughput between a host and a client:
- a small control-frame codec with a fixed-size, zero-filled receive buffer
- a two-phase handshake that hands the test parameters to the client
- a stop-and-wait transfer loop with explicit sequence resynchronization
- a session that always tells the peer to stop when it ends
"""

__all__ = []
