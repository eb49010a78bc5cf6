from __future__ import annotations

from udptp.bench import run_benchmark


def test_loopback_benchmark():
    result = run_benchmark(size=512, duration=1, timeout_ms=2000)

    assert result.host.sample_count > 0
    assert result.host.jitter_count == 0
    assert result.client.jitter_count == 0
    assert result.host.total_bytes == 28 + result.host.sample_count * (512 + 16)

    summary = result.as_dict()
    assert set(summary) == {"host", "client"}
    assert summary["host"]["samples"] == result.host.sample_count
