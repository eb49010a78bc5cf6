from __future__ import annotations

import socket

import pytest

from udptp.constants import MAX_PAYLOAD
from udptp.errors import ClientStopSignal, HostStopSignal, MaximumFailedRequests, UDPError
from udptp.handshake import Agreement, ClientHandshake, HostHandshake
from udptp.packet import ControlFrame, Packet


def test_host_succeeds_on_matching_syn(fake):
    udp = fake([ControlFrame.syn(1024).to_bytes()])
    assert HostHandshake(udp, 1024, 10).run() == Agreement(1024, 10)
    assert udp.sent == [ControlFrame.start(1024, 10).to_bytes()]


def test_host_retries_until_syn_matches(fake):
    udp = fake([
        ControlFrame.syn(0).to_bytes(),
        ControlFrame.err().to_bytes(),
        ControlFrame.syn(99).to_bytes(),
        ControlFrame.syn(64).to_bytes(),
    ])
    assert HostHandshake(udp, 64, 3).run().size == 64
    assert len(udp.sent) == 4


def test_host_gives_up_after_ceiling(fake):
    udp = fake([ControlFrame.syn(0).to_bytes()] * 150)
    with pytest.raises(MaximumFailedRequests):
        HostHandshake(udp, 64, 3).run()
    assert len(udp.sent) == 100


def test_host_stops_on_client_stop(fake):
    udp = fake([ControlFrame.stop().to_bytes()])
    with pytest.raises(ClientStopSignal):
        HostHandshake(udp, 64, 3).run()


def test_host_socket_error_is_udp_error(fake):
    udp = fake([ConnectionRefusedError("refused")])
    with pytest.raises(UDPError) as info:
        HostHandshake(udp, 64, 3).run()
    assert isinstance(info.value.__cause__, ConnectionRefusedError)


def test_client_adopts_offer_and_replies_syn(fake):
    udp = fake([ControlFrame.start(2048, 7).to_bytes()])
    assert ClientHandshake(udp).run() == Agreement(2048, 7)
    assert udp.sent == [ControlFrame.syn(2048).to_bytes()]


@pytest.mark.parametrize("size, duration", [(0, 5), (512, 0), (0, 0)])
def test_client_rejects_incomplete_offer(fake, size, duration):
    udp = fake([ControlFrame.start(size, duration).to_bytes(), ControlFrame.start(512, 5).to_bytes()])
    assert ClientHandshake(udp).run() == Agreement(512, 5)
    assert udp.sent == [ControlFrame.err().to_bytes(), ControlFrame.syn(512).to_bytes()]


def test_client_rejects_offer_too_large_for_a_datagram(fake):
    udp = fake([ControlFrame.start(1 << 62, 5).to_bytes(), ControlFrame.start(MAX_PAYLOAD, 5).to_bytes()])
    assert ClientHandshake(udp).run() == Agreement(MAX_PAYLOAD, 5)
    assert udp.sent == [ControlFrame.err().to_bytes(), ControlFrame.syn(MAX_PAYLOAD).to_bytes()]


def test_client_ignores_err_and_answers_unknown_with_err(fake):
    udp = fake([
        ControlFrame.err().to_bytes(),
        ControlFrame.resend_from(3).to_bytes(),
        ControlFrame.start(16, 1).to_bytes(),
    ])
    ClientHandshake(udp).run()
    assert [Packet.from_buffer(f).code for f in udp.sent] == [2, 1]


def test_client_stops_on_host_stop(fake):
    udp = fake([ControlFrame.stop().to_bytes()])
    with pytest.raises(HostStopSignal):
        ClientHandshake(udp).run()
    assert udp.sent == []


def test_client_timeout_is_udp_error(fake):
    udp = fake([socket.timeout("timed out")])
    with pytest.raises(UDPError):
        ClientHandshake(udp).run()


@pytest.mark.parametrize("size, duration", [(1, 1), (1400, 30), (65000, 3600)])
def test_host_and_client_agree_over_loopback(pair, spawn, size, duration):
    host_ep, client_ep = pair
    client = spawn(ClientHandshake(client_ep).run)

    agreed = HostHandshake(host_ep, size, duration).run()
    client["thread"].join(timeout=5)

    assert "error" not in client
    assert agreed == client["result"] == Agreement(size, duration)
