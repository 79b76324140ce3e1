import socket

import pytest

from ping_phantom.core import raw_socket
from ping_phantom.core.errors import ReadTimeout, TransportError, TransportOpenError, WriteError
from ping_phantom.core.raw_socket import PacketChannel, RawICMPChannel, create_icmp_socket


class StubSocket:
    def __init__(self, recv_result=None, recv_error=None, send_error=None, setsockopt_error=None,
                 datagrams=None, connect_error=None):
        self.recv_result = recv_result
        self.recv_error = recv_error
        self.send_error = send_error
        self.setsockopt_error = setsockopt_error
        self.datagrams = list(datagrams or [])
        self.connect_error = connect_error
        self.connected = []
        self.sent = []
        self.timeouts = []
        self.options = []
        self.close_calls = 0

    def connect(self, address):
        if self.connect_error:
            raise self.connect_error
        self.connected.append(address)

    def sendto(self, data, address):
        if self.send_error:
            raise self.send_error
        self.sent.append((data, address))
        return len(data)

    def settimeout(self, timeout):
        self.timeouts.append(timeout)

    def recvfrom(self, size):
        if self.recv_error:
            raise self.recv_error
        if self.datagrams:
            data, source = self.datagrams.pop(0)
            return data[:size], (source, 0)
        if self.recv_result is None:
            raise socket.timeout()
        return self.recv_result[:size], ('192.0.2.1', 0)

    def setsockopt(self, level, option, value):
        if self.setsockopt_error:
            raise self.setsockopt_error
        self.options.append((level, option, value))

    def close(self):
        self.close_calls += 1


def test_write_sends_to_resolved_address():
    stub = StubSocket()
    channel = RawICMPChannel(stub, '192.0.2.1', 'host.example')

    assert channel.write(b'\x08' * 8) == 8
    assert stub.sent == [(b'\x08' * 8, ('192.0.2.1', 0))]


def test_write_failure_becomes_write_error():
    channel = RawICMPChannel(StubSocket(send_error=OSError("unreachable")), '192.0.2.1', 'h')
    with pytest.raises(WriteError):
        channel.write(b'x')


def test_read_applies_timeout():
    stub = StubSocket(recv_result=b'datagram')
    channel = RawICMPChannel(stub, '192.0.2.1', 'h')

    assert channel.read(1500, timeout=1.5) == b'datagram'
    assert stub.timeouts == [1.5]


def test_read_timeout():
    channel = RawICMPChannel(StubSocket(recv_error=socket.timeout()), '192.0.2.1', 'h')
    with pytest.raises(ReadTimeout):
        channel.read(timeout=0.1)


def test_expired_deadline_times_out_without_reading():
    stub = StubSocket(recv_result=b'late')
    channel = RawICMPChannel(stub, '192.0.2.1', 'h')

    with pytest.raises(ReadTimeout):
        channel.read(timeout=0)
    assert stub.timeouts == []


def test_other_receive_failure_is_transport_error():
    channel = RawICMPChannel(StubSocket(recv_error=ConnectionResetError()), '192.0.2.1', 'h')
    with pytest.raises(TransportError) as excinfo:
        channel.read(timeout=1)
    assert not isinstance(excinfo.value, ReadTimeout)


def test_context_manager_closes_once():
    stub = StubSocket()
    with RawICMPChannel(stub, '192.0.2.1', 'h') as channel:
        pass
    channel.close()

    assert channel.closed
    assert stub.close_calls == 1


def test_open_unresolvable_host(monkeypatch):
    def fail(host):
        raise socket.gaierror(-2, "Name or service not known")

    monkeypatch.setattr(raw_socket.socket, "gethostbyname", fail)

    with pytest.raises(TransportOpenError, match="resolve"):
        RawICMPChannel.open("no-such-host.invalid")


def test_open_without_privileges(monkeypatch):
    def denied(ttl=None):
        raise PermissionError(1, "Operation not permitted")

    monkeypatch.setattr(raw_socket.socket, "gethostbyname", lambda host: "192.0.2.1")
    monkeypatch.setattr(raw_socket, "create_icmp_socket", denied)

    with pytest.raises(TransportOpenError) as excinfo:
        RawICMPChannel.open("192.0.2.1", ttl=64)
    assert isinstance(excinfo.value.__cause__, PermissionError)


def test_open_resolves_target(monkeypatch):
    stub = StubSocket()
    monkeypatch.setattr(raw_socket.socket, "gethostbyname", lambda host: "192.0.2.7")
    monkeypatch.setattr(raw_socket, "create_icmp_socket", lambda ttl=None: stub)

    channel = RawICMPChannel.open("host.example", ttl=64)

    assert channel.address == "192.0.2.7"
    assert channel.target == "host.example"


def test_ttl_is_best_effort(monkeypatch):
    stub = StubSocket(setsockopt_error=OSError("not supported"))
    monkeypatch.setattr(raw_socket.socket, "socket", lambda *args: stub)

    assert create_icmp_socket(ttl=64) is stub


def test_ttl_is_set(monkeypatch):
    stub = StubSocket()
    monkeypatch.setattr(raw_socket.socket, "socket", lambda *args: stub)

    create_icmp_socket(ttl=32)

    assert stub.options == [(socket.IPPROTO_IP, socket.IP_TTL, 32)]


def test_read_drops_datagrams_from_other_hosts():
    stub = StubSocket(datagrams=[(b'stray', '198.51.100.9'), (b'reply', '192.0.2.1')])
    channel = RawICMPChannel(stub, '192.0.2.1', 'h')

    assert channel.read(1500, timeout=5) == b'reply'
    assert len(stub.timeouts) == 2
    assert stub.timeouts[1] <= 5


def test_read_times_out_when_only_other_hosts_answer():
    stub = StubSocket(datagrams=[(b'stray', '198.51.100.9'), (b'stray', '198.51.100.10')])
    channel = RawICMPChannel(stub, '192.0.2.1', 'h')

    with pytest.raises(ReadTimeout):
        channel.read(timeout=5)
    assert not stub.datagrams


def test_open_connects_to_resolved_address(monkeypatch):
    stub = StubSocket()
    monkeypatch.setattr(raw_socket.socket, "gethostbyname", lambda host: "192.0.2.7")
    monkeypatch.setattr(raw_socket, "create_icmp_socket", lambda ttl=None: stub)

    RawICMPChannel.open("host.example")

    assert stub.connected == [("192.0.2.7", 0)]


def test_open_connect_failure_closes_socket(monkeypatch):
    stub = StubSocket(connect_error=OSError("network is unreachable"))
    monkeypatch.setattr(raw_socket.socket, "gethostbyname", lambda host: "192.0.2.7")
    monkeypatch.setattr(raw_socket, "create_icmp_socket", lambda ttl=None: stub)

    with pytest.raises(TransportOpenError, match="connect"):
        RawICMPChannel.open("host.example")
    assert stub.close_calls == 1


def test_channel_requires_read_write_close():
    class WriteOnly(PacketChannel):
        def write(self, packet):
            return len(packet)

    with pytest.raises(TypeError):
        PacketChannel()
    with pytest.raises(TypeError):
        WriteOnly()
