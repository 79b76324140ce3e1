"""
Shared fixtures: an in-memory packet channel and a nanosecond clock
so echo sessions run deterministically without raw sockets.
"""

import struct

import pytest

from ping_phantom.core.errors import ReadTimeout, WriteError
from ping_phantom.core.icmp_codec import ICMP_ECHO_REPLY, ICMPMessage
from ping_phantom.core.raw_socket import PacketChannel

NS_PER_MS = 1_000_000


def ipv4_header(ttl: int = 64, payload_len: int = 0,
                src: bytes = b'\xc0\x00\x02\x01', dst: bytes = b'\xc0\x00\x02\x64') -> bytes:
    """Minimal 20-byte IPv4 header carrying ICMP."""
    return struct.pack(
        '!BBHHHBBH4s4s',
        0x45, 0, 20 + payload_len, 0, 0, ttl, 1, 0, src, dst,
    )


class FakeClock:
    """Monotonic clock in nanoseconds, advanced by the fake channel."""

    def __init__(self, start_ns: int = 1_000 * NS_PER_MS):
        self.now_ns = start_ns

    def __call__(self) -> int:
        return self.now_ns

    def advance_ms(self, ms: float) -> None:
        self.now_ns += int(ms * NS_PER_MS)


class Reply:
    """
    Scripted echo reply built from the request that was just written.

    Fields left as None are copied from the request.
    """

    def __init__(self, rtt_ms: float = 10, ttl: int = 64, icmp_type: int = ICMP_ECHO_REPLY,
                 identifier=None, sequence=None, corrupt_checksum: bool = False):
        self.rtt_ms = rtt_ms
        self.ttl = ttl
        self.icmp_type = icmp_type
        self.identifier = identifier
        self.sequence = sequence
        self.corrupt_checksum = corrupt_checksum

    def datagram(self, request: bytes) -> bytes:
        req = ICMPMessage.deserialize(request)
        reply = ICMPMessage(
            type=self.icmp_type,
            code=0,
            identifier=req.identifier if self.identifier is None else self.identifier,
            sequence=req.sequence if self.sequence is None else self.sequence,
            payload=req.payload,
        ).with_checksum()
        if self.corrupt_checksum:
            reply = ICMPMessage(
                type=reply.type,
                code=reply.code,
                checksum=reply.checksum ^ 0x0101,
                identifier=reply.identifier,
                sequence=reply.sequence,
                payload=reply.payload,
            )
        icmp = reply.serialize()
        return ipv4_header(self.ttl, len(icmp)) + icmp


class Raw:
    """Scripted datagram returned verbatim."""

    def __init__(self, data: bytes, rtt_ms: float = 1):
        self.data = data
        self.rtt_ms = rtt_ms

    def datagram(self, request: bytes) -> bytes:
        return self.data


class Timeout:
    """Scripted read that waits out the deadline."""


class Fail:
    """Scripted read that raises error."""

    def __init__(self, error: Exception):
        self.error = error


class FakeChannel(PacketChannel):
    """
    In-memory PacketChannel driven by a script of Reply, Raw, Timeout
    and Fail steps, consumed one per read.
    """

    def __init__(self, clock: FakeClock, script=None, fail_write_at=None,
                 address: str = '192.0.2.100'):
        self.clock = clock
        self.script = list(script or [])
        self.fail_write_at = fail_write_at
        self.address = address
        self.writes = []
        self.read_timeouts = []
        self.closed = False

    def write(self, packet: bytes) -> int:
        if self.fail_write_at is not None and len(self.writes) + 1 == self.fail_write_at:
            raise WriteError("Send failed: network is unreachable")
        self.writes.append(packet)
        return len(packet)

    def read(self, size: int = 1500, timeout=None) -> bytes:
        self.read_timeouts.append(timeout)
        step = self.script.pop(0) if self.script else Timeout()
        if isinstance(step, Timeout):
            self.clock.advance_ms((timeout or 0) * 1000)
            raise ReadTimeout("No reply")
        if isinstance(step, Fail):
            raise step.error
        self.clock.advance_ms(step.rtt_ms)
        return step.datagram(self.writes[-1])[:size]

    def close(self) -> None:
        self.closed = True


class ChannelFactory:
    """Records open() arguments and hands out one FakeChannel."""

    def __init__(self, channel: FakeChannel, open_error: Exception = None):
        self.channel = channel
        self.open_error = open_error
        self.calls = []

    def __call__(self, target, ttl=None):
        self.calls.append((target, ttl))
        if self.open_error is not None:
            raise self.open_error
        return self.channel


class RecordingObserver:
    """SessionObserver that records every notice."""

    def __init__(self):
        self.events = []

    def session_started(self, config, address):
        self.events.append(('started', config.target, address))

    def reply_received(self, match):
        self.events.append(('reply', match))

    def request_timed_out(self, sequence):
        self.events.append(('timeout', sequence))

    def invalid_reply(self, sequence, reason):
        self.events.append(('invalid', sequence, reason))

    def kinds(self):
        return [event[0] for event in self.events]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_channel(clock):
    def _make(script=None, fail_write_at=None, open_error=None):
        channel = FakeChannel(clock, script, fail_write_at=fail_write_at)
        return ChannelFactory(channel, open_error=open_error)
    return _make


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def observer():
    return RecordingObserver()
