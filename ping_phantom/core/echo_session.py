"""
Echo Session Controller
=======================

Runs one ping session against a single target: builds and sends ICMP
Echo Requests, waits for matching Echo Replies, times them and keeps
the session statistics.

Per iteration:
    Sending(i) -> AwaitingReply(i) -> Matched | TimedOut | Mismatched

A reply matches when its type is Echo Reply and its identifier equals
the session identifier. The sequence number is NOT compared, so a
late reply to an earlier request is accepted for the current one.

Received datagrams are assumed to start with a fixed 20-byte IPv4
header (no options). The IHL nibble is not consulted.

Only TransportOpenError and WriteError (plus unexpected receive
failures) escape run(); timeouts and invalid replies are reported to
the observer and the loop continues.
"""

import logging
import math
import random
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from .errors import (
    MalformedPacket,
    ReadTimeout,
    ReplyMismatch,
    SessionConfigError,
    WriteError,
)
from .icmp_codec import ICMP_HEADER_SIZE, ICMPMessage, build_echo_request
from .raw_socket import MAX_READ_SIZE, PacketChannel, RawICMPChannel

logger = logging.getLogger(__name__)

IP_HEADER_SIZE = 20
IP_TTL_OFFSET = 8

# 65535 minus the 20-byte IPv4 header
MAX_PACKET_SIZE = 65515

NS_PER_MS = 1_000_000
NS_PER_SECOND = 1_000_000_000


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class EchoSessionConfig:
    """
    Parameters of one ping session. Immutable once the session starts.

    Attributes:
        target: Hostname or IPv4 address
        count: Number of echo requests to send
        interval: Seconds to wait between requests
        packet_size: Total ICMP size in bytes, 8-byte header included
        timeout: Seconds to wait for each reply
        ttl: Outbound time-to-live (best-effort hint)
        verify_checksum: Reject replies whose ICMP checksum is wrong
    """
    target: str
    count: int = 4
    interval: float = 1.0
    packet_size: int = 32
    timeout: float = 2.0
    ttl: int = 64
    verify_checksum: bool = False

    def __post_init__(self):
        if not self.target or not str(self.target).strip():
            raise SessionConfigError("Target cannot be empty")
        if self.count < 0:
            raise SessionConfigError(f"Count must be >= 0, got {self.count}")
        if not math.isfinite(self.interval) or self.interval < 0:
            raise SessionConfigError(f"Interval must be a finite number >= 0, got {self.interval}")
        if not 0 <= self.packet_size <= MAX_PACKET_SIZE:
            raise SessionConfigError(
                f"Packet size must be between 0 and {MAX_PACKET_SIZE}, got {self.packet_size}"
            )
        if not math.isfinite(self.timeout) or self.timeout <= 0:
            raise SessionConfigError(f"Timeout must be a finite number > 0, got {self.timeout}")
        if not 1 <= self.ttl <= 255:
            raise SessionConfigError(f"TTL must be between 1 and 255, got {self.ttl}")


# =============================================================================
# STATISTICS
# =============================================================================

@dataclass
class SessionStatistics:
    """
    Counters for one session. Round-trip times are integer nanoseconds.
    """
    sent: int = 0
    received: int = 0
    timeouts: int = 0
    invalid: int = 0
    min_rtt_ns: int = 0
    max_rtt_ns: int = 0
    sum_rtt_ns: int = 0

    def record_reply(self, rtt_ns: int) -> None:
        """Account for one matched reply."""
        self.received += 1
        if self.received == 1 or rtt_ns < self.min_rtt_ns:
            self.min_rtt_ns = rtt_ns
        if rtt_ns > self.max_rtt_ns:
            self.max_rtt_ns = rtt_ns
        self.sum_rtt_ns += rtt_ns

    @property
    def lost(self) -> int:
        return self.sent - self.received

    @property
    def loss_percent(self) -> float:
        """Loss as a percentage; 0.0 when nothing was sent."""
        if self.sent == 0:
            return 0.0
        return self.lost / self.sent * 100

    @property
    def avg_rtt_ns(self) -> int:
        if self.received == 0:
            return 0
        return self.sum_rtt_ns // self.received

    # Whole milliseconds, truncated

    @property
    def min_ms(self) -> int:
        return self.min_rtt_ns // NS_PER_MS

    @property
    def max_ms(self) -> int:
        return self.max_rtt_ns // NS_PER_MS

    @property
    def avg_ms(self) -> int:
        return self.avg_rtt_ns // NS_PER_MS


# =============================================================================
# PER-ITERATION RESULT
# =============================================================================

class ReplyOutcome(Enum):
    """Result of waiting for one echo reply."""
    MATCHED = "matched"
    TIMED_OUT = "timed_out"
    MISMATCHED = "mismatched"


@dataclass(frozen=True)
class ReplyMatch:
    """
    Outcome of one request/reply iteration.

    Attributes:
        outcome: Matched, timed out, or mismatched
        sequence: Sequence number of the request that was sent
        rtt_ns: Round-trip time (matched only)
        ttl: IP TTL of the reply (matched only)
        size: Configured packet size (matched only)
        reply_sequence: Sequence number carried by the reply (matched only)
        reason: Why the reply was rejected (mismatched only)
    """
    outcome: ReplyOutcome
    sequence: int
    rtt_ns: int = 0
    ttl: int = 0
    size: int = 0
    reply_sequence: Optional[int] = None
    reason: str = ''

    @property
    def rtt_ms(self) -> int:
        return self.rtt_ns // NS_PER_MS


class SessionObserver:
    """
    Receives per-iteration notices from an echo session.

    All methods are no-ops; reporters override what they display.
    """

    def session_started(self, config: EchoSessionConfig, address: str) -> None:
        pass

    def reply_received(self, match: ReplyMatch) -> None:
        pass

    def request_timed_out(self, sequence: int) -> None:
        pass

    def invalid_reply(self, sequence: int, reason: str) -> None:
        pass


ChannelFactory = Callable[[str, Optional[int]], PacketChannel]


# =============================================================================
# CONTROLLER
# =============================================================================

class EchoSession:
    """
    Drives one ping session over a packet channel.

    Usage:
        config = EchoSessionConfig("192.0.2.1", count=4)
        stats = EchoSession(config, identifier=os.getpid() & 0xFFFF).run()
        print(stats.received, stats.loss_percent)

    Args:
        config: Session parameters
        identifier: 16-bit ICMP identifier (random if None)
        channel_factory: Callable(target, ttl) returning an open PacketChannel
        observer: Receives per-iteration notices
        clock: Monotonic clock returning nanoseconds
        sleep: Interval sleep function taking seconds
        cancel_event: When set, the session stops before the next request
    """

    def __init__(
        self,
        config: EchoSessionConfig,
        identifier: Optional[int] = None,
        channel_factory: Optional[ChannelFactory] = None,
        observer: Optional[SessionObserver] = None,
        clock: Optional[Callable[[], int]] = None,
        sleep: Optional[Callable[[float], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if identifier is None:
            identifier = random.randint(0, 0xFFFF)  # nosec B311 - not cryptographic
        if not 0 <= identifier <= 0xFFFF:
            raise SessionConfigError(f"Identifier out of range: {identifier}")

        self.config = config
        self.identifier = identifier
        self.observer = observer or SessionObserver()
        self.stats = SessionStatistics()
        self._channel_factory = channel_factory or RawICMPChannel.open
        self._clock = clock or time.monotonic_ns
        self._sleep = sleep or time.sleep
        self._cancel_event = cancel_event

    def run(self) -> SessionStatistics:
        """
        Run the session to completion.

        Returns:
            Final statistics

        Raises:
            TransportOpenError: If the channel cannot be opened
            WriteError: If a request cannot be sent
        """
        self.stats = SessionStatistics()
        config = self.config

        with self._channel_factory(config.target, config.ttl) as channel:
            self.observer.session_started(config, channel.address)

            for index in range(config.count):
                if self._cancelled():
                    logger.info(f"Session to {config.target} cancelled after {self.stats.sent} requests")
                    break

                match = self._ping_once(channel, index)

                # A timeout has already waited out the deadline
                if match.outcome is ReplyOutcome.TIMED_OUT:
                    continue

                self._wait(config.interval)

        logger.debug(
            f"Session to {config.target} finished: sent={self.stats.sent} "
            f"received={self.stats.received}"
        )
        return self.stats

    def _ping_once(self, channel: PacketChannel, index: int) -> ReplyMatch:
        sequence = (index + 1) & 0xFFFF
        packet = build_echo_request(self.identifier, sequence, self.config.packet_size)

        start = self._clock()
        try:
            channel.write(packet)
        except WriteError as e:
            logger.debug(f"Aborting session at icmp_seq={sequence}: {e}")
            raise
        self.stats.sent += 1

        try:
            datagram = channel.read(MAX_READ_SIZE, timeout=self._remaining(start))
        except ReadTimeout:
            self.stats.timeouts += 1
            logger.debug(f"icmp_seq={sequence} timed out")
            self.observer.request_timed_out(sequence)
            return ReplyMatch(ReplyOutcome.TIMED_OUT, sequence)
        received_at = self._clock()

        try:
            ttl, reply = self.parse_reply(datagram)
            self._check_reply(reply)
        except (MalformedPacket, ReplyMismatch) as e:
            self.stats.invalid += 1
            logger.debug(f"icmp_seq={sequence} invalid reply: {e}")
            self.observer.invalid_reply(sequence, str(e))
            return ReplyMatch(ReplyOutcome.MISMATCHED, sequence, reason=str(e))

        rtt_ns = received_at - start
        self.stats.record_reply(rtt_ns)
        match = ReplyMatch(
            ReplyOutcome.MATCHED,
            sequence,
            rtt_ns=rtt_ns,
            ttl=ttl,
            size=self.config.packet_size,
            reply_sequence=reply.sequence,
        )
        self.observer.reply_received(match)
        return match

    @staticmethod
    def parse_reply(datagram: bytes) -> Tuple[int, ICMPMessage]:
        """
        Split a received datagram into (IP TTL, ICMP message).

        Raises:
            MalformedPacket: If the datagram cannot hold both headers
        """
        if len(datagram) < IP_HEADER_SIZE + ICMP_HEADER_SIZE:
            raise MalformedPacket(
                f"Datagram too short: {len(datagram)} bytes. "
                f"Minimum is {IP_HEADER_SIZE + ICMP_HEADER_SIZE} bytes."
            )
        ttl = datagram[IP_TTL_OFFSET]
        return ttl, ICMPMessage.deserialize(datagram[IP_HEADER_SIZE:])

    def _check_reply(self, reply: ICMPMessage) -> None:
        if not reply.is_echo_reply:
            raise ReplyMismatch(f"unexpected ICMP type {reply.type}")
        if reply.identifier != self.identifier:
            raise ReplyMismatch(
                f"identifier {reply.identifier} does not match {self.identifier}"
            )
        if self.config.verify_checksum and not reply.checksum_valid():
            raise ReplyMismatch(f"bad checksum 0x{reply.checksum:04x}")

    def _remaining(self, start: int) -> float:
        """Seconds left before the read deadline measured from start."""
        elapsed = (self._clock() - start) / NS_PER_SECOND
        return self.config.timeout - elapsed

    def _cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    def _wait(self, seconds: float) -> None:
        if seconds <= 0:
            return
        if self._cancel_event is not None:
            self._cancel_event.wait(seconds)
        else:
            self._sleep(seconds)


def run_echo_session(config: EchoSessionConfig, **kwargs) -> SessionStatistics:
    """
    Run one ping session and return its statistics.

    Keyword arguments are passed to EchoSession.
    """
    return EchoSession(config, **kwargs).run()


__all__ = [
    'EchoSession',
    'EchoSessionConfig',
    'ReplyMatch',
    'ReplyOutcome',
    'SessionObserver',
    'SessionStatistics',
    'run_echo_session',
    'IP_HEADER_SIZE',
    'MAX_PACKET_SIZE',
]
