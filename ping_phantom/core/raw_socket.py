"""
Raw Socket Module - Raw ICMP transport for Ping Phantom.

Provides the packet channel an echo session talks through.

Features:
- Raw ICMPv4 socket creation (kernel builds the IP header)
- Best-effort outbound TTL
- Per-read deadlines
- Connected socket, foreign sources dropped
- Scoped close via context manager
- Root privilege detection

Received datagrams include the IPv4 header, as delivered by
SOCK_RAW on IPPROTO_ICMP.
"""

import logging
import os
import socket
import time
from abc import ABC, abstractmethod
from typing import Optional

from .errors import ReadTimeout, TransportError, TransportOpenError, WriteError

logger = logging.getLogger(__name__)

# Link MTU sized receive buffer
MAX_READ_SIZE = 1500


def is_root() -> bool:
    """
    Check if running as root.

    Returns:
        bool: True if running with root privileges
    """
    geteuid = getattr(os, 'geteuid', None)
    return geteuid is not None and geteuid() == 0


def create_icmp_socket(ttl: Optional[int] = None) -> socket.socket:
    """
    Create a raw ICMPv4 socket.

    Args:
        ttl: Outbound time-to-live. Best-effort: platforms that refuse
             IP_TTL on raw sockets keep their default.

    Returns:
        socket.socket: Raw socket bound to IPPROTO_ICMP

    Raises:
        PermissionError: If not running with raw socket privileges
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
    if ttl is not None:
        try:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, ttl)
        except (OSError, AttributeError) as e:
            logger.debug(f"Could not set TTL {ttl}, using system default: {e}")
    return sock


class PacketChannel(ABC):
    """
    Bidirectional datagram channel to one target.

    Implementations own one network handle. Closing is idempotent, and
    the context manager closes on every exit path.
    """

    address: str = ''

    @abstractmethod
    def write(self, packet: bytes) -> int:
        """Send one packet. Raises WriteError on failure."""

    @abstractmethod
    def read(self, size: int = MAX_READ_SIZE, timeout: Optional[float] = None) -> bytes:
        """
        Read one datagram sent by the target.

        Raises:
            ReadTimeout: If nothing arrives within timeout seconds
            TransportError: On any other receive failure
        """

    @abstractmethod
    def close(self) -> None:
        """Release the network handle."""

    def __enter__(self) -> 'PacketChannel':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class RawICMPChannel(PacketChannel):
    """
    Packet channel backed by a raw ICMPv4 socket connected to one address.

    The socket is connected so the kernel only delivers ICMP from the
    target; datagrams from any other source that still arrive are
    dropped without using up the read deadline.

    Usage:
        with RawICMPChannel.open("example.com", ttl=64) as channel:
            channel.write(packet)
            datagram = channel.read(timeout=2.0)
    """

    def __init__(self, sock: socket.socket, address: str, target: str):
        self._sock = sock
        self.address = address
        self.target = target
        self._closed = False

    @classmethod
    def open(cls, target: str, ttl: Optional[int] = None) -> 'RawICMPChannel':
        """
        Resolve target and open a raw channel to it.

        Args:
            target: Hostname or IPv4 literal
            ttl: Best-effort outbound TTL

        Raises:
            TransportOpenError: If resolution or socket creation fails
        """
        try:
            address = socket.gethostbyname(target)
        except OSError as e:
            raise TransportOpenError(f"Cannot resolve {target}: {e}") from e

        try:
            sock = create_icmp_socket(ttl)
        except PermissionError as e:
            raise TransportOpenError(
                f"Permission denied opening raw ICMP socket "
                f"(root or CAP_NET_RAW required): {e}"
            ) from e
        except OSError as e:
            raise TransportOpenError(f"Cannot open raw ICMP socket: {e}") from e

        try:
            sock.connect((address, 0))
        except OSError as e:
            sock.close()
            raise TransportOpenError(f"Cannot connect raw ICMP socket to {address}: {e}") from e

        logger.debug(f"Opened raw ICMP channel to {target} ({address})")
        return cls(sock, address, target)

    def write(self, packet: bytes) -> int:
        try:
            return self._sock.sendto(packet, (self.address, 0))
        except OSError as e:
            raise WriteError(f"Send to {self.address} failed: {e}") from e

    def read(self, size: int = MAX_READ_SIZE, timeout: Optional[float] = None) -> bytes:
        deadline = None if timeout is None else time.monotonic() + timeout
        remaining = timeout

        while True:
            if remaining is not None and remaining <= 0:
                raise ReadTimeout(f"No reply from {self.address} within {timeout}s")

            self._sock.settimeout(remaining)
            try:
                data, source = self._sock.recvfrom(size)
            except socket.timeout as e:
                raise ReadTimeout(f"No reply within {timeout}s") from e
            except OSError as e:
                raise TransportError(f"Receive failed: {e}") from e

            if source[0] == self.address:
                return data

            logger.debug(f"Dropped datagram from {source[0]}, expecting {self.address}")
            if deadline is not None:
                remaining = deadline - time.monotonic()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._sock.close()
            logger.debug(f"Closed raw ICMP channel to {self.address}")

    @property
    def closed(self) -> bool:
        return self._closed


__all__ = [
    'MAX_READ_SIZE',
    'PacketChannel',
    'RawICMPChannel',
    'create_icmp_socket',
    'is_root',
]
