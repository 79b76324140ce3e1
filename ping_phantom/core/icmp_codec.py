"""
ICMP Message Codec - ICMPv4 Echo Request/Reply serialization.

ICMP Echo Request/Reply Format (RFC 792):
+-----------+-----------+-------------------------+
| Type (8)  | Code (8)  |      Checksum (16)      |
+-----------+-----------+-------------------------+
|   Identifier (16)     |   Sequence Number (16)  |
+-----------------------+-------------------------+
|                    Payload                      |
+-------------------------------------------------+

All multi-byte fields are big-endian (network byte order).

The codec never computes checksums implicitly. Building a request is
a two-pass operation: serialize with checksum=0, checksum the whole
buffer, then serialize again with the real value.
"""

import struct
from dataclasses import dataclass, replace

from .checksum import OptimizedChecksum
from .errors import ICMPValidationError, MalformedPacket


ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8

ICMP_HEADER_SIZE = 8
ICMP_HEADER_FORMAT = '!BBHHH'


@dataclass(frozen=True)
class ICMPMessage:
    """
    ICMP echo message.

    Attributes:
        type: ICMP type (8 = Echo Request, 0 = Echo Reply)
        code: ICMP code (always 0 for echo)
        checksum: 16-bit checksum as carried on the wire
        identifier: 16-bit session identifier
        sequence: 16-bit sequence number
        payload: Bytes following the 8-byte header
    """
    type: int
    code: int = 0
    checksum: int = 0
    identifier: int = 0
    sequence: int = 0
    payload: bytes = b''

    def serialize(self) -> bytes:
        """
        Emit the 8 header bytes followed by the payload.

        Raises:
            ICMPValidationError: If a field does not fit its wire width
        """
        for name, value, limit in (
            ('type', self.type, 0xFF),
            ('code', self.code, 0xFF),
            ('checksum', self.checksum, 0xFFFF),
            ('identifier', self.identifier, 0xFFFF),
            ('sequence', self.sequence, 0xFFFF),
        ):
            if not 0 <= value <= limit:
                raise ICMPValidationError(f"{name} out of range: {value}")

        header = struct.pack(
            ICMP_HEADER_FORMAT,
            self.type,
            self.code,
            self.checksum,
            self.identifier,
            self.sequence,
        )
        return header + bytes(self.payload)

    @classmethod
    def deserialize(cls, data: bytes) -> 'ICMPMessage':
        """
        Parse an ICMP message from wire bytes.

        The checksum is extracted but not validated.

        Raises:
            MalformedPacket: If fewer than 8 bytes are supplied
        """
        if len(data) < ICMP_HEADER_SIZE:
            raise MalformedPacket(
                f"ICMP packet too short: {len(data)} bytes. "
                f"Minimum is {ICMP_HEADER_SIZE} bytes."
            )

        icmp_type, code, checksum, identifier, sequence = struct.unpack(
            ICMP_HEADER_FORMAT, bytes(data[:ICMP_HEADER_SIZE])
        )
        return cls(
            type=icmp_type,
            code=code,
            checksum=checksum,
            identifier=identifier,
            sequence=sequence,
            payload=bytes(data[ICMP_HEADER_SIZE:]),
        )

    def with_checksum(self) -> 'ICMPMessage':
        """Return a copy carrying the checksum computed over header and payload."""
        unsummed = replace(self, checksum=0).serialize()
        return replace(self, checksum=OptimizedChecksum.icmp_checksum(unsummed))

    def checksum_valid(self) -> bool:
        """True when the carried checksum matches the message contents."""
        return OptimizedChecksum.verify(self.serialize())

    @property
    def is_echo_reply(self) -> bool:
        return self.type == ICMP_ECHO_REPLY


def padding_for(packet_size: int) -> bytes:
    """
    Zero padding that brings an echo request to packet_size bytes.

    Sizes at or below the header size get no padding, so the bare
    8-byte header is sent.
    """
    return bytes(max(0, packet_size - ICMP_HEADER_SIZE))


def build_echo_request(identifier: int, sequence: int, packet_size: int = ICMP_HEADER_SIZE) -> bytes:
    """
    Build a checksummed ICMP Echo Request ready for transmission.

    Args:
        identifier: 16-bit session identifier
        sequence: 16-bit sequence number
        packet_size: Total ICMP size in bytes, header included

    Returns:
        Wire bytes of length max(8, packet_size)
    """
    request = ICMPMessage(
        type=ICMP_ECHO_REQUEST,
        code=0,
        identifier=identifier,
        sequence=sequence,
        payload=padding_for(packet_size),
    )
    return request.with_checksum().serialize()


__all__ = [
    'ICMPMessage',
    'ICMP_ECHO_REPLY',
    'ICMP_ECHO_REQUEST',
    'ICMP_HEADER_SIZE',
    'build_echo_request',
    'padding_for',
]
