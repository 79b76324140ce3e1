"""
Checksum Module - RFC 1071 Internet checksum for ICMP messages.

Provides the ones-complement checksum used to build and verify
ICMP Echo Request/Reply packets (RFC 792).

Implementation follows RFC 1071 "Computing the Internet Checksum" exactly.

All functions are pure and thread-safe.
"""

from typing import Union


BytesLike = Union[bytes, bytearray, memoryview]


class ChecksumError(Exception):
    """Raised when checksum input is not a bytes-like object."""
    pass


def icmp_checksum(icmp_data: BytesLike) -> int:
    """
    Calculate ICMP checksum.

    Args:
        icmp_data: ICMP message bytes (header + payload)

    Returns:
        16-bit checksum value
    """
    return OptimizedChecksum.icmp_checksum(icmp_data)


class OptimizedChecksum:
    """
    RFC 1071 compliant ones-complement checksum calculator.

    This implementation follows RFC 1071 "Computing the Internet Checksum" exactly:
    1. Sum all 16-bit big-endian words
    2. Fold the sum to 16 bits (propagate carry)
    3. Return ones-complement (bitwise NOT)

    Example:
        >>> OptimizedChecksum.in_cksum(b'\\x00\\x01\\x00\\x02')
        65532
        >>> OptimizedChecksum.verify(b'\\x00\\x01\\x00\\x02\\xff\\xfc')
        True
    """

    @staticmethod
    def _fold_32_to_16(sum32: int) -> int:
        """
        Fold a wide sum to 16 bits with carry propagation per RFC 1071.

        The high bits are added back into the low 16 bits until no
        carry remains.
        """
        while sum32 >> 16:
            sum32 = (sum32 & 0xFFFF) + (sum32 >> 16)
        return sum32 & 0xFFFF

    @staticmethod
    def _ones_complement_16(value: int) -> int:
        """Return the ones-complement of a 16-bit value."""
        return (~value) & 0xFFFF

    @staticmethod
    def in_cksum(data: BytesLike, start: int = 0) -> int:
        """
        Compute Internet checksum per RFC 1071.

        Algorithm:
            1. Treat an odd trailing byte as the high byte of a zero-padded word
            2. Sum all 16-bit words
            3. Fold the sum to 16 bits
            4. Return ones-complement

        Args:
            data: Bytes to checksum
            start: Initial value to add to checksum (default 0)

        Returns:
            16-bit ones-complement checksum

        Raises:
            ChecksumError: If data is not bytes-like

        Example:
            >>> OptimizedChecksum.in_cksum(b'\\x00\\x00\\x00\\x00')
            65535
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ChecksumError(
                f"Data must be bytes-like, got {type(data).__name__}"
            )

        data = bytes(data)
        if len(data) % 2:
            data += b'\x00'

        total = start
        for i in range(0, len(data), 2):
            # Network byte order
            total += (data[i] << 8) | data[i + 1]

        total = OptimizedChecksum._fold_32_to_16(total)
        return OptimizedChecksum._ones_complement_16(total)

    @classmethod
    def icmp_checksum(cls, icmp_data: BytesLike) -> int:
        """
        Calculate ICMP checksum per RFC 792.

        The checksum covers the whole ICMP message (header and payload).
        The checksum field must be zero when building a message.

        Args:
            icmp_data: ICMP message bytes

        Returns:
            16-bit checksum value
        """
        return cls.in_cksum(icmp_data)

    @classmethod
    def verify(cls, data: BytesLike) -> bool:
        """
        Verify a buffer that already carries its checksum.

        A correctly checksummed message sums to 0xFFFF, so the
        ones-complement computed over it is zero.
        """
        return cls.in_cksum(data) == 0


__all__ = [
    'OptimizedChecksum',
    'ChecksumError',
    'icmp_checksum',
]
