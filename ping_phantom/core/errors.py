"""
Error taxonomy for Ping Phantom.

Fatal conditions (TransportOpenError, WriteError) propagate out of an
echo session. ReadTimeout, MalformedPacket and ReplyMismatch are handled
inside the session loop and only surface as observer notices.
"""


class PingError(Exception):
    """Base class for all Ping Phantom errors."""
    pass


# ==================== TRANSPORT ====================

class TransportError(PingError):
    """Raised when the raw ICMP channel fails."""
    pass


class TransportOpenError(TransportError):
    """Raised when the raw channel cannot be opened (permissions, DNS)."""
    pass


class WriteError(TransportError):
    """Raised when sending an echo request fails."""
    pass


class ReadTimeout(TransportError):
    """Raised when no datagram arrives before the read deadline."""
    pass


# ==================== PROTOCOL ====================

class ICMPError(PingError):
    """Raised when ICMP packet construction or parsing fails."""
    pass


class MalformedPacket(ICMPError):
    """Raised when a datagram is too short to hold the expected headers."""
    pass


class ICMPValidationError(ICMPError):
    """Raised when ICMP field values are out of range."""
    pass


class ReplyMismatch(PingError):
    """Raised when a reply does not belong to the outstanding request."""
    pass


# ==================== CONFIGURATION ====================

class SessionConfigError(PingError, ValueError):
    """Raised when echo session parameters are invalid."""
    pass


__all__ = [
    'PingError',
    'TransportError',
    'TransportOpenError',
    'WriteError',
    'ReadTimeout',
    'ICMPError',
    'MalformedPacket',
    'ICMPValidationError',
    'ReplyMismatch',
    'SessionConfigError',
]
