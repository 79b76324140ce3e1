"""
Core module initialization for Ping Phantom.
"""

from .checksum import (
    OptimizedChecksum,
    ChecksumError,
    icmp_checksum,
)
from .errors import (
    PingError,
    TransportError,
    TransportOpenError,
    WriteError,
    ReadTimeout,
    MalformedPacket,
    ICMPValidationError,
    ReplyMismatch,
    SessionConfigError,
)
from .icmp_codec import ICMPMessage, build_echo_request
from .echo_session import (
    EchoSession,
    EchoSessionConfig,
    ReplyMatch,
    ReplyOutcome,
    SessionObserver,
    SessionStatistics,
    run_echo_session,
)

__all__ = [
    'OptimizedChecksum',
    'ChecksumError',
    'icmp_checksum',
    'PingError',
    'TransportError',
    'TransportOpenError',
    'WriteError',
    'ReadTimeout',
    'MalformedPacket',
    'ICMPValidationError',
    'ReplyMismatch',
    'SessionConfigError',
    'ICMPMessage',
    'build_echo_request',
    'EchoSession',
    'EchoSessionConfig',
    'ReplyMatch',
    'ReplyOutcome',
    'SessionObserver',
    'SessionStatistics',
    'run_echo_session',
]
