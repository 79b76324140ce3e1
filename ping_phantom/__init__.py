"""
Ping Phantom v1.0.0 - ICMP Echo Utility
=======================================

Sends ICMP Echo Requests to a host, times the Echo Replies and
reports loss and round-trip statistics.

Usage:
    from ping_phantom import EchoSessionConfig, run_echo_session

    stats = run_echo_session(EchoSessionConfig("192.0.2.1", count=4))

Author: Ping Phantom Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Ping Phantom Team"

from ping_phantom.core.echo_session import (
    EchoSession,
    EchoSessionConfig,
    SessionStatistics,
    run_echo_session,
)

__all__ = [
    'EchoSession',
    'EchoSessionConfig',
    'SessionStatistics',
    'run_echo_session',
    '__version__',
]
