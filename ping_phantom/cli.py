#!/usr/bin/env python3
"""
Ping Phantom v1.0 - ICMP Echo Utility
=====================================

USAGE:
    pping [options] <address>

OPTIONS:
    -c, --count <num>         Echo requests to send (default: 4)
    -i, --interval <sec>      Wait between requests (default: 1)
    -s, --size <bytes>        ICMP packet size incl. 8-byte header (default: 32)
    -t, --ttl <value>         Outbound time-to-live, best-effort (default: 64)
    -w, --timeout <sec>       Wait for each reply (default: 2)
    --config <file>           JSON configuration file
    --strict-checksum         Reject replies with a bad ICMP checksum
    --no-color                Disable colored output
    -v, --verbose             Debug logging
    --version                 Show version

EXAMPLES:
    sudo pping 192.0.2.1
    sudo pping -c 10 -i 0.5 -s 64 example.com

Raw ICMP sockets need root (or CAP_NET_RAW on Linux).
"""

import argparse
import ipaddress
import logging
import math
import os
import re
import signal
import sys
import threading
from typing import Any, Dict, List, Optional

from . import __version__
from .config.config_manager import ConfigError, ConfigManager
from .core.echo_session import (
    MAX_PACKET_SIZE,
    ChannelFactory,
    EchoSession,
    EchoSessionConfig,
)
from .core.errors import SessionConfigError, TransportError, TransportOpenError
from .core.raw_socket import is_root
from .output.console import ConsoleReporter

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

MAX_TTL = 255
MIN_TTL = 1
MAX_TIMEOUT = 300
DANGEROUS_CHARS = re.compile(r'[;&|`$(){}\[\]<>\\]')
HOSTNAME_RE = re.compile(r'^[a-zA-Z0-9]([a-zA-Z0-9.-]*[a-zA-Z0-9])?$')

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


# =============================================================================
# ARGUMENT PARSER
# =============================================================================

class ProfessionalParser(argparse.ArgumentParser):
    def __init__(self, *args, **kwargs):
        super().__init__(
            *args,
            prog="pping",
            description="Ping Phantom - send ICMP echo requests and report round-trip statistics",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            **kwargs
        )

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"[ERROR] {message}\n")


# =============================================================================
# INPUT VALIDATION FUNCTIONS
# =============================================================================

def validate_int(value: str, field_name: str, min_value: int = 0, max_value: Optional[int] = None) -> int:
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise argparse.ArgumentTypeError(f"{field_name} must be an integer, got '{value}'")

    if int_value < min_value:
        raise argparse.ArgumentTypeError(f"{field_name} must be at least {min_value}, got {int_value}")

    if max_value is not None and int_value > max_value:
        raise argparse.ArgumentTypeError(f"{field_name} must be at most {max_value}, got {int_value}")

    return int_value


def validate_seconds(value: str, field_name: str, allow_zero: bool = True,
                     max_value: Optional[float] = None) -> float:
    try:
        seconds = float(value)
    except (ValueError, TypeError):
        raise argparse.ArgumentTypeError(f"{field_name} must be a number of seconds, got '{value}'")

    if not math.isfinite(seconds):
        raise argparse.ArgumentTypeError(f"{field_name} must be a finite number, got {value}")

    if seconds < 0 or (seconds == 0 and not allow_zero):
        bound = "at least 0" if allow_zero else "greater than 0"
        raise argparse.ArgumentTypeError(f"{field_name} must be {bound}, got {value}")

    if max_value is not None and seconds > max_value:
        raise argparse.ArgumentTypeError(f"{field_name} must be at most {max_value}, got {value}")

    return seconds


def validate_count_value(value: str) -> int:
    return validate_int(value, "Count", min_value=0)


def validate_size_value(value: str) -> int:
    return validate_int(value, "Size", min_value=0, max_value=MAX_PACKET_SIZE)


def validate_ttl_value(value: str) -> int:
    return validate_int(value, "TTL", min_value=MIN_TTL, max_value=MAX_TTL)


def validate_interval_value(value: str) -> float:
    return validate_seconds(value, "Interval")


def validate_timeout_value(value: str) -> float:
    return validate_seconds(value, "Timeout", allow_zero=False, max_value=MAX_TIMEOUT)


def sanitize_target(target: str) -> str:
    """
    Validate a ping target: an IPv4 literal or a hostname.

    Raises:
        ValueError: If the target is empty, malformed, or IPv6
    """
    if not target or not target.strip():
        raise ValueError("Target cannot be empty")

    stripped = target.strip()

    if '\x00' in stripped:
        raise ValueError("Null byte in target")

    if DANGEROUS_CHARS.search(stripped):
        raise ValueError(f"Target contains invalid characters: {target}")

    try:
        ipaddress.IPv4Address(stripped)
        return stripped
    except ipaddress.AddressValueError:
        pass

    try:
        ipaddress.IPv6Address(stripped)
    except ipaddress.AddressValueError:
        pass
    else:
        raise ValueError(f"IPv6 targets are not supported: {target}")

    if HOSTNAME_RE.match(stripped) and '..' not in stripped:
        return stripped

    raise ValueError(f"Invalid target format: {target}")


# =============================================================================
# SESSION SETUP
# =============================================================================

def configure_logging(level_name: str, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s')


def build_session_config(target: str, args: argparse.Namespace,
                         defaults: Dict[str, Any]) -> EchoSessionConfig:
    """Command-line values win over configuration file and environment."""

    def pick(name: str, key: str) -> Any:
        value = getattr(args, name, None)
        return defaults[key] if value is None else value

    return EchoSessionConfig(
        target=target,
        count=int(pick("count", "count")),
        interval=float(pick("interval", "interval")),
        packet_size=int(pick("size", "size")),
        timeout=float(pick("timeout", "timeout")),
        ttl=int(pick("ttl", "ttl")),
        verify_checksum=bool(args.strict_checksum or defaults.get("verify_checksum", False)),
    )


def install_interrupt_handler(cancel_event: threading.Event):
    """
    Route SIGINT to cancel_event so the running session stops at the
    next iteration and the summary is still printed.

    Returns the previous handler, or None if it could not be installed.
    """
    def signal_handler(signum, frame):
        cancel_event.set()

    try:
        return signal.signal(signal.SIGINT, signal_handler)
    except ValueError:
        # Not in the main thread
        return None


# =============================================================================
# MAIN
# =============================================================================

def main(argv: Optional[List[str]] = None, channel_factory: Optional[ChannelFactory] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.address:
        parser.print_help()
        return EXIT_OK

    config_manager = ConfigManager(args.config)
    config_manager.load()
    try:
        defaults = config_manager.export_for_cli()
    except ConfigError as e:
        print(f"[ERROR] Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    configure_logging(defaults["log_level"], args.verbose)

    colors_enabled: Optional[bool] = None
    if args.no_color or not defaults["colors_enabled"]:
        colors_enabled = False
    reporter = ConsoleReporter(colors_enabled=colors_enabled)

    # Last positional argument is the address
    try:
        target = sanitize_target(args.address[-1])
        session_config = build_session_config(target, args, defaults)
    except (ValueError, SessionConfigError) as e:
        reporter.error(str(e))
        return EXIT_USAGE

    reporter.info(
        f"Parameters: count={session_config.count}, interval={session_config.interval:g}, "
        f"size={session_config.packet_size}, ttl={session_config.ttl}, "
        f"timeout={session_config.timeout:g}, address={target}"
    )

    cancel_event = threading.Event()
    session = EchoSession(
        session_config,
        identifier=os.getpid() & 0xFFFF,
        channel_factory=channel_factory,
        observer=reporter,
        cancel_event=cancel_event,
    )

    previous_handler = install_interrupt_handler(cancel_event)
    try:
        stats = session.run()
    except TransportOpenError as e:
        reporter.error(str(e))
        if isinstance(e.__cause__, PermissionError) and not is_root():
            reporter.warning("Raw ICMP sockets need root privileges; try running with sudo")
        return EXIT_FAILURE
    except TransportError as e:
        reporter.error(str(e))
        return EXIT_FAILURE
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    reporter.summary(target, stats)
    return EXIT_OK


def create_parser() -> ProfessionalParser:
    parser = ProfessionalParser(
        epilog=(
            "examples:\n"
            "  sudo pping 192.0.2.1\n"
            "  sudo pping -c 10 -i 0.5 -s 64 example.com\n"
        )
    )

    parser.add_argument('address', nargs='*',
                        help='Target hostname or IPv4 address (the last one is used)')

    session_group = parser.add_argument_group('Session')
    session_group.add_argument('-c', '--count', type=validate_count_value, default=None,
                               help='Number of echo requests to send (default: 4)')
    session_group.add_argument('-i', '--interval', type=validate_interval_value, default=None,
                               help='Seconds to wait between requests (default: 1)')
    session_group.add_argument('-s', '--size', type=validate_size_value, default=None,
                               help='ICMP packet size in bytes, header included (default: 32)')
    session_group.add_argument('-t', '--ttl', type=validate_ttl_value, default=None,
                               help='Outbound time-to-live, best-effort (default: 64)')
    session_group.add_argument('-w', '--timeout', type=validate_timeout_value, default=None,
                               help='Seconds to wait for each reply (default: 2)')
    session_group.add_argument('--strict-checksum', action='store_true',
                               help='Reject replies whose ICMP checksum does not verify')

    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--config', metavar='FILE', default=None,
                              help=f'JSON configuration file (default: {ConfigManager.DEFAULT_FILE})')
    output_group.add_argument('--no-color', action='store_true',
                              help='Disable colored output')
    output_group.add_argument('-v', '--verbose', action='store_true',
                              help='Debug logging')
    output_group.add_argument('--version', action='version',
                              version=f'%(prog)s {__version__}')

    return parser


if __name__ == "__main__":
    sys.exit(main())
