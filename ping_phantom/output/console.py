"""
Console output for ping sessions.

ConsoleReporter is a SessionObserver that prints one line per
iteration and the final statistics block.
"""

import sys
from typing import List, Optional, TextIO

from colorama import Fore, Style
from colorama import init as colorama_init

from ..core.echo_session import (
    EchoSessionConfig,
    ReplyMatch,
    SessionObserver,
    SessionStatistics,
)


class ConsoleColors:
    """Terminal colors (colorama translates them on Windows)"""
    BLUE = Fore.BLUE
    CYAN = Fore.CYAN
    GREEN = Fore.GREEN
    YELLOW = Fore.YELLOW
    RED = Fore.RED
    ENDC = Style.RESET_ALL
    BOLD = Style.BRIGHT


class ConsoleFormatter:
    """Formatters for console output"""

    def __init__(self, colors_enabled: bool = True):
        self.colors_enabled = colors_enabled

    def colored(self, text: str, color: str) -> str:
        if not self.colors_enabled:
            return text
        return f"{color}{text}{ConsoleColors.ENDC}"

    def success(self, msg: str) -> str:
        return self.colored(f"[✓] {msg}", ConsoleColors.GREEN)

    def error(self, msg: str) -> str:
        return self.colored(f"[✗] {msg}", ConsoleColors.RED)

    def warning(self, msg: str) -> str:
        return self.colored(f"[!] {msg}", ConsoleColors.YELLOW)

    def info(self, msg: str) -> str:
        return self.colored(f"[i] {msg}", ConsoleColors.BLUE)

    def session_header(self, target: str, address: str, size: int) -> str:
        if address and address != target:
            where = f"{target} ({address})"
        else:
            where = target
        return self.colored(f"PING {where} with {size} bytes of data:", ConsoleColors.BOLD)

    def reply(self, target: str, match: ReplyMatch) -> str:
        return self.colored(
            f"Reply from {target}: bytes={match.size} time={match.rtt_ms}ms TTL={match.ttl}",
            ConsoleColors.GREEN,
        )

    def timeout(self) -> str:
        return self.colored("Request timed out.", ConsoleColors.YELLOW)

    def invalid_reply(self, reason: str) -> str:
        return self.colored(f"Invalid reply received ({reason}).", ConsoleColors.RED)


def format_summary(target: str, stats: SessionStatistics) -> List[str]:
    """
    Build the plain-text statistics block for a finished session.

    The round-trip line is present only when at least one reply
    was received.
    """
    lines = [
        "",
        f"Ping statistics for {target}:",
        f"    Packets: Sent = {stats.sent}, Received = {stats.received}, "
        f"Lost = {stats.lost} ({stats.loss_percent:.1f}% loss),",
    ]
    if stats.received > 0:
        lines.append("Approximate round trip times in milli-seconds:")
        lines.append(
            f"    Minimum = {stats.min_ms}ms, Maximum = {stats.max_ms}ms, "
            f"Average = {stats.avg_ms}ms"
        )
    return lines


class ConsoleReporter(SessionObserver):
    """
    Prints session progress and statistics to a stream.

    Args:
        stream: Output stream (default: sys.stdout)
        colors_enabled: Force colors on or off; None enables them on a TTY
    """

    def __init__(self, stream: Optional[TextIO] = None, colors_enabled: Optional[bool] = None):
        self.stream = stream or sys.stdout
        if colors_enabled is None:
            colors_enabled = hasattr(self.stream, "isatty") and self.stream.isatty()
        if colors_enabled:
            colorama_init()
        self.formatter = ConsoleFormatter(colors_enabled)
        self.target = ''

    def _emit(self, line: str) -> None:
        print(line, file=self.stream)

    def session_started(self, config: EchoSessionConfig, address: str) -> None:
        self.target = config.target
        self._emit(self.formatter.session_header(config.target, address, config.packet_size))

    def reply_received(self, match: ReplyMatch) -> None:
        self._emit(self.formatter.reply(self.target, match))

    def request_timed_out(self, sequence: int) -> None:
        self._emit(self.formatter.timeout())

    def invalid_reply(self, sequence: int, reason: str) -> None:
        self._emit(self.formatter.invalid_reply(reason))

    def summary(self, target: str, stats: SessionStatistics) -> None:
        for line in format_summary(target, stats):
            self._emit(line)

    def info(self, message: str) -> None:
        self._emit(self.formatter.info(message))

    def warning(self, message: str) -> None:
        self._emit(self.formatter.warning(message))

    def error(self, message: str) -> None:
        self._emit(self.formatter.error(message))
