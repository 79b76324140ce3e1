from .console import ConsoleFormatter, ConsoleColors, ConsoleReporter, format_summary

__all__ = [
    'ConsoleFormatter',
    'ConsoleColors',
    'ConsoleReporter',
    'format_summary',
]
