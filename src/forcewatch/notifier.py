"""Pluggable operator notifications for forcewatch.

The session and dispatcher report through a notifier instead of printing,
so the CLI can render to the terminal while embedders and tests stay quiet.
"""

import logging
from typing import Protocol

from rich.console import Console


class Notifier(Protocol):
    """Protocol for notifications - host can provide custom implementation."""

    def info(self, message: str) -> None:
        """Informational message."""
        ...

    def warning(self, message: str) -> None:
        """Warning message."""
        ...

    def error(self, message: str) -> None:
        """Error message."""
        ...

    def output(self, text: str) -> None:
        """Verbatim text captured from an external command."""
        ...


class NoOpNotifier:
    """Silent notifier - default when embedded without a console."""

    def info(self, msg: str) -> None:
        pass

    def warning(self, msg: str) -> None:
        pass

    def error(self, msg: str) -> None:
        pass

    def output(self, text: str) -> None:
        pass


class LoggingNotifier:
    """Routes operator messages to a logger - used when stdout is not a terminal.

    Captured command output is logged line by line so each line carries a
    timestamp in the log file.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("forcewatch")

    def info(self, msg: str) -> None:
        self.logger.info(msg)

    def warning(self, msg: str) -> None:
        self.logger.warning(msg)

    def error(self, msg: str) -> None:
        self.logger.error(msg)

    def output(self, text: str) -> None:
        for line in text.splitlines():
            self.logger.info(line)


class ConsoleNotifier:
    """Terminal notifier backed by rich consoles.

    Errors go to stderr. Captured command output is printed without markup
    so brackets in compiler messages survive.
    """

    def __init__(self, console: Console | None = None, err_console: Console | None = None):
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def info(self, msg: str) -> None:
        self.console.print(msg, markup=False, highlight=False)

    def warning(self, msg: str) -> None:
        self.console.print(msg, style="yellow", markup=False, highlight=False)

    def error(self, msg: str) -> None:
        self.err_console.print(msg, style="red", markup=False, highlight=False)

    def output(self, text: str) -> None:
        self.console.print(text, markup=False, highlight=False, end="" if text.endswith("\n") else "\n")
