"""Tests for spinners and console notifications."""

import io
import logging

from rich.console import Console

from forcewatch.notifier import ConsoleNotifier, LoggingNotifier, NoOpNotifier
from forcewatch.progress import ProgressBoard


def make_console():
    buf = io.StringIO()
    return Console(file=buf, force_terminal=False, width=120), buf


class TestProgressBoard:
    """Tests for ProgressBoard spinner lifecycle."""

    def test_live_display_runs_while_spinners_active(self):
        console, _ = make_console()
        board = ProgressBoard(console)

        first = board.start("Deploying ApexClass: Foo")
        second = board.start("Deploying ApexTrigger: Baz")
        assert board.active == 2
        assert board.progress.live.is_started

        first.stop()
        assert board.active == 1
        assert board.progress.live.is_started

        second.stop()
        assert board.active == 0
        assert not board.progress.live.is_started

    def test_stop_is_idempotent(self):
        console, _ = make_console()
        board = ProgressBoard(console)
        spinner = board.start("Deploying ApexClass: Foo")
        spinner.stop()
        spinner.stop()
        assert board.active == 0

    def test_board_restarts_after_idle(self):
        console, _ = make_console()
        board = ProgressBoard(console)
        board.start("one").stop()
        spinner = board.start("two")
        assert board.progress.live.is_started
        spinner.stop()


class TestConsoleNotifier:
    """Tests for ConsoleNotifier routing."""

    def test_errors_go_to_error_console(self):
        out, out_buf = make_console()
        err, err_buf = make_console()
        notifier = ConsoleNotifier(out, err)

        notifier.info("watch established on /repo relative_path None")
        notifier.error("stderr: [ERROR] bad")

        assert "watch established on /repo" in out_buf.getvalue()
        assert "stderr: [ERROR] bad" in err_buf.getvalue()
        assert "bad" not in out_buf.getvalue()

    def test_output_is_verbatim(self):
        out, out_buf = make_console()
        notifier = ConsoleNotifier(out, out)
        notifier.output("[bold]not markup[/bold]\n")
        assert "[bold]not markup[/bold]" in out_buf.getvalue()

    def test_noop_notifier_is_silent(self, capsys):
        notifier = NoOpNotifier()
        notifier.info("x")
        notifier.warning("x")
        notifier.error("x")
        notifier.output("x")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""


class TestLoggingNotifier:
    """Tests for LoggingNotifier routing."""

    def test_levels_and_output_lines(self, caplog):
        notifier = LoggingNotifier(logging.getLogger("forcewatch.test"))

        with caplog.at_level(logging.INFO, logger="forcewatch.test"):
            notifier.info("subscription forcewatch established")
            notifier.warning("warning: Recrawl happened")
            notifier.error("exec error: exit code 1")
            notifier.output("line one\nline two\n")

        records = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert records == [
            (logging.INFO, "subscription forcewatch established"),
            (logging.WARNING, "warning: Recrawl happened"),
            (logging.ERROR, "exec error: exit code 1"),
            (logging.INFO, "line one"),
            (logging.INFO, "line two"),
        ]

    def test_defaults_to_package_logger(self):
        assert LoggingNotifier().logger.name == "forcewatch"
