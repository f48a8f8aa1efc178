"""CLI entry point for forcewatch: watch Apex sources and push changes."""

import argparse
import asyncio
import logging
import sys

from rich.console import Console

from forcewatch import __version__
from forcewatch.config import BACKENDS, ConfigError, load_config, validate_config
from forcewatch.controller import ForceWatchController
from forcewatch.notifier import ConsoleNotifier, LoggingNotifier, Notifier
from forcewatch.progress import ProgressBoard


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="forcewatch",
        description="Watch Apex classes and triggers and push them on change.",
        epilog="Examples:\n"
        "  forcewatch                       # Watch ./src with watchman\n"
        "  WATCH_DIR=force-app forcewatch   # Watch ./force-app\n"
        "  forcewatch --backend watchdog    # No watchman service needed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config file (default: forcewatch.toml if present)",
    )
    parser.add_argument(
        "--watch-dir",
        default=None,
        help="Subdirectory to watch (default: $WATCH_DIR or src)",
    )
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        default=None,
        help="Notification source (default: watchman)",
    )
    parser.add_argument(
        "--tool",
        default=None,
        help="Deploy command (default: force)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def create_reporters(console: Console) -> tuple[Notifier, ProgressBoard | None]:
    """Pick operator output for the attached stdout.

    A terminal gets rich output with spinners. Anything else (a pipe, a log
    file, a service manager) gets plain log lines and no spinners.
    """
    if console.is_terminal:
        return ConsoleNotifier(console), ProgressBoard(console)

    logging.getLogger("forcewatch").setLevel(min(logging.INFO, logging.getLogger().getEffectiveLevel()))
    return LoggingNotifier(), None


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the forcewatch CLI.

    Exits 1 on configuration or setup errors and 130 on Ctrl+C.
    """
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        if args.watch_dir:
            config.subdir = args.watch_dir
        if args.backend:
            config.backend = args.backend
        if args.tool:
            config.deploy_tool = args.tool
        validate_config(config)
    except (FileNotFoundError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    notifier, progress = create_reporters(Console())
    controller = ForceWatchController(config, notifier=notifier, progress=progress)

    try:
        code = asyncio.run(controller.run())
    except KeyboardInterrupt:
        controller.shutdown()
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
