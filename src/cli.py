#!/usr/bin/env python3
"""
CLI for watching a directory tree.

Usage:
    python -m src.cli /path/to/folder
    python -m src.cli /path/to/folder -verbose

Every change is written to stdout as one `kind|path` line, where kind is
0 (changed), 1 (created), 2 (deleted) or 3 (log message). The watcher stops
on any input on stdin, on end of input, or on SIGINT/SIGTERM.
"""

import argparse
import io
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from src.treewatch import (
    LineSink,
    PathNotFoundError,
    TreeWatcher,
    WatcherConfig,
    WatcherError,
)


logger = logging.getLogger("cli")

EXIT_OK = 0
EXIT_USAGE = 1


class ArgumentParser(argparse.ArgumentParser):
    """Argument parser exiting with status 1 on bad arguments."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM or input on stdin."""

    def __init__(self, stdin=None):
        self.stopped = threading.Event()
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

        if stdin is not None:
            reader = threading.Thread(
                target=self._wait_for_input,
                args=(stdin,),
                name="StdinWatcher",
                daemon=True,
            )
            reader.start()

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.stopped.set()

    def _wait_for_input(self, stdin) -> None:
        try:
            stdin.read(1)
        except (OSError, ValueError) as e:
            logger.debug(f"stdin unavailable: {e}")
        logger.info("Input received, stopping...")
        self.stopped.set()

    @property
    def should_exit(self) -> bool:
        return self.stopped.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.stopped.wait(timeout)


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        prog="treewatch",
        description="Watch a directory tree and print normalized change events.",
    )
    parser.add_argument("path", help="Directory to watch recursively")
    parser.add_argument(
        "-verbose", "--verbose",
        dest="verbose",
        action="store_true",
        default=None,
        help="Also print raw and normalized events as log records",
    )
    parser.add_argument(
        "--debounce",
        type=int,
        default=None,
        help="Quiet period in milliseconds before events are flushed (default: 50)",
    )
    parser.add_argument(
        "--no-cascade",
        dest="cascade_release",
        action="store_false",
        default=None,
        help="Only release the exact watch of a deleted symlinked directory",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Level for diagnostics on stderr (default: WARNING)",
    )
    return parser


def load_config(args) -> WatcherConfig:
    """Build the watcher config from the environment and CLI overrides."""
    overrides = {}
    if args.verbose is not None:
        overrides["verbose"] = args.verbose
    if args.debounce is not None:
        overrides["debounce_ms"] = args.debounce
    if args.cascade_release is not None:
        overrides["cascade_release"] = args.cascade_release
    return WatcherConfig.from_env(**overrides)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the watcher until shutdown; returns the process exit status."""
    load_dotenv()

    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = load_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    path = Path(args.path).absolute()
    if not path.is_dir():
        print(f"Path '{path}' does not exist.", file=sys.stderr)
        return EXIT_USAGE

    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(encoding="utf-8")
    watcher = TreeWatcher(path, LineSink(sys.stdout), config)

    try:
        watcher.start()
    except PathNotFoundError as e:
        print(str(e), file=sys.stderr)
        return EXIT_USAGE
    except WatcherError as e:
        logger.error(f"Failed to start watching {path}: {e}")
        return EXIT_USAGE

    shutdown = GracefulShutdown(sys.stdin)
    logger.info(f"Watching {path}")

    try:
        while not shutdown.wait(timeout=0.5):
            pass
    finally:
        watcher.stop()

    logger.info("Watcher stopped")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
