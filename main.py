"""
Command line entry point for bench.

This module handles:
- Command line argument parsing
- Settings loading and per-run overrides
- Logging configuration
- Dispatch to the generate and fetch operations
- Exception handling and exit codes
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from bench import __app_name__, __version__
from bench.core.errors import BenchError
from bench.core.folder.sync import BenchSync
from bench.services.hashing import HashAlgorithm
from bench.services.settings import LOG_LEVELS, BenchSettings, SettingsManager


# =============================================================================
# Constants
# =============================================================================

APP_NAME = __app_name__
APP_VERSION = __version__

HELP_TEXT = f"""USAGE: {APP_NAME} [flags] ACTION

Available actions:
  generate - Generate patch files from active folder
  version  - Print software version information
  fetch    - Fetch updated files using file or server origin
  help     - Display command overview

Available flags:
  --target DIR       Local target (default "./")
  --source LOCATOR   Source target, an http(s) URL or an absolute path
  --worker N         Async worker count (default 1)
  --dynamic BOOL     Scale worker count by CPU count (default true)
  --fail-fast        Abort on the first unreadable or unfetchable file
  --algorithm NAME   Digest algorithm (default sha1)
  --config PATH      Settings file
  --verbose          Verbose logging
  --debug            Debug logging
  --log-file PATH    Also write logs to a file"""


# =============================================================================
# Enums and Data Classes
# =============================================================================

class Action(Enum):
    """Top level action."""
    GENERATE = "generate"
    FETCH = "fetch"
    VERSION = "version"
    HELP = "help"

    @classmethod
    def from_string(cls, value: Optional[str]) -> 'Action':
        """Unknown or missing actions fall back to help."""
        for action in cls:
            if value and action.value == value.lower():
                return action
        return cls.HELP


@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    action: Action = Action.HELP
    target: str = "./"
    source: Optional[str] = None
    workers: Optional[int] = None
    dynamic: Optional[bool] = None
    fail_fast: Optional[bool] = None
    algorithm: Optional[HashAlgorithm] = None
    config_file: Optional[str] = None
    log_level: Optional[str] = None
    log_file: Optional[str] = None


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Custom log formatter with colors for console."""

    COLORS = {
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            return f"{color}{formatted}{self.RESET}"

        return formatted


def setup_logging(level: str = "WARNING", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure logging for a command line run.

    Args:
        level: Log level string
        log_file: Optional file path for logging

    Returns:
        The ``bench`` logger, handed to the library components
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    # Console handler, stdout is kept for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(use_colors=True))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)

    return logging.getLogger(APP_NAME)


# =============================================================================
# Exception Handling
# =============================================================================

class ExceptionHandler:
    """
    Global exception handler for unhandled exceptions.

    Logs the exception with its traceback.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def handle_exception(
        self,
        exc_type: type,
        exc_value: BaseException,
        exc_tb
    ) -> None:
        """Handle an unhandled exception."""
        # Don't handle keyboard interrupt
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        self.logger.critical(
            "Unhandled exception",
            exc_info=(exc_type, exc_value, exc_tb)
        )


# =============================================================================
# Command Line Parsing
# =============================================================================

def parse_bool(value: str) -> bool:
    """Parse a boolean flag value."""
    normalized = value.strip().lower()
    if normalized in ('1', 'true', 'yes', 'on'):
        return True
    if normalized in ('0', 'false', 'no', 'off'):
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


def parse_algorithm(value: str) -> HashAlgorithm:
    """Parse a digest algorithm name."""
    try:
        return HashAlgorithm.from_string(value)
    except BenchError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="File patching using content hashes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        epilog="""
Examples:
  %(prog)s generate --target /srv/tree --source https://example.com/tree
  %(prog)s fetch --target ~/tree --source https://example.com/tree
  %(prog)s fetch --target ~/tree --worker 4
        """
    )

    parser.add_argument('action', nargs='?', help='generate, fetch, version or help')

    parser.add_argument('-h', '--help', action='store_true', help='Display command overview')
    parser.add_argument('--target', default='./', help='Local target')
    parser.add_argument('--source', default=None, help='Source target')
    parser.add_argument('--worker', type=int, default=None, help='Async worker count')
    parser.add_argument('--dynamic', type=parse_bool, default=None, help='Dynamic worker count')
    parser.add_argument('--fail-fast', action='store_true', default=None,
                        help='Abort on the first per-file error')
    parser.add_argument('--algorithm', type=parse_algorithm, default=None, help='Digest algorithm')

    # Configuration
    parser.add_argument('-c', '--config', help='Settings file path')

    # Logging
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')
    parser.add_argument('--debug', action='store_true', help='Enable debug output')
    parser.add_argument('--log-level', choices=list(LOG_LEVELS), default=None, help='Log level')
    parser.add_argument('--log-file', default=None, help='Write logs to this file as well')

    parser.add_argument('--version', action='version', version=f'{APP_NAME} {APP_VERSION}')

    return parser


def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parsed = build_parser().parse_args(args)

    result = CommandLineArgs()
    result.action = Action.HELP if parsed.help else Action.from_string(parsed.action)
    result.target = parsed.target
    result.source = parsed.source
    result.workers = parsed.worker
    result.dynamic = parsed.dynamic
    result.fail_fast = parsed.fail_fast
    result.algorithm = parsed.algorithm
    result.config_file = parsed.config
    result.log_file = parsed.log_file

    # Log level
    if parsed.debug:
        result.log_level = 'DEBUG'
    elif parsed.verbose:
        result.log_level = 'INFO'
    else:
        result.log_level = parsed.log_level

    return result


def load_settings(args: CommandLineArgs, logger: Optional[logging.Logger] = None) -> BenchSettings:
    """Load the settings file and apply command line overrides."""
    manager = SettingsManager(args.config_file, logger)
    return manager.settings.merged(
        workers=args.workers,
        dynamic=args.dynamic,
        fail_fast=args.fail_fast,
        algorithm=args.algorithm,
        log_level=args.log_level,
    )


# =============================================================================
# Actions
# =============================================================================

def run_generate(args: CommandLineArgs, settings: BenchSettings, logger: logging.Logger) -> int:
    target = Path(args.target).expanduser().resolve()
    sync = BenchSync(settings.to_sync_options(), logger)

    result = sync.generate(target, args.source or "")
    print(f"generated {result.manifest_path} with {result.items} files ({result.ignored} ignored)")
    return 0


def run_fetch(args: CommandLineArgs, settings: BenchSettings, logger: logging.Logger) -> int:
    target = Path(args.target).expanduser().resolve()
    sync = BenchSync(settings.to_sync_options(), logger)

    result = sync.fetch(target, args.source)
    print(f"fetched {len(result.fetched)} of {len(result.missing)} missing files from {result.source}")
    for failure in result.failed:
        print(f"failed: {failure.name}: {failure.error}", file=sys.stderr)
    return 0


def print_version() -> None:
    print(f"{APP_NAME} {APP_VERSION}")


def print_help() -> None:
    print(HELP_TEXT)


# =============================================================================
# Main Function
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Command line main entry point.

    Returns:
        Exit code (0 for success)
    """
    args = parse_arguments(argv)

    if args.action == Action.VERSION:
        print_version()
        return 0
    if args.action == Action.HELP:
        print_help()
        return 0

    # Settings may name a log level, so bootstrap logging first
    logger = setup_logging(args.log_level or 'WARNING')
    exception_handler = ExceptionHandler(logger)
    sys.excepthook = exception_handler.handle_exception

    try:
        settings = load_settings(args, logger)
    except BenchError as e:
        logger.error(f"Invalid settings: {e}")
        return 1

    log_file = Path(args.log_file) if args.log_file else None
    logger = setup_logging(settings.log_level, log_file)
    exception_handler.logger = logger
    logger.info(f"Starting {APP_NAME} v{APP_VERSION} {args.action.value}")

    try:
        if args.action == Action.GENERATE:
            return run_generate(args, settings, logger)
        return run_fetch(args, settings, logger)
    except BenchError as e:
        logger.error(f"{args.action.value} failed: {e}")
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    run()
