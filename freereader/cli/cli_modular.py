"""freereader command line interface with lazily loaded commands."""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from collections.abc import Callable

# Command modules are imported on demand in _load_command_parser()

logger = logging.getLogger(__name__)


CommandHandler = Callable[[argparse.Namespace], int]

COMMAND_MODULES: dict[str, str] = {
    "extract-url": "extract_url",
    "housekeeping": "housekeeping",
    "telemetry": "telemetry",
}

COMMAND_HANDLER_ATTRS: dict[str, str] = {
    "extract-url": "handle_extract_url_command",
    "housekeeping": "handle_housekeeping_command",
    "telemetry": "handle_telemetry_command",
}


def create_parser() -> argparse.ArgumentParser:
    """Create minimal parser - commands loaded on-demand in main()."""
    parser = argparse.ArgumentParser(
        prog="freereader",
        description="freereader - full-text article extraction",
        add_help=False,
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. INFO, DEBUG)",
    )
    parser.add_argument(
        "command",
        nargs="?",
        help="Command to run (use 'COMMAND --help' for command-specific help)",
    )
    return parser


def _load_command_parser(command: str) -> tuple[Callable, Callable] | None:
    """Load parser and handler for a specific command on-demand.

    Returns: (add_parser_func, handle_command_func) or None if not found
    """
    module_name = COMMAND_MODULES.get(command)
    if not module_name:
        return None

    try:
        module = importlib.import_module(f"freereader.cli.commands.{module_name}")
    except ImportError as e:
        logger.warning(f"Failed to load command '{command}': {e}")
        return None

    parser_func = getattr(module, f"add_{command.replace('-', '_')}_parser", None)
    handler_func = getattr(module, COMMAND_HANDLER_ATTRS[command], None)
    if parser_func and handler_func:
        return parser_func, handler_func
    return None


def _print_usage() -> None:
    print("Available commands:", file=sys.stderr)
    print("  extract-url   - Extract one article through the mirror strategies")
    print("  housekeeping  - Sweep expired cache entries")
    print("  telemetry     - Inspect attempt logs and domain reliability")
    print("Use: freereader COMMAND --help for more info")


def main(
    argv: list[str] | None = None,
    *,
    setup_logging_func: Callable[[str], None] | None = None,
    handler_overrides: dict[str, CommandHandler] | None = None,
) -> int:
    """Main CLI entry point with on-demand command loading."""
    parser = create_parser()
    args, remaining = parser.parse_known_args(argv)

    log_level = getattr(args, "log_level", "INFO") or "INFO"
    if setup_logging_func is None:
        from .context import setup_logging as default_setup_logging

        setup_logging_func = default_setup_logging

    setup_logging_func(log_level)

    command = args.command
    if not command:
        _print_usage()
        return 1

    result = _load_command_parser(command)
    if result is None:
        print(f"Unknown command: {command}", file=sys.stderr)
        return 1

    add_parser_func, handle_func = result

    full_parser = argparse.ArgumentParser(
        prog=f"freereader {command}",
        description=f"Run {command} command",
    )
    full_parser.add_argument("--log-level", default="INFO")
    subparsers = full_parser.add_subparsers(dest="command")
    add_parser_func(subparsers)

    full_args = full_parser.parse_args([command] + remaining)

    if handler_overrides and command in handler_overrides:
        return handler_overrides[command](full_args)

    return handle_func(full_args)


if __name__ == "__main__":
    sys.exit(main())
