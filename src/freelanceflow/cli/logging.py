"""``freelanceflow logging`` subcommands: persist and inspect the log level."""

import logging

from freelanceflow.logging import get_configured_level, get_logger, reset_logger
from freelanceflow.logging.config import save_log_level
from freelanceflow.logging.logging import _resolve_log_file

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def register_subcommands(subparsers):
    set_level_parser = subparsers.add_parser("set-level", help="Set the logging level")
    set_level_parser.add_argument("level", type=str.upper, choices=LEVELS, help="Logging level to use")

    subparsers.add_parser("show-path", help="Show the log file location")
    subparsers.add_parser("show-level", help="Show the configured logging level")


def dispatch(args):
    if args.subcommand == "set-level":
        save_log_level(args.level)
        reset_logger()
        get_logger(level=getattr(logging, args.level))
    elif args.subcommand == "show-path":
        print(_resolve_log_file().resolve())
    elif args.subcommand == "show-level":
        print(get_configured_level())
    else:
        get_logger(__file__).error("No handler for subcommand: %s", args.subcommand)
