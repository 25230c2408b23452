"""Shared CLI utilities and argument parsers."""

import argparse
import logging

from ..__logger__ import create_logger
from ..config import Config, ConfigError, find_config_file, load_config
from ..transaction import set_transaction_log

logger = logging.getLogger(__name__)


def create_global_parser() -> argparse.ArgumentParser:
    """Create a parser with global options that can be used as a parent."""
    parser = argparse.ArgumentParser(add_help=False)
    add_verbosity_args(parser)
    return parser


def add_verbosity_args(parser: argparse.ArgumentParser) -> None:
    """Add verbosity-related arguments to a parser."""
    group = parser.add_argument_group("Output options")
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )


def get_log_level(args: argparse.Namespace, config: Config | None = None) -> str:
    """Determine log level from parsed arguments.

    Command line flags win; the config file's ``verbose``/``quiet`` apply
    only when no flag was given.

    Args:
        args: Parsed command line arguments
        config: Loaded configuration, if any

    Returns:
        Log level string (DEBUG, INFO, WARNING)
    """
    if getattr(args, "debug", False):
        return "DEBUG"
    elif getattr(args, "quiet", False):
        return "WARNING"
    elif getattr(args, "verbose", False):
        return "DEBUG"
    elif config is not None and config.global_config.quiet:
        return "WARNING"
    elif config is not None and config.global_config.verbose:
        return "DEBUG"
    else:
        return "INFO"


def load_effective_config(args: argparse.Namespace) -> Config:
    """Load the config file if one exists, otherwise defaults.

    Raises:
        ConfigError: If an explicit or discovered config file is invalid
    """
    config_path = find_config_file(getattr(args, "config", None))
    if config_path is None:
        return Config()

    config, warnings = load_config(config_path)
    for warning in warnings:
        logger.warning("%s: %s", config_path, warning)
    return config


def setup_from_args(args: argparse.Namespace) -> Config | None:
    """Configure logging and the transaction log for a command.

    Returns:
        The effective config, or None after logging a config error
    """
    create_logger(get_log_level(args))
    try:
        config = load_effective_config(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return None

    create_logger(get_log_level(args, config), log_file=config.global_config.log_file)
    set_transaction_log(config.global_config.transaction_log)
    return config
