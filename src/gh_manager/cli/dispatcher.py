"""CLI dispatcher: argument parsing and subcommand routing."""

import argparse
import sys
from typing import Callable

from .common import add_verbosity_args


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="gh-manager",
        description="Inspect signed repository plans and their backup roots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )

    # plan command with subcommands
    plan_parser = subparsers.add_parser(
        "plan",
        help="Inspect plan files",
        description="Show or verify a signed plan",
    )
    plan_subs = plan_parser.add_subparsers(dest="plan_action")

    show_parser = plan_subs.add_parser(
        "show",
        help="Show plan contents",
    )
    show_parser.add_argument("plan_file", metavar="PLAN", help="Path to plan file")
    show_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    verify_plan_parser = plan_subs.add_parser(
        "verify",
        help="Check fingerprint and signature against the local secret",
    )
    verify_plan_parser.add_argument(
        "plan_file", metavar="PLAN", help="Path to plan file"
    )

    # status command
    status_parser = subparsers.add_parser(
        "status",
        help="Show execution status of a backup root",
        description="Summarize the manifest of a backup root",
    )
    status_parser.add_argument("root", metavar="ROOT", help="Backup root directory")
    status_parser.add_argument(
        "-t",
        "--transactions",
        action="store_true",
        help="Show recent transaction history",
    )
    status_parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=10,
        metavar="N",
        help="Number of transactions to show (default: 10)",
    )

    # verify command
    verify_parser = subparsers.add_parser(
        "verify",
        help="Check that recorded artifacts exist",
        description="Verify mirrors, snapshots and bundles listed in a manifest",
    )
    verify_parser.add_argument("root", metavar="ROOT", help="Backup root directory")

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List restorable repositories",
        description="List bundles and snapshots available in a backup root",
    )
    list_parser.add_argument("root", metavar="ROOT", help="Backup root directory")
    list_parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )

    # config command with subcommands
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Validate or initialize configuration",
    )
    config_subs = config_parser.add_subparsers(dest="config_action")

    config_subs.add_parser(
        "validate",
        help="Validate configuration file",
    )

    init_parser = config_subs.add_parser(
        "init",
        help="Generate example configuration",
    )
    init_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )

    return parser


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the specified subcommand.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    from .. import __version__

    if args.version:
        print(f"gh-manager {__version__}")
        return 0

    if not args.command:
        print("No command specified. Use --help for usage information.")
        return 1

    handlers: dict[str, Callable] = {
        "plan": cmd_plan,
        "status": cmd_status,
        "verify": cmd_verify,
        "list": cmd_list,
        "config": cmd_config,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


def cmd_plan(args: argparse.Namespace) -> int:
    """Execute plan command."""
    from .plan_cmd import execute_plan

    return execute_plan(args)


def cmd_status(args: argparse.Namespace) -> int:
    """Execute status command."""
    from .status import execute_status

    return execute_status(args)


def cmd_verify(args: argparse.Namespace) -> int:
    """Execute verify command."""
    from .verify_cmd import execute_verify

    return execute_verify(args)


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command."""
    from .list_cmd import execute_list

    return execute_list(args)


def cmd_config(args: argparse.Namespace) -> int:
    """Execute config command."""
    from .config_cmd import execute_config

    return execute_config(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the gh-manager CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_subcommand_parser()
    args = parser.parse_args(argv)

    return run_subcommand(args)
