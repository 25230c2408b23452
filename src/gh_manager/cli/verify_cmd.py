"""Verify command: Check that a backup root's recorded artifacts exist."""

import argparse
import logging
from pathlib import Path

from ..core.verify import verify_backup_root
from .common import setup_from_args

logger = logging.getLogger(__name__)


def execute_verify(args: argparse.Namespace) -> int:
    """Execute the verify command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 if every checked repository passed)
    """
    if setup_from_args(args) is None:
        return 1

    root = Path(args.root).expanduser()
    report = verify_backup_root(
        root,
        on_progress=lambda i, n, name: logger.debug("Verifying %d/%d: %s", i, n, name),
    )

    for error in report.errors:
        print(f"Error: {error}")
    if report.errors:
        return 1

    for result in report.results:
        mark = "OK  " if result.passed else "FAIL"
        print(f"  [{mark}] {result.full_name}")
        if not result.passed:
            print(f"         {result.message}")

    print("")
    print(
        f"Verified {report.total} repositories in {report.duration:.2f}s: "
        f"{report.passed} passed, {report.failed} failed"
    )
    return 0 if report.ok else 1
