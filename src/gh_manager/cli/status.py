"""Status command: Summarize a backup root's execution manifest."""

import argparse
import logging
from pathlib import Path

from .. import paths
from ..core.manifest import ArchiveStatus, ManifestError, Mode, RepoStatus, load_manifest
from ..transaction import get_transaction_log, read_transaction_log
from .common import setup_from_args

logger = logging.getLogger(__name__)


def execute_status(args: argparse.Namespace) -> int:
    """Execute the status command.

    Shows per-repository progress, aggregate counters and, with
    ``--transactions``, the most recent transaction log records.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (1 if any repository is in a failed state)
    """
    if setup_from_args(args) is None:
        return 1

    root = Path(args.root).expanduser()
    manifest_file = paths.manifest_path(root)
    if not manifest_file.exists():
        print(f"No manifest found in {root}")
        return 1

    try:
        manifest = load_manifest(manifest_file)
    except ManifestError as e:
        logger.error("%s", e)
        return 1

    manifest.recompute_counters()

    print("gh-manager Status")
    print("=" * 60)
    print(f"Backup root: {root}")
    print(f"Mode:        {manifest.mode.value}")
    print(f"Plan:        {manifest.plan_path or '(unknown)'}")
    print(f"Fingerprint: {manifest.plan_fingerprint[:12]}")
    print(f"Actor:       {manifest.actor}@{manifest.host}")
    print(f"Updated:     {manifest.updated_at}")
    if manifest.archive_repo:
        print(f"Archive:     {manifest.archive_repo} ({manifest.archive_branch or 'main'})")
    print("")

    for entry in manifest.repo_executions:
        line = f"  {entry.full_name:<40} {entry.status.value}"
        if entry.archive_status and entry.archive_status is not ArchiveStatus.SKIPPED:
            line += f" [{entry.archive_status.value}]"
        if entry.attempts:
            line += f" (attempts: {entry.attempts})"
        print(line)
        if entry.error:
            print(f"    error: {entry.error}")

    pending = sum(1 for e in manifest.repo_executions if e.status is RepoStatus.PENDING)
    print("")
    print("=" * 60)
    print(
        f"Total: {len(manifest.repo_executions)}  Deleted: {manifest.deleted_count}  "
        f"Failed: {manifest.failed_count}  Pending: {pending}"
    )
    if manifest.mode is Mode.BACKUP:
        print(
            f"Archived: {manifest.count_archive_status(ArchiveStatus.ARCHIVED)}  "
            f"Archive failed: {manifest.count_archive_status(ArchiveStatus.ARCHIVE_FAILED)}  "
            "Size-skipped: "
            f"{manifest.count_archive_status(ArchiveStatus.SKIPPED_SIZE_LIMIT)}"
        )

    if getattr(args, "transactions", False):
        _show_transactions(manifest.plan_fingerprint, args.limit)

    return 1 if manifest.failed_count else 0


def _show_transactions(fingerprint: str, limit: int) -> None:
    """Print recent transaction records belonging to this plan."""
    log_path = get_transaction_log()
    print("")
    if log_path is None:
        print("Transaction logging is disabled.")
        return

    records = [
        r for r in read_transaction_log(log_path) if r.get("plan_fingerprint") == fingerprint
    ][:limit]
    if not records:
        print(f"No transactions recorded in {log_path}")
        return

    print(f"Recent transactions ({log_path}):")
    for record in records:
        target = record.get("repo") or record.get("destination", "")
        line = f"  {record.get('timestamp', '')[:19]}  {record.get('action', ''):<8} "
        line += f"{record.get('status', ''):<9} {target}"
        if record.get("error"):
            line += f"  ({record['error']})"
        print(line)
