"""List command: Show restorable repositories in a backup root."""

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from ..core.manifest import ManifestError
from ..core.restore_index import (
    RestoreIndexError,
    is_archive_root,
    load_index,
    preferred_source,
)
from .common import setup_from_args

logger = logging.getLogger(__name__)


def execute_list(args: argparse.Namespace) -> int:
    """Execute the list command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    if setup_from_args(args) is None:
        return 1

    root = Path(args.root).expanduser()
    if not is_archive_root(root):
        print(f"{root} does not look like a gh-manager backup root")
        return 1

    try:
        entries = load_index(root)
    except (RestoreIndexError, ManifestError) as e:
        logger.error("%s", e)
        return 1

    if getattr(args, "json", False):
        data = []
        for entry in entries:
            item = asdict(entry)
            source = preferred_source(entry)
            item["source"] = asdict(source) if source else None
            data.append(item)
        print(json.dumps(data, indent=2))
        return 0

    if not entries:
        print(f"No restorable repositories in {root}")
        return 0

    print(f"Restorable repositories in {root}:")
    for entry in entries:
        source = preferred_source(entry)
        where = f"{source.kind}: {source.path}" if source else "missing on disk"
        print(f"  {entry.full_name:<40} {where}")
    print(f"\n{len(entries)} repositories")
    return 0
