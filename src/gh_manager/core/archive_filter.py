"""Archive size policy: decide which bundles may be published.

Oversized bundles are moved (not copied) into the size-skip folder of the
backup root, so they stay on local disk and are reported per repository
instead of failing the whole archive batch.
"""

import logging
import shutil
from pathlib import Path
from typing import TextIO

from ..config.schema import DEFAULT_MAX_BUNDLE_SIZE
from ..paths import SKIPPED_SIZE_DIR
from .manifest import ArchiveStatus, BundleArtifact, ExecutionManifest

logger = logging.getLogger(__name__)


def filter_bundles_by_size(
    backup_root: Path | str,
    bundles: list[BundleArtifact],
    manifest: ExecutionManifest,
    max_bytes: int = DEFAULT_MAX_BUNDLE_SIZE,
    out: TextIO | None = None,
) -> tuple[list[BundleArtifact], list[str]]:
    """Split bundles into publishable ones and size-skipped ones.

    Manifest entries are updated in place: a bundle that cannot be
    inspected or moved becomes ``archive_failed``; an oversized bundle is
    moved to ``<backup_root>/archive-skipped-size/`` and its entry records
    the new path and ``archive_skipped_size_limit``.

    Args:
        backup_root: Backup root holding the size-skip folder
        bundles: Candidate bundles
        manifest: Manifest whose entries are updated
        max_bytes: Inclusive size ceiling
        out: Optional stream for operator-facing lines

    Returns:
        Tuple of (eligible bundles, full names skipped for size)
    """
    eligible: list[BundleArtifact] = []
    skipped: list[str] = []
    skipped_dir = Path(backup_root) / SKIPPED_SIZE_DIR

    for bundle in bundles:
        entry = manifest.find_entry(bundle.full_name)
        source = Path(bundle.bundle_path)

        try:
            size = source.stat().st_size
        except OSError as e:
            logger.warning("Cannot stat bundle for %s: %s", bundle.full_name, e)
            if entry is not None:
                entry.archive_status = ArchiveStatus.ARCHIVE_FAILED
                entry.error = f"bundle stat failed: {e}"
            continue

        if size <= max_bytes:
            eligible.append(bundle)
            continue

        target = skipped_dir / source.name
        try:
            skipped_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
            shutil.move(str(source), str(target))
        except OSError as e:
            logger.error("Cannot move oversized bundle for %s: %s", bundle.full_name, e)
            if entry is not None:
                entry.archive_status = ArchiveStatus.ARCHIVE_FAILED
                entry.error = f"failed moving oversized bundle: {e}"
            continue

        if entry is not None:
            entry.bundle_path = str(target)
            entry.archive_status = ArchiveStatus.SKIPPED_SIZE_LIMIT
            entry.error = f"bundle size {size} exceeds archive limit {max_bytes} bytes"
        skipped.append(bundle.full_name)
        logger.info("Archive skip (size): %s (%d bytes)", bundle.full_name, size)
        if out is not None:
            out.write(f"Archive skip (size): {bundle.full_name} ({size} bytes)\n")

    return eligible, skipped
