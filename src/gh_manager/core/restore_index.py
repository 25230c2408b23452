"""Discover restorable artifacts inside a backup root.

Restoring a repository needs either its bundle or its browsable snapshot.
The index merges what the manifest recorded with what is actually on disk
under ``bundles/`` and ``snapshots/``, so roots with a lost or partial
manifest are still usable.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from ..paths import BUNDLES_DIR, MANIFEST_FILE_NAME, SNAPSHOTS_DIR
from .manifest import load_manifest

logger = logging.getLogger(__name__)


class RestoreIndexError(Exception):
    """Backup root cannot be indexed."""

    pass


@dataclass
class ArchiveEntry:
    """Restorable artifacts known for one repository."""

    full_name: str
    bundle_path: str = ""
    snapshot_path: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class RestoreSource:
    kind: str  # "bundle" or "snapshot"
    path: str


def _split_stem(stem: str) -> str | None:
    owner, sep, name = stem.partition("__")
    if not sep or not owner or not name:
        return None
    return f"{owner}/{name}"


def _resolve(root: Path, value: str) -> str:
    path = Path(value)
    return str(path if path.is_absolute() else root / path)


def load_index(root: Path | str) -> list[ArchiveEntry]:
    """Index a backup root.

    Paths found on disk take precedence over paths recorded in the
    manifest. Entries without any artifact are dropped.

    Args:
        root: Backup root directory

    Returns:
        Entries sorted by full name

    Raises:
        RestoreIndexError: If ``root`` is empty
        ManifestError: If a manifest exists but cannot be read
    """
    if not str(root).strip():
        raise RestoreIndexError("archive root is required")
    root = Path(root)
    entries: dict[str, ArchiveEntry] = {}

    def ensure(full_name: str) -> ArchiveEntry:
        if full_name not in entries:
            entries[full_name] = ArchiveEntry(full_name=full_name)
        return entries[full_name]

    manifest_file = root / MANIFEST_FILE_NAME
    if manifest_file.exists():
        manifest = load_manifest(manifest_file)
        for execution in manifest.repo_executions:
            if not execution.full_name:
                continue
            entry = ensure(execution.full_name)
            entry.updated_at = entry.updated_at or execution.last_attempt_at
            if execution.bundle_path:
                entry.bundle_path = _resolve(root, execution.bundle_path)
            if execution.browsable_path:
                entry.snapshot_path = _resolve(root, execution.browsable_path)

    bundles_dir = root / BUNDLES_DIR
    if bundles_dir.is_dir():
        for child in sorted(bundles_dir.iterdir()):
            if child.is_dir() or child.suffix != ".bundle":
                continue
            full_name = _split_stem(child.stem)
            if full_name is None:
                logger.debug("Ignoring unrecognized bundle %s", child)
                continue
            ensure(full_name).bundle_path = str(child)

    snapshots_dir = root / SNAPSHOTS_DIR
    if snapshots_dir.is_dir():
        for child in sorted(snapshots_dir.iterdir()):
            if not child.is_dir():
                continue
            full_name = _split_stem(child.name)
            if full_name is None:
                logger.debug("Ignoring unrecognized snapshot %s", child)
                continue
            ensure(full_name).snapshot_path = str(child)

    return sorted(
        (e for e in entries.values() if e.bundle_path or e.snapshot_path),
        key=lambda e: e.full_name,
    )


def preferred_source(entry: ArchiveEntry) -> RestoreSource | None:
    """Bundle file if present, else snapshot directory if present."""
    if entry.bundle_path and Path(entry.bundle_path).is_file():
        return RestoreSource(kind="bundle", path=entry.bundle_path)
    if entry.snapshot_path and Path(entry.snapshot_path).is_dir():
        return RestoreSource(kind="snapshot", path=entry.snapshot_path)
    return None


def is_archive_root(path: Path | str | None) -> bool:
    if path is None or not str(path).strip():
        return False
    path = Path(path)
    return (
        (path / MANIFEST_FILE_NAME).exists()
        or (path / BUNDLES_DIR).is_dir()
        or (path / SNAPSHOTS_DIR).is_dir()
    )
