"""Well-known filesystem locations and deterministic artifact naming."""

import json
import logging
from datetime import datetime
from pathlib import Path

from . import encode_name_for_path

logger = logging.getLogger(__name__)

BACKUP_ROOT_PREFIX = "gh-manager-archive-"
BACKUP_ROOT_TIMESTAMP_FORMAT = "%Y-%m-%d-%H%M%S"
MANIFEST_FILE_NAME = "manifest.json"
BUNDLES_DIR = "bundles"
SNAPSHOTS_DIR = "snapshots"
SKIPPED_SIZE_DIR = "archive-skipped-size"


def config_dir(home: Path | None = None) -> Path:
    """Return the per-user configuration directory (~/.config/gh-manager)."""
    base = home if home is not None else Path.home()
    return base / ".config" / "gh-manager"


def default_backup_root(now: datetime, home: Path | None = None) -> Path:
    """Return a fresh, timestamped backup root under the home directory."""
    base = home if home is not None else Path.home()
    return base / f"{BACKUP_ROOT_PREFIX}{now.strftime(BACKUP_ROOT_TIMESTAMP_FORMAT)}"


def manifest_path(backup_root: Path | str) -> Path:
    return Path(backup_root) / MANIFEST_FILE_NAME


def artifact_stem(owner: str, name: str) -> str:
    """Collision-resistant ``owner__name`` stem for bundles and snapshots."""
    return f"{encode_name_for_path(owner)}__{encode_name_for_path(name)}"


def bundle_path(backup_root: Path | str, owner: str, name: str) -> Path:
    return Path(backup_root) / BUNDLES_DIR / f"{artifact_stem(owner, name)}.bundle"


def snapshot_path(backup_root: Path | str, owner: str, name: str) -> Path:
    return Path(backup_root) / SNAPSHOTS_DIR / artifact_stem(owner, name)


def find_backup_roots(fingerprint: str, home: Path | None = None) -> list[Path]:
    """Scan the home directory for backup roots bound to ``fingerprint``.

    Only directories following the default naming convention are
    considered. Unreadable or foreign manifests are ignored.

    Returns:
        Matching roots, sorted oldest first.
    """
    base = home if home is not None else Path.home()
    try:
        children = list(base.iterdir())
    except OSError as e:
        logger.debug("Cannot scan %s for backup roots: %s", base, e)
        return []

    matches = []
    for child in children:
        if not child.is_dir() or not child.name.startswith(BACKUP_ROOT_PREFIX):
            continue
        try:
            with open(manifest_path(child), encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            continue
        if isinstance(data, dict) and data.get("planFingerprint") == fingerprint:
            matches.append(child)

    return sorted(matches)
