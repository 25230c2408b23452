"""Backup root verification.

Checks that every artifact the manifest claims actually exists on disk,
so an operator can confirm a root is restorable before trusting a delete
run that used it:

- mirror: the mirror directory recorded as the backup path
- snapshot: the browsable snapshot directory
- bundle: the bundle file, and for size-skipped bundles that it lives in
  the size-skip folder
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ..paths import MANIFEST_FILE_NAME, SKIPPED_SIZE_DIR
from .manifest import ArchiveStatus, ManifestError, RepoStatus, load_manifest

logger = logging.getLogger(__name__)


@dataclass
class VerifyResult:
    """Result of verifying one repository's artifacts."""

    full_name: str
    passed: bool
    message: str = ""
    duration_seconds: float = 0.0
    details: dict = field(default_factory=dict)


@dataclass
class VerifyReport:
    """Complete verification report."""

    location: str
    started_at: float = field(default_factory=time.time)
    completed_at: float = 0.0
    results: list[VerifyResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.passed)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def duration(self) -> float:
        if self.completed_at:
            return self.completed_at - self.started_at
        return time.time() - self.started_at

    @property
    def ok(self) -> bool:
        return not self.errors and self.failed == 0


def _check_path(result: VerifyResult, label: str, value: str, want_dir: bool) -> None:
    if not value:
        return
    path = Path(value)
    exists = path.is_dir() if want_dir else path.is_file()
    result.details[label] = exists
    if not exists:
        result.passed = False
        kind = "directory" if want_dir else "file"
        problem = f"missing {label} {kind}: {path}"
        result.message = f"{result.message}; {problem}" if result.message else problem


def verify_backup_root(
    root: Path | str,
    on_progress: Callable[[int, int, str], None] | None = None,
) -> VerifyReport:
    """Verify the artifacts recorded in a backup root's manifest.

    Entries that never completed a backup are not checked.

    Args:
        root: Backup root directory
        on_progress: Progress callback (current, total, name)

    Returns:
        VerifyReport with one result per checked repository
    """
    root = Path(root)
    report = VerifyReport(location=str(root))

    manifest_file = root / MANIFEST_FILE_NAME
    if not manifest_file.exists():
        report.errors.append(f"No manifest found at {manifest_file}")
        report.completed_at = time.time()
        return report

    try:
        manifest = load_manifest(manifest_file)
    except ManifestError as e:
        report.errors.append(str(e))
        report.completed_at = time.time()
        return report

    candidates = [
        e
        for e in manifest.repo_executions
        if e.backup_path and e.status is not RepoStatus.BACKUP_FAILED
    ]
    skipped_dir = root / SKIPPED_SIZE_DIR

    for i, entry in enumerate(candidates, 1):
        if on_progress:
            on_progress(i, len(candidates), entry.full_name)

        start = time.monotonic()
        result = VerifyResult(full_name=entry.full_name, passed=True)
        _check_path(result, "mirror", entry.backup_path, want_dir=True)
        _check_path(result, "snapshot", entry.browsable_path, want_dir=True)
        _check_path(result, "bundle", entry.bundle_path, want_dir=False)

        if entry.archive_status is ArchiveStatus.SKIPPED_SIZE_LIMIT:
            in_skip_dir = Path(entry.bundle_path).parent == skipped_dir
            result.details["in_size_skip_dir"] = in_skip_dir
            if not in_skip_dir:
                result.passed = False
                problem = "size-skipped bundle is outside the size-skip folder"
                result.message = f"{result.message}; {problem}" if result.message else problem

        if entry.status is RepoStatus.DELETED and not entry.browsable_path:
            result.passed = False
            result.message = result.message or "deleted without a browsable snapshot"

        result.duration_seconds = time.monotonic() - start
        if not result.passed:
            logger.warning("Verification failed for %s: %s", entry.full_name, result.message)
        report.results.append(result)

    report.completed_at = time.time()
    return report
