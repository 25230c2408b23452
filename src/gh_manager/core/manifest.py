"""Execution manifest: durable per-repository progress for one backup root.

The manifest is a full snapshot, rewritten in place after every state
change. Resuming re-reads it and re-evaluates each entry; nothing is
replayed. Aggregate counters are derived from the entries on every save.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from filelock import FileLock

from .plan import DeletionPlan, format_timestamp

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1"


class ManifestError(Exception):
    """Manifest cannot be read, written, or reused."""

    pass


class ManifestMismatchError(ManifestError):
    """Manifest belongs to a different plan or mode."""

    pass


class Mode(str, Enum):
    """Which pipeline the executor runs."""

    DELETE = "delete"
    BACKUP = "backup"


class RepoStatus(str, Enum):
    """Main per-repository status."""

    PENDING = "pending"
    BACKUP_OK = "backup_ok"
    DELETED = "deleted"
    BACKUP_FAILED = "backup_failed"
    DELETE_FAILED = "delete_failed"


class ArchiveStatus(str, Enum):
    """Archive axis, independent of the main status."""

    PENDING = "pending"
    ARCHIVED = "archived"
    ARCHIVE_FAILED = "archive_failed"
    SKIPPED_SIZE_LIMIT = "archive_skipped_size_limit"
    SKIPPED = "skipped"


FAILED_STATUSES = frozenset({RepoStatus.BACKUP_FAILED, RepoStatus.DELETE_FAILED})


@dataclass
class RepoExecutionEntry:
    """Execution state of one plan target."""

    full_name: str
    status: RepoStatus = RepoStatus.PENDING
    backup_path: str = ""
    browsable_path: str = ""
    bundle_path: str = ""
    archive_commit: str = ""
    archive_status: ArchiveStatus | None = None
    error: str = ""
    attempts: int = 0
    last_attempt_at: str = ""

    def record_attempt(self, now: datetime) -> None:
        self.attempts += 1
        self.last_attempt_at = format_timestamp(now)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "fullName": self.full_name,
            "status": self.status.value,
        }
        optional = {
            "backupPath": self.backup_path,
            "browsablePath": self.browsable_path,
            "bundlePath": self.bundle_path,
            "archiveCommit": self.archive_commit,
            "archiveStatus": self.archive_status.value if self.archive_status else "",
            "error": self.error,
        }
        data.update({k: v for k, v in optional.items() if v})
        data["attempts"] = self.attempts
        if self.last_attempt_at:
            data["lastAttemptAt"] = self.last_attempt_at
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepoExecutionEntry":
        archive_status = data.get("archiveStatus")
        try:
            return cls(
                full_name=data.get("fullName", ""),
                status=RepoStatus(data.get("status") or RepoStatus.PENDING.value),
                backup_path=data.get("backupPath", ""),
                browsable_path=data.get("browsablePath", ""),
                bundle_path=data.get("bundlePath", ""),
                archive_commit=data.get("archiveCommit", ""),
                archive_status=ArchiveStatus(archive_status) if archive_status else None,
                error=data.get("error", ""),
                attempts=int(data.get("attempts", 0)),
                last_attempt_at=data.get("lastAttemptAt", ""),
            )
        except ValueError as e:
            raise ManifestError(f"Invalid manifest entry {data.get('fullName')!r}: {e}") from e


@dataclass
class BundleArtifact:
    """A produced bundle queued for archive publishing."""

    full_name: str
    bundle_path: str
    updated_at: str = ""


@dataclass
class ExecutionManifest:
    """Per-backup-root execution record bound to exactly one plan."""

    mode: Mode
    plan_fingerprint: str
    plan_path: str
    actor: str
    host: str
    backup_root: str
    created_at: str
    updated_at: str
    schema_version: str = SCHEMA_VERSION
    archive_repo: str = ""
    archive_branch: str = ""
    repo_executions: list[RepoExecutionEntry] = field(default_factory=list)
    deleted_count: int = 0
    failed_count: int = 0
    skipped_fail_count: int = 0

    @classmethod
    def new(
        cls,
        plan_path: str,
        backup_root: Path | str,
        plan: DeletionPlan,
        now: datetime,
        mode: Mode = Mode.DELETE,
        archive_repo: str = "",
        archive_branch: str = "",
    ) -> "ExecutionManifest":
        """One pending entry per plan target.

        The archive axis starts pending in backup mode, skipped otherwise.
        """
        mode = Mode(mode)
        archive_status = (
            ArchiveStatus.PENDING if mode is Mode.BACKUP else ArchiveStatus.SKIPPED
        )
        ts = format_timestamp(now)
        return cls(
            mode=mode,
            plan_fingerprint=plan.fingerprint,
            plan_path=str(plan_path),
            actor=plan.actor,
            host=plan.host,
            backup_root=str(backup_root),
            created_at=ts,
            updated_at=ts,
            archive_repo=archive_repo,
            archive_branch=archive_branch,
            repo_executions=[
                RepoExecutionEntry(full_name=r.full_name, archive_status=archive_status)
                for r in plan.repos
            ],
        )

    def touch(self, now: datetime) -> None:
        self.updated_at = format_timestamp(now)

    def recompute_counters(self) -> None:
        """Derive the aggregate counters from entry state."""
        deleted = sum(1 for e in self.repo_executions if e.status is RepoStatus.DELETED)
        failed = sum(1 for e in self.repo_executions if e.status in FAILED_STATUSES)
        self.deleted_count = deleted
        self.failed_count = failed
        self.skipped_fail_count = failed

    def find_entry(self, full_name: str) -> RepoExecutionEntry | None:
        for entry in self.repo_executions:
            if entry.full_name == full_name:
                return entry
        return None

    def count_archive_status(self, status: ArchiveStatus) -> int:
        return sum(1 for e in self.repo_executions if e.archive_status is status)

    def repos_with_archive_status(self, status: ArchiveStatus) -> list[str]:
        return sorted(e.full_name for e in self.repo_executions if e.archive_status is status)

    def check_binding(self, plan: DeletionPlan, mode: Mode) -> None:
        """Refuse to reinterpret this manifest for another plan or mode."""
        if self.plan_fingerprint != plan.fingerprint:
            raise ManifestMismatchError(
                "manifest plan fingerprint mismatch: "
                f"manifest={self.plan_fingerprint[:12]} plan={plan.fingerprint[:12]}"
            )
        if self.mode is not Mode(mode):
            raise ManifestMismatchError(
                f"manifest mode mismatch: manifest={self.mode.value} requested={Mode(mode).value}"
            )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "schemaVersion": self.schema_version,
            "mode": self.mode.value,
            "planFingerprint": self.plan_fingerprint,
            "planPath": self.plan_path,
            "actor": self.actor,
            "host": self.host,
        }
        if self.archive_repo:
            data["archiveRepo"] = self.archive_repo
        if self.archive_branch:
            data["archiveBranch"] = self.archive_branch
        data.update(
            {
                "backupRoot": self.backup_root,
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "repoExecutions": [e.to_dict() for e in self.repo_executions],
                "deletedCount": self.deleted_count,
                "failedCount": self.failed_count,
                "skippedFailCount": self.skipped_fail_count,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionManifest":
        try:
            mode = Mode(data.get("mode") or Mode.DELETE.value)
        except ValueError as e:
            raise ManifestError(f"Invalid manifest mode: {e}") from e
        return cls(
            schema_version=data.get("schemaVersion", SCHEMA_VERSION),
            mode=mode,
            plan_fingerprint=data.get("planFingerprint", ""),
            plan_path=data.get("planPath", ""),
            actor=data.get("actor", ""),
            host=data.get("host", ""),
            archive_repo=data.get("archiveRepo", ""),
            archive_branch=data.get("archiveBranch", ""),
            backup_root=data.get("backupRoot", ""),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
            repo_executions=[
                RepoExecutionEntry.from_dict(e) for e in data.get("repoExecutions") or []
            ],
            deleted_count=int(data.get("deletedCount", 0)),
            failed_count=int(data.get("failedCount", 0)),
            skipped_fail_count=int(data.get("skippedFailCount", 0)),
        )


def load_manifest(path: Path | str) -> ExecutionManifest:
    """Read a manifest file.

    Raises:
        ManifestError: If the file cannot be read or parsed
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid manifest {path}: {e}") from e
    except OSError as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"Invalid manifest {path}: expected a JSON object")
    return ExecutionManifest.from_dict(data)


def save_manifest(path: Path | str, manifest: ExecutionManifest) -> None:
    """Recompute counters and atomically rewrite the manifest file.

    The new content is written to a sibling temp file and renamed over the
    old one, so a crash leaves either the previous or the new snapshot.
    """
    path = Path(path)
    manifest.recompute_counters()
    content = json.dumps(manifest.to_dict(), indent=2, ensure_ascii=False) + "\n"
    tmp_path = path.with_name(path.name + ".tmp")
    lock_path = path.with_name(path.name + ".lock")

    with FileLock(lock_path):
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)

    logger.debug(
        "Manifest saved: %s (deleted=%d failed=%d)",
        path,
        manifest.deleted_count,
        manifest.failed_count,
    )
