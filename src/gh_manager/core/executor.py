"""Plan executor: drive each plan target through backup, archive or delete.

The executor validates the plan, asks for confirmation, loads or creates
the manifest of the backup root and then walks the manifest entries in
order. After every side-effecting step the manifest is rewritten, so a
killed process can be resumed and each entry continues from its recorded
state.

Pipelines:

- delete: mirror -> browsable snapshot -> delete (with retries)
- backup: mirror -> browsable snapshot -> bundle, then one archive
  publish for every eligible bundle

Per-repository failures are recorded and the batch continues. Only
configuration errors, plan validation errors, a rejected confirmation
and a manifest that belongs to another plan or mode abort a run.
"""

import logging
import sys
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Protocol, TextIO

from .. import paths
from ..config.schema import DEFAULT_MAX_DELETE_RETRIES, Config
from ..transaction import TransactionContext, log_transaction
from .archive_filter import DEFAULT_MAX_BUNDLE_SIZE, filter_bundles_by_size
from .manifest import (
    ArchiveStatus,
    BundleArtifact,
    ExecutionManifest,
    ManifestError,
    Mode,
    RepoExecutionEntry,
    RepoStatus,
    load_manifest,
    save_manifest,
)
from .plan import DeletionPlan, RepoRecord
from .secret import ensure_secret

logger = logging.getLogger(__name__)

ARCHIVE_REPO_NAME = "gh-manager-archive"
DEFAULT_ARCHIVE_BRANCH = "main"
DEFAULT_ARCHIVE_VISIBILITY = "private"
CONFIRMATION_PHRASES = ("ACCEPT", "CONFIRM")

# Archive states that still want a publish attempt.
_UNPUBLISHED = frozenset(
    {ArchiveStatus.PENDING, ArchiveStatus.ARCHIVE_FAILED, ArchiveStatus.SKIPPED}
)


class ExecutorError(Exception):
    """Invalid executor configuration; nothing was done."""

    pass


class ConfirmationError(ExecutorError):
    """The operator did not confirm the run."""

    pass


class RepoDeleter(Protocol):
    def delete_repo(self, full_name: str) -> None: ...


class ArchiveRepoManager(Protocol):
    def ensure_repo(self, full_name: str, visibility: str) -> None: ...


class BackupProvider(Protocol):
    """Produces local artifacts for one repository.

    ``mirror_backup`` must be idempotent and return the existing path when
    the mirror is already present.
    """

    def mirror_backup(self, repo: RepoRecord, backup_root: Path) -> str: ...

    def create_browsable_snapshot(self, repo: RepoRecord, backup_root: Path) -> str: ...

    def create_bundle(self, repo: RepoRecord, backup_root: Path) -> str: ...


class ArchivePublisher(Protocol):
    def publish_bundles(
        self,
        archive_repo: str,
        branch: str,
        backup_root: Path,
        bundles: list[BundleArtifact],
        plan_fingerprint: str,
    ) -> str: ...


@dataclass
class ExecutorConfig:
    """Per-invocation executor settings.

    Attributes:
        plan_path: Where the plan was read from (recorded in the manifest)
        mode: "delete" or "backup"
        resume: Continue an existing manifest instead of refusing it
        dry_run: Print the simulated operations only
        backup_dir: Backup root override
        max_delete_retries: Delete attempts per repository per run
        archive_repo: Archive repository (default <actor>/gh-manager-archive)
        archive_branch: Archive branch (default main)
        archive_visibility: Visibility used if the archive repo is created
        no_archive: Skip archive publishing in backup mode
        max_bundle_size: Size ceiling for publishable bundles, in bytes
    """

    plan_path: str = ""
    mode: Mode | str = Mode.DELETE
    resume: bool = False
    dry_run: bool = False
    backup_dir: Optional[str] = None
    max_delete_retries: int = 0
    archive_repo: str = ""
    archive_branch: str = ""
    archive_visibility: str = ""
    no_archive: bool = False
    max_bundle_size: int = DEFAULT_MAX_BUNDLE_SIZE

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "ExecutorConfig":
        """Build settings from the config file, then apply per-run overrides."""
        base = cls(
            backup_dir=config.global_config.backup_dir,
            max_delete_retries=config.global_config.max_delete_retries,
            archive_repo=config.archive.repo,
            archive_branch=config.archive.branch,
            archive_visibility=config.archive.visibility,
            no_archive=not config.archive.enabled,
            max_bundle_size=config.archive.max_bundle_size,
        )
        return replace(base, **{k: v for k, v in overrides.items() if v is not None})


@dataclass
class ExecutionResult:
    """Aggregate outcome of one executor run."""

    backup_root: Path
    manifest_path: Optional[Path] = None
    deleted: int = 0
    failed: int = 0
    archive_failed: int = 0
    archive_skipped_size: int = 0
    total: int = 0
    archive_commit: str = ""
    archive_repo: str = ""
    archive_branch: str = ""
    archive_skipped_repos: list[str] = field(default_factory=list)
    dry_run: bool = False


@dataclass
class _RunContext:
    config: ExecutorConfig
    mode: Mode
    plan: DeletionPlan
    backup_root: Path
    manifest_path: Path
    manifest: ExecutionManifest


def require_confirmation(stdin: TextIO, stdout: TextIO, count: int, mode: Mode) -> None:
    """Read one line and accept only ACCEPT or CONFIRM (any case).

    Raises:
        ConfirmationError: On any other input, including EOF
    """
    if mode is Mode.DELETE:
        stdout.write(f"This will back up and then DELETE {count} repositories.\n")
    else:
        stdout.write(f"This will back up and archive {count} repositories.\n")
    stdout.write(f"Type {' or '.join(CONFIRMATION_PHRASES)} to continue: ")
    stdout.flush()

    answer = stdin.readline()
    if answer.strip().upper() not in CONFIRMATION_PHRASES:
        raise ConfirmationError("confirmation phrase mismatch")


def _should_skip(mode: Mode, entry: RepoExecutionEntry) -> bool:
    """True if the entry already reached the success state of ``mode``."""
    if mode is Mode.DELETE:
        return entry.status is RepoStatus.DELETED
    return entry.status is RepoStatus.BACKUP_OK and bool(entry.bundle_path)


class Executor:
    """Runs signed plans against injected collaborators.

    Args:
        backup: Backup provider (always required)
        deleter: Repository deleter (required in delete mode)
        repo_manager: Archive repository manager (backup mode with archiving)
        archive: Archive publisher (backup mode with archiving)
        secret: Local signing secret (default: the one under the config dir)
        now: Clock
        stdin: Confirmation input
        stdout: Operator-facing output
        find_backup_roots: Lookup of existing roots for a plan fingerprint
        home: Home directory for default roots and the signing secret
    """

    def __init__(
        self,
        backup: Optional[BackupProvider] = None,
        deleter: Optional[RepoDeleter] = None,
        repo_manager: Optional[ArchiveRepoManager] = None,
        archive: Optional[ArchivePublisher] = None,
        *,
        secret: Optional[bytes] = None,
        now: Optional[Callable[[], datetime]] = None,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        find_backup_roots: Optional[Callable[[str], list[Path]]] = None,
        home: Optional[Path] = None,
    ) -> None:
        self.backup = backup
        self.deleter = deleter
        self.repo_manager = repo_manager
        self.archive = archive
        self.secret = secret
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.find_backup_roots = find_backup_roots or (
            lambda fingerprint: paths.find_backup_roots(fingerprint, home=home)
        )
        self.home = home

    def execute(self, config: ExecutorConfig, plan: DeletionPlan) -> ExecutionResult:
        """Run ``plan`` according to ``config``.

        Raises:
            ExecutorError: Bad mode or missing collaborators
            ConfirmationError: Confirmation rejected
            PlanValidationError: Plan failed validation
            SecretError: Local signing secret unreadable or malformed
            ManifestError: Manifest unusable for this plan or mode
        """
        cfg, mode = self._with_defaults(config)
        self._check_collaborators(cfg, mode)
        self._check_plan(plan)

        backup_root = self._resolve_backup_root(plan, cfg)
        logger.debug("Backup root resolved to %s", backup_root)

        require_confirmation(self.stdin, self.stdout, len(plan.repos), mode)

        if cfg.dry_run:
            return self._simulate(cfg, mode, plan, backup_root)

        backup_root.mkdir(mode=0o700, parents=True, exist_ok=True)
        manifest_file = paths.manifest_path(backup_root)
        manifest = self._load_or_create_manifest(cfg, mode, plan, backup_root, manifest_file)
        ctx = _RunContext(
            config=cfg,
            mode=mode,
            plan=plan,
            backup_root=backup_root,
            manifest_path=manifest_file,
            manifest=manifest,
        )
        logger.info(
            "Executing %s plan %s: %d repositories, backup root %s",
            mode.value,
            plan.fingerprint[:12],
            len(manifest.repo_executions),
            backup_root,
        )

        archive_bundles: list[BundleArtifact] = []
        for entry in manifest.repo_executions:
            artifact = self._process_entry(ctx, entry)
            if artifact is not None:
                archive_bundles.append(artifact)

        archive_commit = ""
        if mode is Mode.BACKUP:
            archive_commit = self._publish_archive(ctx, archive_bundles)

        self._persist(ctx)

        result = ExecutionResult(
            backup_root=backup_root,
            manifest_path=manifest_file,
            deleted=manifest.deleted_count,
            failed=manifest.failed_count,
            archive_failed=manifest.count_archive_status(ArchiveStatus.ARCHIVE_FAILED),
            archive_skipped_size=manifest.count_archive_status(ArchiveStatus.SKIPPED_SIZE_LIMIT),
            total=len(manifest.repo_executions),
            archive_commit=archive_commit,
            archive_repo=ctx.config.archive_repo,
            archive_branch=ctx.config.archive_branch,
            archive_skipped_repos=manifest.repos_with_archive_status(
                ArchiveStatus.SKIPPED_SIZE_LIMIT
            ),
        )
        logger.info(
            "Run finished: deleted=%d failed=%d archive_failed=%d archive_skipped_size=%d total=%d",
            result.deleted,
            result.failed,
            result.archive_failed,
            result.archive_skipped_size,
            result.total,
        )
        return result

    # ----------------------------
    # Validation
    # ----------------------------
    def _with_defaults(self, config: ExecutorConfig) -> tuple[ExecutorConfig, Mode]:
        try:
            mode = Mode(config.mode or Mode.DELETE)
        except ValueError:
            raise ExecutorError(f"unsupported mode: {config.mode}") from None

        cfg = replace(
            config,
            mode=mode,
            max_delete_retries=(
                config.max_delete_retries
                if config.max_delete_retries > 0
                else DEFAULT_MAX_DELETE_RETRIES
            ),
        )
        return cfg, mode

    def _check_collaborators(self, cfg: ExecutorConfig, mode: Mode) -> None:
        if self.backup is None:
            raise ExecutorError("executor backup provider is not configured")
        if mode is Mode.DELETE and self.deleter is None:
            raise ExecutorError("delete mode requires a repository deleter")
        if mode is Mode.BACKUP and not cfg.no_archive:
            if self.repo_manager is None or self.archive is None:
                raise ExecutorError(
                    "backup mode with archiving requires an archive repo manager "
                    "and an archive publisher"
                )

    def _check_plan(self, plan: DeletionPlan) -> None:
        if not plan.fingerprint:
            raise ExecutorError("plan is not signed")
        if self.secret is None:
            self.secret = ensure_secret(paths.config_dir(self.home))
        plan.validate(self.secret)

    def _resolve_backup_root(self, plan: DeletionPlan, cfg: ExecutorConfig) -> Path:
        if cfg.backup_dir:
            return Path(cfg.backup_dir).expanduser()
        if cfg.resume:
            candidates = self.find_backup_roots(plan.fingerprint)
            if candidates:
                logger.info("Resuming in existing backup root %s", candidates[-1])
                return Path(candidates[-1])
        return paths.default_backup_root(self.now(), home=self.home)

    def _load_or_create_manifest(
        self,
        cfg: ExecutorConfig,
        mode: Mode,
        plan: DeletionPlan,
        backup_root: Path,
        manifest_file: Path,
    ) -> ExecutionManifest:
        if manifest_file.exists():
            if not cfg.resume:
                raise ManifestError(
                    f"manifest already exists at {manifest_file}; rerun with resume"
                )
            manifest = load_manifest(manifest_file)
            manifest.check_binding(plan, mode)
            self._add_missing_entries(manifest, plan)
            logger.info("Loaded manifest %s", manifest_file)
            return manifest

        manifest = ExecutionManifest.new(
            cfg.plan_path,
            backup_root,
            plan,
            self.now(),
            mode=mode,
            archive_repo=cfg.archive_repo,
            archive_branch=cfg.archive_branch,
        )
        save_manifest(manifest_file, manifest)
        logger.info("Created manifest %s", manifest_file)
        return manifest

    @staticmethod
    def _add_missing_entries(manifest: ExecutionManifest, plan: DeletionPlan) -> None:
        known = {e.full_name for e in manifest.repo_executions}
        archive_status = (
            ArchiveStatus.PENDING if manifest.mode is Mode.BACKUP else ArchiveStatus.SKIPPED
        )
        for repo in plan.repos:
            if repo.full_name not in known:
                logger.warning("Manifest had no entry for %s; adding it", repo.full_name)
                manifest.repo_executions.append(
                    RepoExecutionEntry(full_name=repo.full_name, archive_status=archive_status)
                )

    # ----------------------------
    # Per-repository pipeline
    # ----------------------------
    def _process_entry(
        self, ctx: _RunContext, entry: RepoExecutionEntry
    ) -> Optional[BundleArtifact]:
        """Advance one entry. Returns its bundle if it should be archived."""
        repo = ctx.plan.find_repo(entry.full_name)

        if _should_skip(ctx.mode, entry):
            logger.debug("Skipping %s: already %s", entry.full_name, entry.status.value)
            if ctx.mode is Mode.BACKUP and repo is not None:
                return self._archive_candidate(entry, repo)
            return None

        if repo is None:
            entry.status = RepoStatus.DELETE_FAILED
            entry.error = "repo missing from plan"
            entry.record_attempt(self.now())
            log_transaction(
                action=ctx.mode.value,
                status="failed",
                repo=entry.full_name,
                plan_fingerprint=ctx.plan.fingerprint,
                error=entry.error,
            )
            logger.warning("%s is in the manifest but not in the plan", entry.full_name)
            self._persist(ctx, strict=False)
            return None

        if (
            not entry.backup_path
            or entry.status is RepoStatus.PENDING
            or entry.status is RepoStatus.BACKUP_FAILED
        ):
            self._say(f"Backing up {repo.full_name}...")
            backup_path = self._run_stage(
                ctx, entry, "mirror", "Backup",
                lambda: self.backup.mirror_backup(repo, ctx.backup_root),
            )
            if backup_path is None:
                return None
            entry.backup_path = backup_path
            entry.status = RepoStatus.BACKUP_OK
            self._persist(ctx)

        if not entry.browsable_path:
            self._say(f"Creating browsable snapshot {repo.full_name}...")
            snapshot_path = self._run_stage(
                ctx, entry, "snapshot", "Browsable snapshot",
                lambda: self.backup.create_browsable_snapshot(repo, ctx.backup_root),
            )
            if snapshot_path is None:
                return None
            entry.browsable_path = snapshot_path
            self._persist(ctx)

        if ctx.mode is Mode.BACKUP:
            if not entry.bundle_path:
                self._say(f"Creating bundle {repo.full_name}...")
                bundle_path = self._run_stage(
                    ctx, entry, "bundle", "Bundle",
                    lambda: self.backup.create_bundle(repo, ctx.backup_root),
                )
                if bundle_path is None:
                    return None
                entry.bundle_path = bundle_path
                self._persist(ctx)
            return self._archive_candidate(entry, repo)

        self._delete(ctx, entry, repo)
        return None

    def _run_stage(
        self,
        ctx: _RunContext,
        entry: RepoExecutionEntry,
        action: str,
        label: str,
        func: Callable[[], str],
    ) -> Optional[str]:
        """Run one backup-side stage with attempt and failure bookkeeping.

        Returns the produced path, or None after recording the failure.
        """
        logger.debug("Stage %s for %s", action, entry.full_name)
        try:
            produced = func()
        except Exception as e:
            entry.record_attempt(self.now())
            entry.status = RepoStatus.BACKUP_FAILED
            entry.error = str(e) or e.__class__.__name__
            log_transaction(
                action=action,
                status="failed",
                repo=entry.full_name,
                plan_fingerprint=ctx.plan.fingerprint,
                error=entry.error,
            )
            logger.warning("%s failed for %s: %s", label, entry.full_name, entry.error)
            self._say(f"{label} failed for {entry.full_name}: {entry.error}")
            self._persist(ctx, strict=False)
            return None

        entry.record_attempt(self.now())
        entry.error = ""
        log_transaction(
            action=action,
            status="completed",
            repo=entry.full_name,
            destination=str(produced),
            plan_fingerprint=ctx.plan.fingerprint,
        )
        return str(produced)

    def _delete(self, ctx: _RunContext, entry: RepoExecutionEntry, repo: RepoRecord) -> None:
        """Delete with up to max_delete_retries attempts, one bookkeeping update."""
        if not entry.backup_path or not entry.browsable_path:
            entry.record_attempt(self.now())
            entry.status = RepoStatus.DELETE_FAILED
            entry.error = "refusing to delete without a recorded backup and snapshot"
            logger.error("%s: %s", repo.full_name, entry.error)
            self._persist(ctx, strict=False)
            return

        self._say(f"Deleting {repo.full_name}...")
        retries = ctx.config.max_delete_retries
        error: Optional[Exception] = None
        for attempt in range(1, retries + 1):
            try:
                self.deleter.delete_repo(repo.full_name)
            except Exception as e:
                error = e
                logger.debug(
                    "Delete attempt %d/%d failed for %s: %s", attempt, retries, repo.full_name, e
                )
                continue
            error = None
            break

        entry.record_attempt(self.now())
        if error is not None:
            entry.status = RepoStatus.DELETE_FAILED
            entry.error = str(error) or error.__class__.__name__
            logger.warning("Delete failed for %s: %s", repo.full_name, entry.error)
            self._say(f"Delete failed for {repo.full_name}: {entry.error}")
        else:
            entry.status = RepoStatus.DELETED
            entry.error = ""
            self._say(f"Deleted {repo.full_name}")
        log_transaction(
            action="delete",
            status="failed" if error is not None else "completed",
            repo=repo.full_name,
            plan_fingerprint=ctx.plan.fingerprint,
            error=entry.error or None,
            details={"max_attempts": retries},
        )
        self._persist(ctx)

    @staticmethod
    def _archive_candidate(
        entry: RepoExecutionEntry, repo: RepoRecord
    ) -> Optional[BundleArtifact]:
        if not entry.bundle_path or entry.archive_status not in _UNPUBLISHED:
            return None
        return BundleArtifact(
            full_name=repo.full_name,
            bundle_path=entry.bundle_path,
            updated_at=repo.updated_at,
        )

    # ----------------------------
    # Archive publishing
    # ----------------------------
    def _publish_archive(self, ctx: _RunContext, bundles: list[BundleArtifact]) -> str:
        """Publish eligible bundles as one batch. Returns the commit id or ""."""
        cfg = ctx.config
        manifest = ctx.manifest

        if cfg.no_archive or not bundles:
            reason = "archiving disabled" if cfg.no_archive else "no bundles"
            logger.info("Archive publish skipped: %s", reason)
            for entry in manifest.repo_executions:
                if entry.archive_status is ArchiveStatus.PENDING:
                    entry.archive_status = ArchiveStatus.SKIPPED
            log_transaction(
                action="archive",
                status="skipped",
                plan_fingerprint=ctx.plan.fingerprint,
                details={"reason": reason},
            )
            self._persist(ctx, strict=False)
            return ""

        archive_repo = cfg.archive_repo or f"{ctx.plan.actor}/{ARCHIVE_REPO_NAME}"
        archive_branch = cfg.archive_branch or DEFAULT_ARCHIVE_BRANCH
        visibility = cfg.archive_visibility or DEFAULT_ARCHIVE_VISIBILITY
        ctx.config = replace(
            cfg,
            archive_repo=archive_repo,
            archive_branch=archive_branch,
            archive_visibility=visibility,
        )
        manifest.archive_repo = manifest.archive_repo or archive_repo
        manifest.archive_branch = manifest.archive_branch or archive_branch

        eligible, size_skipped = filter_bundles_by_size(
            ctx.backup_root, bundles, manifest, max_bytes=cfg.max_bundle_size, out=self.stdout
        )
        self._persist(ctx)

        if size_skipped:
            self._say(
                f"Archive size-skip: {len(size_skipped)} bundle(s) moved to "
                f"{ctx.backup_root / paths.SKIPPED_SIZE_DIR}"
            )
        if not eligible:
            self._say("No bundles eligible for archive publish after size checks.")
            return ""

        try:
            self.repo_manager.ensure_repo(archive_repo, visibility)
        except Exception as e:
            logger.error("Cannot ensure archive repository %s: %s", archive_repo, e)
            self._say(f"Archive repository unavailable: {e}")
            self._mark_archive(manifest, eligible, ArchiveStatus.ARCHIVE_FAILED, error=str(e))
            log_transaction(
                action="archive",
                status="failed",
                destination=archive_repo,
                plan_fingerprint=ctx.plan.fingerprint,
                error=str(e),
            )
            self._persist(ctx, strict=False)
            return ""

        self._say(f"Publishing {len(eligible)} bundle(s) to {archive_repo} ({archive_branch})...")
        commit = ""
        try:
            with TransactionContext(
                "archive",
                destination=f"{archive_repo}@{archive_branch}",
                plan_fingerprint=ctx.plan.fingerprint,
            ) as tx:
                commit = self.archive.publish_bundles(
                    archive_repo, archive_branch, ctx.backup_root, eligible, ctx.plan.fingerprint
                )
                tx.add_detail("commit", commit)
                tx.add_detail("bundles", len(eligible))
        except Exception as e:
            logger.error("Archive publish failed: %s", e)
            self._say(f"Archive publish failed: {e}")
            self._mark_archive(manifest, eligible, ArchiveStatus.ARCHIVE_FAILED, error=str(e))
            commit = ""
        else:
            logger.info("Archived %d bundle(s) in commit %s", len(eligible), commit)
            self._mark_archive(manifest, eligible, ArchiveStatus.ARCHIVED, commit=commit)

        self._persist(ctx, strict=False)
        return commit

    @staticmethod
    def _mark_archive(
        manifest: ExecutionManifest,
        bundles: list[BundleArtifact],
        status: ArchiveStatus,
        commit: str = "",
        error: str = "",
    ) -> None:
        targets = {b.full_name for b in bundles}
        for entry in manifest.repo_executions:
            if entry.full_name not in targets:
                continue
            if entry.status is not RepoStatus.BACKUP_OK or not entry.bundle_path:
                continue
            entry.archive_status = status
            if status is ArchiveStatus.ARCHIVED:
                entry.archive_commit = commit
                entry.error = ""
            else:
                entry.error = error

    # ----------------------------
    # Dry run
    # ----------------------------
    def _simulate(
        self, cfg: ExecutorConfig, mode: Mode, plan: DeletionPlan, backup_root: Path
    ) -> ExecutionResult:
        """Print what a real run would do. Touches nothing."""
        for repo in plan.repos:
            self._say(f"[dry-run] Would mirror backup {repo.full_name} to {backup_root}")
            self._say(f"[dry-run] Would create browsable snapshot for {repo.full_name}")
            if mode is Mode.BACKUP:
                self._say(f"[dry-run] Would create bundle for {repo.full_name}")
            else:
                self._say(f"[dry-run] Would delete {repo.full_name}")

        archive_repo = cfg.archive_repo
        archive_branch = cfg.archive_branch or DEFAULT_ARCHIVE_BRANCH
        if mode is Mode.BACKUP and not cfg.no_archive:
            archive_repo = archive_repo or f"{plan.actor}/{ARCHIVE_REPO_NAME}"
            self._say(
                f"[dry-run] Would publish bundles to {archive_repo} (branch {archive_branch})"
            )

        return ExecutionResult(
            backup_root=backup_root,
            manifest_path=None,
            total=len(plan.repos),
            archive_repo=archive_repo,
            archive_branch=archive_branch,
            dry_run=True,
        )

    # ----------------------------
    # Helpers
    # ----------------------------
    def _persist(self, ctx: _RunContext, strict: bool = True) -> None:
        """Write the manifest snapshot.

        With ``strict`` a write failure aborts the run; otherwise it is
        logged, since the entry already records a failure.
        """
        ctx.manifest.touch(self.now())
        try:
            save_manifest(ctx.manifest_path, ctx.manifest)
        except OSError as e:
            if strict:
                raise ManifestError(f"cannot write manifest {ctx.manifest_path}: {e}") from e
            logger.error("Cannot write manifest %s: %s", ctx.manifest_path, e)

    def _say(self, message: str) -> None:
        self.stdout.write(message + "\n")
        self.stdout.flush()
