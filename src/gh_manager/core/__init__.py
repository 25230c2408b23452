"""Core plan, manifest and execution logic for gh-manager."""

from .executor import (
    ConfirmationError,
    ExecutionResult,
    Executor,
    ExecutorConfig,
    ExecutorError,
)
from .manifest import (
    ArchiveStatus,
    ExecutionManifest,
    ManifestError,
    ManifestMismatchError,
    Mode,
    RepoStatus,
    load_manifest,
    save_manifest,
)
from .plan import (
    DeletionPlan,
    PlanError,
    PlanValidationError,
    RepoRecord,
    read_plan,
    write_plan,
)
from .secret import SecretError, ensure_secret

__all__ = [
    "ArchiveStatus",
    "ConfirmationError",
    "DeletionPlan",
    "ExecutionManifest",
    "ExecutionResult",
    "Executor",
    "ExecutorConfig",
    "ExecutorError",
    "ManifestError",
    "ManifestMismatchError",
    "Mode",
    "PlanError",
    "PlanValidationError",
    "RepoRecord",
    "RepoStatus",
    "SecretError",
    "ensure_secret",
    "load_manifest",
    "read_plan",
    "save_manifest",
    "write_plan",
]
