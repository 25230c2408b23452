"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration with sensible defaults.
"""

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_MAX_DELETE_RETRIES = 3
DEFAULT_MAX_BUNDLE_SIZE = 100 * 1024 * 1024
ARCHIVE_VISIBILITIES = ("private", "public")


@dataclass
class ArchiveConfig:
    """Archive publishing configuration.

    Attributes:
        repo: Archive repository full name (default: <actor>/gh-manager-archive)
        branch: Branch that receives archive commits
        visibility: Visibility used when the archive repository is created
        enabled: Whether backup runs publish bundles at all
        max_bundle_size: Bundles larger than this (bytes) are not published
    """

    repo: str = ""
    branch: str = "main"
    visibility: str = "private"
    enabled: bool = True
    max_bundle_size: int = DEFAULT_MAX_BUNDLE_SIZE


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        backup_dir: Backup root override (None for a fresh timestamped root)
        max_delete_retries: Delete attempts per repository per run
        log_file: Path to log file (None for no file logging)
        transaction_log: Path to the JSON-lines transaction log
        quiet: Suppress non-essential output
        verbose: Enable verbose output
    """

    backup_dir: Optional[str] = None
    max_delete_retries: int = DEFAULT_MAX_DELETE_RETRIES
    log_file: Optional[str] = None
    transaction_log: Optional[str] = "~/.config/gh-manager/transactions.log"
    quiet: bool = False
    verbose: bool = False


@dataclass
class Config:
    """Root configuration object."""

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
