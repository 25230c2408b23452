"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import tomllib
from pathlib import Path
from typing import Any

from .schema import (
    ARCHIVE_VISIBILITIES,
    DEFAULT_MAX_BUNDLE_SIZE,
    DEFAULT_MAX_DELETE_RETRIES,
    ArchiveConfig,
    Config,
    GlobalConfig,
)


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "gh-manager" / "config.toml",
    Path("/etc/gh-manager/config.toml"),
]


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _expect(data: dict[str, Any], key: str, kind: type | tuple[type, ...], default: Any) -> Any:
    value = data.get(key, default)
    if value is None or isinstance(value, kind):
        # bool is an int subclass; reject it where a number is expected
        if kind is int and isinstance(value, bool):
            raise ConfigError(f"'{key}' must be an integer")
        return value
    raise ConfigError(f"'{key}' has invalid type {type(value).__name__}")


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    defaults = GlobalConfig()
    return GlobalConfig(
        backup_dir=_expect(data, "backup_dir", str, None),
        max_delete_retries=_expect(
            data, "max_delete_retries", int, DEFAULT_MAX_DELETE_RETRIES
        ),
        log_file=_expect(data, "log_file", str, None),
        transaction_log=_expect(data, "transaction_log", str, defaults.transaction_log),
        quiet=_expect(data, "quiet", bool, False),
        verbose=_expect(data, "verbose", bool, False),
    )


def _parse_archive(data: dict[str, Any]) -> ArchiveConfig:
    """Parse archive configuration from dict."""
    return ArchiveConfig(
        repo=_expect(data, "repo", str, ""),
        branch=_expect(data, "branch", str, "main"),
        visibility=_expect(data, "visibility", str, "private"),
        enabled=_expect(data, "enabled", bool, True),
        max_bundle_size=_expect(data, "max_bundle_size", int, DEFAULT_MAX_BUNDLE_SIZE),
    )


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    if config.global_config.max_delete_retries <= 0:
        warnings.append(
            "max_delete_retries must be positive; the default of "
            f"{DEFAULT_MAX_DELETE_RETRIES} will be used"
        )

    archive = config.archive
    if archive.visibility not in ARCHIVE_VISIBILITIES:
        warnings.append(
            f"Archive visibility '{archive.visibility}' is not one of "
            f"{', '.join(ARCHIVE_VISIBILITIES)}"
        )
    if archive.repo and "/" not in archive.repo:
        warnings.append(f"Archive repo '{archive.repo}' should be written as owner/name")
    if archive.max_bundle_size <= 0:
        warnings.append("Archive max_bundle_size must be positive")
    if not archive.branch:
        warnings.append("Archive branch is empty; 'main' will be used")

    return warnings


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    global_data = data.get("global", {})
    archive_data = data.get("archive", {})
    if not isinstance(global_data, dict) or not isinstance(archive_data, dict):
        raise ConfigError("[global] and [archive] must be tables")

    config = Config(
        global_config=_parse_global(global_data),
        archive=_parse_archive(archive_data),
    )

    # Validate and collect warnings
    warnings = _validate_config(config)

    return config, warnings


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# gh-manager configuration
# See documentation for full options

[global]
# backup_dir = "~/gh-manager-archive-current"   # default: fresh timestamped root
max_delete_retries = 3
# log_file = "~/.config/gh-manager/gh-manager.log"
transaction_log = "~/.config/gh-manager/transactions.log"

[archive]
# repo = "your-login/gh-manager-archive"   # default: <actor>/gh-manager-archive
branch = "main"
visibility = "private"   # private or public
enabled = true
max_bundle_size = 104857600   # 100 MiB; larger bundles stay local only
"""
