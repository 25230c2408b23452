"""Configuration system for gh-manager.

This module provides TOML-based configuration loading, validation,
and schema definitions.
"""

from .loader import ConfigError, find_config_file, load_config
from .schema import ArchiveConfig, Config, GlobalConfig

__all__ = [
    "ArchiveConfig",
    "GlobalConfig",
    "Config",
    "load_config",
    "find_config_file",
    "ConfigError",
]
