"""Tests for config loader module."""

from pathlib import Path

import pytest

from gh_manager.config.loader import (
    ConfigError,
    find_config_file,
    generate_example_config,
    load_config,
)
from gh_manager.config.schema import DEFAULT_MAX_BUNDLE_SIZE


class TestFindConfigFile:
    """Tests for find_config_file function."""

    def test_explicit_path_exists(self, config_file):
        """Test finding explicitly specified config file."""
        result = find_config_file(str(config_file))
        assert result == config_file

    def test_explicit_path_not_exists(self, tmp_path):
        """Test error when explicit path doesn't exist."""
        with pytest.raises(ConfigError, match="not found"):
            find_config_file(str(tmp_path / "nonexistent.toml"))

    def test_user_config_location(self, home_dir, sample_config_toml):
        """Test finding config in user config directory."""
        user_config_dir = home_dir / ".config" / "gh-manager"
        user_config_dir.mkdir(parents=True)
        config_path = user_config_dir / "config.toml"
        config_path.write_text(sample_config_toml)

        assert find_config_file(None) == config_path

    def test_no_config_found(self):
        """Test returning None when no config exists anywhere."""
        assert find_config_file(None) is None


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_config(self, config_file):
        """Test loading a valid configuration file."""
        config, warnings = load_config(config_file)

        assert warnings == []
        assert config.global_config.backup_dir == "/srv/gh-backups"
        assert config.global_config.max_delete_retries == 5
        assert config.global_config.transaction_log == "/var/log/gh-manager/transactions.log"
        assert config.global_config.verbose is True
        assert config.archive.repo == "octo/cold-storage"
        assert config.archive.branch == "archive"
        assert config.archive.max_bundle_size == 2048

    def test_load_minimal_config(self, minimal_config_file):
        """Test defaults fill everything not given."""
        config, warnings = load_config(minimal_config_file)

        assert config.archive.enabled is False
        assert config.archive.branch == "main"
        assert config.archive.visibility == "private"
        assert config.archive.max_bundle_size == DEFAULT_MAX_BUNDLE_SIZE
        assert config.global_config.max_delete_retries == 3
        assert config.global_config.backup_dir is None

    def test_empty_config(self, tmp_config_dir):
        """Test loading an empty config file."""
        empty_config = tmp_config_dir / "empty.toml"
        empty_config.write_text("")

        config, warnings = load_config(empty_config)
        assert warnings == []
        assert config.archive.enabled is True

    def test_load_nonexistent_file(self, tmp_path):
        """Test error when loading nonexistent file."""
        with pytest.raises(ConfigError, match="Cannot read config file"):
            load_config(tmp_path / "nonexistent.toml")

    def test_load_invalid_toml(self, tmp_config_dir):
        """Test error when loading invalid TOML."""
        bad_config = tmp_config_dir / "bad.toml"
        bad_config.write_text("this is not valid [ toml")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(bad_config)

    def test_wrong_type(self, tmp_config_dir):
        """Test a string where a number is expected is rejected."""
        bad_config = tmp_config_dir / "bad.toml"
        bad_config.write_text('[global]\nmax_delete_retries = "three"\n')

        with pytest.raises(ConfigError, match="max_delete_retries"):
            load_config(bad_config)

    def test_bool_is_not_an_integer(self, tmp_config_dir):
        bad_config = tmp_config_dir / "bad.toml"
        bad_config.write_text("[archive]\nmax_bundle_size = true\n")

        with pytest.raises(ConfigError, match="max_bundle_size"):
            load_config(bad_config)

    def test_section_must_be_table(self, tmp_config_dir):
        bad_config = tmp_config_dir / "bad.toml"
        bad_config.write_text('archive = "octo/x"\n')

        with pytest.raises(ConfigError, match="tables"):
            load_config(bad_config)


class TestConfigWarnings:
    """Tests for configuration warnings."""

    def _warnings(self, tmp_config_dir, content):
        path = tmp_config_dir / "warn.toml"
        path.write_text(content)
        _, warnings = load_config(path)
        return warnings

    def test_non_positive_retries(self, tmp_config_dir):
        warnings = self._warnings(tmp_config_dir, "[global]\nmax_delete_retries = 0\n")
        assert any("max_delete_retries" in w for w in warnings)

    def test_unknown_visibility(self, tmp_config_dir):
        warnings = self._warnings(tmp_config_dir, '[archive]\nvisibility = "internal"\n')
        assert any("visibility" in w for w in warnings)

    def test_repo_without_owner(self, tmp_config_dir):
        warnings = self._warnings(tmp_config_dir, '[archive]\nrepo = "archive"\n')
        assert any("owner/name" in w for w in warnings)

    def test_non_positive_bundle_size(self, tmp_config_dir):
        warnings = self._warnings(tmp_config_dir, "[archive]\nmax_bundle_size = 0\n")
        assert any("max_bundle_size" in w for w in warnings)

    def test_empty_branch(self, tmp_config_dir):
        warnings = self._warnings(tmp_config_dir, '[archive]\nbranch = ""\n')
        assert any("branch" in w for w in warnings)


class TestGenerateExampleConfig:
    def test_example_is_loadable(self, tmp_config_dir):
        """Test the generated example parses without warnings."""
        path = tmp_config_dir / "example.toml"
        path.write_text(generate_example_config())

        config, warnings = load_config(path)

        assert warnings == []
        assert config.archive.max_bundle_size == DEFAULT_MAX_BUNDLE_SIZE
        assert Path(config.global_config.transaction_log).name == "transactions.log"
