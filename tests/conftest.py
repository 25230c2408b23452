"""Pytest configuration and shared fixtures."""

import io
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from gh_manager import paths
from gh_manager.config import loader
from gh_manager.core.plan import DeletionPlan, RepoRecord
from gh_manager.transaction import set_transaction_log

SECRET = bytes(range(32))


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from the real home directory and config files."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(
        loader,
        "CONFIG_PATHS",
        [home / ".config" / "gh-manager" / "config.toml", tmp_path / "etc" / "config.toml"],
    )
    yield home
    set_transaction_log(None)


@pytest.fixture
def home_dir(isolated_environment):
    return isolated_environment


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
backup_dir = "/srv/gh-backups"
max_delete_retries = 5
transaction_log = "/var/log/gh-manager/transactions.log"
verbose = true

[archive]
repo = "octo/cold-storage"
branch = "archive"
visibility = "private"
enabled = true
max_bundle_size = 2048
"""


@pytest.fixture
def minimal_config_toml():
    """Return a minimal valid TOML configuration string."""
    return """
[archive]
enabled = false
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def minimal_config_file(tmp_config_dir, minimal_config_toml):
    """Create a temporary config file with minimal content."""
    config_path = tmp_config_dir / "minimal.toml"
    config_path.write_text(minimal_config_toml)
    return config_path


@pytest.fixture
def secret():
    return SECRET


@pytest.fixture
def sample_repos():
    """Three repositories in deliberately unsorted order."""
    return [
        RepoRecord(owner="octo", name="zeta", is_private=True, updated_at="2024-05-01T10:00:00Z"),
        RepoRecord(owner="octo", name="alpha", description="first"),
        RepoRecord(owner="octo", name="beta", is_fork=True),
    ]


@pytest.fixture
def signed_plan(sample_repos, secret):
    """A valid signed plan over ``sample_repos``."""
    plan = DeletionPlan.create(
        actor="octo",
        host="github.com",
        tool_version="0.4.0",
        repos=sample_repos,
        now=datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc),
    )
    plan.sign(secret)
    return plan


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 6, 1, 12, 30, 0, tzinfo=timezone.utc)

    def __call__(self):
        value = self.current
        self.current += timedelta(seconds=1)
        return value


class FakeBackup:
    """Backup provider producing real files and directories.

    ``fail`` maps a stage name ("mirror", "snapshot", "bundle") to the set
    of full names that should fail at that stage. ``bundle_sizes`` sets
    the size of specific bundle files.
    """

    def __init__(self, fail=None, bundle_sizes=None):
        self.fail = fail or {}
        self.bundle_sizes = bundle_sizes or {}
        self.calls = []

    def _maybe_fail(self, stage, repo):
        self.calls.append((stage, repo.full_name))
        if repo.full_name in self.fail.get(stage, set()):
            raise RuntimeError(f"{stage} exploded")

    def mirror_backup(self, repo, backup_root):
        self._maybe_fail("mirror", repo)
        path = Path(backup_root) / f"{paths.artifact_stem(repo.owner, repo.name)}.git"
        path.mkdir(parents=True, exist_ok=True)
        return str(path)

    def create_browsable_snapshot(self, repo, backup_root):
        self._maybe_fail("snapshot", repo)
        path = paths.snapshot_path(backup_root, repo.owner, repo.name)
        path.mkdir(parents=True, exist_ok=True)
        (path / "README.md").write_text(f"# {repo.name}\n")
        return str(path)

    def create_bundle(self, repo, backup_root):
        self._maybe_fail("bundle", repo)
        path = paths.bundle_path(backup_root, repo.owner, repo.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"b" * self.bundle_sizes.get(repo.full_name, 10))
        return str(path)

    def stage_calls(self, stage):
        return [name for s, name in self.calls if s == stage]


class FakeDeleter:
    """Deleter that fails a scheduled number of times per repository.

    ``failures`` maps full name to how many leading attempts raise; use a
    large number for a permanent failure.
    """

    def __init__(self, failures=None):
        self.failures = dict(failures or {})
        self.calls = []

    def delete_repo(self, full_name):
        self.calls.append(full_name)
        remaining = self.failures.get(full_name, 0)
        if remaining > 0:
            self.failures[full_name] = remaining - 1
            raise RuntimeError("HTTP 502")


class FakeRepoManager:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def ensure_repo(self, full_name, visibility):
        self.calls.append((full_name, visibility))
        if self.error is not None:
            raise self.error


class FakePublisher:
    def __init__(self, commit="c0ffee1234", error=None):
        self.commit = commit
        self.error = error
        self.calls = []

    def publish_bundles(self, archive_repo, branch, backup_root, bundles, plan_fingerprint):
        self.calls.append(
            {
                "repo": archive_repo,
                "branch": branch,
                "root": backup_root,
                "bundles": [b.full_name for b in bundles],
                "fingerprint": plan_fingerprint,
            }
        )
        if self.error is not None:
            raise self.error
        return self.commit


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stdout():
    return io.StringIO()


@pytest.fixture
def populated_root(tmp_path, signed_plan, secret, clock, home_dir):
    """A backup root produced by a backup-mode run with archiving disabled."""
    from gh_manager.core.executor import Executor, ExecutorConfig

    root = tmp_path / "populated"
    executor = Executor(
        FakeBackup(),
        secret=secret,
        now=clock,
        stdin=io.StringIO("ACCEPT\n"),
        stdout=io.StringIO(),
        home=home_dir,
    )
    executor.execute(
        ExecutorConfig(
            plan_path="/plans/plan.json",
            mode="backup",
            backup_dir=str(root),
            no_archive=True,
        ),
        signed_plan,
    )
    return root
