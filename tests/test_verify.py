"""Tests for backup root verification."""

import shutil
from pathlib import Path

from gh_manager import paths
from gh_manager.core.manifest import ArchiveStatus, load_manifest, save_manifest
from gh_manager.core.verify import VerifyReport, VerifyResult, verify_backup_root


class TestVerifyReport:
    """Tests for VerifyReport dataclass."""

    def test_counts(self):
        report = VerifyReport(location="/tmp/x")
        report.results = [
            VerifyResult(full_name="a/b", passed=True),
            VerifyResult(full_name="a/c", passed=False, message="missing"),
        ]
        assert report.total == 2
        assert report.passed == 1
        assert report.failed == 1
        assert report.ok is False

    def test_errors_make_report_not_ok(self):
        report = VerifyReport(location="/tmp/x", errors=["boom"])
        assert report.ok is False

    def test_duration(self):
        report = VerifyReport(location="/tmp/x", started_at=100.0, completed_at=102.5)
        assert report.duration == 2.5


class TestVerifyBackupRoot:
    """Tests for verify_backup_root function."""

    def test_intact_root(self, populated_root):
        """Test a freshly produced root passes."""
        report = verify_backup_root(populated_root)

        assert report.ok
        assert report.total == 3
        assert report.passed == 3
        assert all(r.details == {"mirror": True, "snapshot": True, "bundle": True} for r in report.results)

    def test_missing_snapshot(self, populated_root):
        """Test a deleted snapshot fails that repository only."""
        shutil.rmtree(paths.snapshot_path(populated_root, "octo", "beta"))

        report = verify_backup_root(populated_root)

        assert report.failed == 1
        failed = [r for r in report.results if not r.passed][0]
        assert failed.full_name == "octo/beta"
        assert "missing snapshot directory" in failed.message

    def test_missing_bundle(self, populated_root):
        paths.bundle_path(populated_root, "octo", "zeta").unlink()

        report = verify_backup_root(populated_root)

        failed = [r for r in report.results if not r.passed]
        assert [r.full_name for r in failed] == ["octo/zeta"]
        assert "missing bundle file" in failed[0].message

    def test_size_skipped_bundle_location(self, populated_root):
        """Test a size-skipped bundle must live in the size-skip folder."""
        manifest_file = paths.manifest_path(populated_root)
        manifest = load_manifest(manifest_file)
        entry = manifest.find_entry("octo/alpha")
        entry.archive_status = ArchiveStatus.SKIPPED_SIZE_LIMIT
        save_manifest(manifest_file, manifest)

        report = verify_backup_root(populated_root)
        result = [r for r in report.results if r.full_name == "octo/alpha"][0]
        assert result.passed is False
        assert result.details["in_size_skip_dir"] is False

        skip_dir = populated_root / paths.SKIPPED_SIZE_DIR
        skip_dir.mkdir()
        moved = skip_dir / Path(entry.bundle_path).name
        shutil.move(entry.bundle_path, moved)
        entry.bundle_path = str(moved)
        save_manifest(manifest_file, manifest)

        report = verify_backup_root(populated_root)
        assert report.ok

    def test_no_manifest(self, tmp_path):
        report = verify_backup_root(tmp_path)
        assert report.errors
        assert "No manifest found" in report.errors[0]
        assert report.total == 0

    def test_corrupt_manifest(self, populated_root):
        paths.manifest_path(populated_root).write_text("not json")
        report = verify_backup_root(populated_root)
        assert not report.ok
        assert report.errors

    def test_progress_callback(self, populated_root):
        seen = []
        verify_backup_root(populated_root, on_progress=lambda i, n, name: seen.append((i, n, name)))
        assert seen == [(1, 3, "octo/alpha"), (2, 3, "octo/beta"), (3, 3, "octo/zeta")]
