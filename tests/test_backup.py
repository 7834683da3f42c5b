"""
Tests for devstrap.core.services.backup — copy-aside before overwrite.

Covers:
  - No-op on missing paths
  - File, directory and symlink backups
  - Backup naming and listing
  - Copy failures surface as BackupError
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

import pytest


class TestBackupPath:
    def test_timestamp_suffix(self, tmp_path: Path) -> None:
        from devstrap.core.services.backup import backup_path_for

        dest = backup_path_for(tmp_path / ".zshrc", "20250101-120000")
        assert dest == tmp_path / ".zshrc.backup-20250101-120000"

    def test_default_timestamp_format(self, tmp_path: Path) -> None:
        from devstrap.core.services.backup import backup_path_for

        dest = backup_path_for(tmp_path / "file")
        assert re.fullmatch(r"file\.backup-\d{8}-\d{6}", dest.name)


class TestBackup:
    def test_missing_path_is_noop(self, tmp_path: Path) -> None:
        from devstrap.core.services.backup import backup

        directory = tmp_path / "d"
        directory.mkdir()

        assert backup(directory / "nope") is None
        assert list(directory.iterdir()) == []

    def test_file_content_preserved(self, tmp_path: Path) -> None:
        from devstrap.core.services.backup import backup

        original = tmp_path / ".zshrc"
        original.write_bytes(b"export A=1\n\x00binary")

        dest = backup(original)

        assert dest is not None
        assert dest.read_bytes() == b"export A=1\n\x00binary"
        assert original.exists(), "backup must not move the original"

    def test_directory_copied_recursively(self, tmp_path: Path) -> None:
        from devstrap.core.services.backup import backup

        src = tmp_path / "nvim"
        (src / "lua").mkdir(parents=True)
        (src / "lua" / "init.lua").write_text("-- hi")

        dest = backup(src)

        assert dest is not None
        assert (dest / "lua" / "init.lua").read_text() == "-- hi"

    def test_symlink_backed_up_as_link(self, tmp_path: Path) -> None:
        from devstrap.core.services.backup import backup

        target = tmp_path / "real"
        target.write_text("x")
        link = tmp_path / "link"
        link.symlink_to(target)

        dest = backup(link)

        assert dest is not None
        assert dest.is_symlink()
        assert dest.readlink() == target

    def test_dangling_symlink_backed_up(self, tmp_path: Path) -> None:
        from devstrap.core.services.backup import backup

        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "gone")

        dest = backup(link)

        assert dest is not None and dest.is_symlink()

    def test_copy_failure_raises(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from devstrap.core.errors import BackupError
        from devstrap.core.services.backup import backup

        original = tmp_path / "f"
        original.write_text("x")

        def _boom(*args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr(shutil, "copy2", _boom)
        with pytest.raises(BackupError, match="denied"):
            backup(original)

