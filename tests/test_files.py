"""Tests for atomic writes and path locks."""

import gc
import os
import stat
import threading
from unittest.mock import patch

import pytest

from tunnel_provisioner.common import files
from tunnel_provisioner.common.files import atomic_write_text, path_lock


class TestAtomicWriteText:
    """Test atomic_write_text function."""

    def test_creates_file(self, tmp_path):
        target = tmp_path / "config.yml"
        written = atomic_write_text(target, "tunnel: abc\n")

        assert written == target.resolve()
        assert target.read_text() == "tunnel: abc\n"
        assert stat.S_IMODE(target.stat().st_mode) == 0o644

    def test_explicit_mode(self, tmp_path):
        target = tmp_path / "config.yml"
        atomic_write_text(target, "x", mode=0o600)
        assert stat.S_IMODE(target.stat().st_mode) == 0o600

    def test_preserves_existing_mode(self, tmp_path):
        target = tmp_path / "httpd-vhosts.conf"
        target.write_text("old")
        os.chmod(target, 0o640)

        atomic_write_text(target, "new")

        assert target.read_text() == "new"
        assert stat.S_IMODE(target.stat().st_mode) == 0o640

    def test_leaves_no_temp_files(self, tmp_path):
        atomic_write_text(tmp_path / "a.yml", "a")
        atomic_write_text(tmp_path / "a.yml", "b")
        assert [p.name for p in tmp_path.iterdir()] == ["a.yml"]

    def test_failed_rename_keeps_original(self, tmp_path):
        target = tmp_path / "a.yml"
        target.write_text("original")

        with patch("os.replace", side_effect=OSError("rename failed")):
            with pytest.raises(OSError, match="rename failed"):
                atomic_write_text(target, "replacement")

        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["a.yml"]

    def test_writes_through_symlink(self, tmp_path):
        real = tmp_path / "real.conf"
        real.write_text("old")
        link = tmp_path / "link.conf"
        link.symlink_to(real)

        atomic_write_text(link, "new")

        assert link.is_symlink()
        assert real.read_text() == "new"


class TestPathLock:
    """Test path_lock context manager."""

    def test_serializes_writers(self, tmp_path):
        target = tmp_path / "shared.conf"
        target.write_text("")
        errors = []

        def append(line):
            try:
                with path_lock(target):
                    content = target.read_text()
                    atomic_write_text(target, content + line + "\n")
            except Exception as e:  # pragma: no cover
                errors.append(e)

        threads = [
            threading.Thread(target=append, args=(f"line{i}",)) for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(target.read_text().splitlines()) == 20

    def test_same_lock_for_equivalent_paths(self, tmp_path):
        target = tmp_path / "a.conf"
        with path_lock(target):
            acquired = threading.Event()

            def other():
                with path_lock(tmp_path / "." / "a.conf"):
                    acquired.set()

            thread = threading.Thread(target=other)
            thread.start()
            assert not acquired.wait(0.2)
        thread.join(timeout=2)
        assert acquired.is_set()

    def test_registry_drops_unused_locks(self, tmp_path):
        target = tmp_path / "b.conf"
        key = os.path.realpath(target)

        with path_lock(target):
            assert key in files._path_locks

        gc.collect()
        assert key not in files._path_locks
