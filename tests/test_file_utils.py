"""Test filesystem helpers"""

import logging
import os
from pathlib import Path

from mp4concat.utils.file_utils import (
    ensure_directory,
    filename_without_ext,
    is_directory_target,
    iterate_files,
    remove_files,
)


class TestPaths:

    def test_ensure_directory_creates_parents(self, tmp_path):
        target = ensure_directory(tmp_path / "a" / "b")

        assert target.is_dir()

    def test_filename_without_ext(self):
        assert filename_without_ext("/cam/20230101_0801.mp4") == "20230101_0801"
        assert filename_without_ext("clip.final.mp4") == "clip.final"

    def test_directory_target(self, tmp_path):
        assert is_directory_target(tmp_path)
        assert is_directory_target(f"{tmp_path}/not-yet{os.sep}")
        assert not is_directory_target(tmp_path / "merged.mp4")

    def test_iterate_files_skips_directories(self, segment_dir):
        names = sorted(p.name for p in iterate_files(segment_dir))

        assert "nested.mp4" not in names
        assert "notes.txt" in names


class TestRemoveFiles:
    """Deletion uses rm -f semantics: failures are reported, never raised"""

    def test_removes_all(self, segment_dir):
        paths = sorted(p for p in segment_dir.glob("*.mp4") if p.is_file())

        removed, failed = remove_files(paths)

        assert removed == paths
        assert failed == []
        assert not any(p.exists() for p in paths)

    def test_missing_file_counts_as_removed(self, tmp_path):
        removed, failed = remove_files([tmp_path / "gone.mp4"])

        assert removed == [tmp_path / "gone.mp4"]
        assert failed == []

    def test_failure_is_reported_not_raised(self, segment_dir, monkeypatch, caplog):
        caplog.set_level(logging.WARNING, logger="mp4concat.utils.file_utils")
        locked = segment_dir / "20230101_0803.mp4"
        real_unlink = Path.unlink

        def _unlink(self, *args, **kwargs):
            if self == locked:
                raise PermissionError(13, "Permission denied", str(self))
            return real_unlink(self, *args, **kwargs)

        monkeypatch.setattr(Path, "unlink", _unlink)
        paths = sorted(p for p in segment_dir.glob("*.mp4") if p.is_file())
        paths.append(segment_dir / "already-gone.mp4")

        removed, failed = remove_files(paths)

        assert failed == [locked]
        assert locked.exists()
        assert locked not in removed
        assert segment_dir / "already-gone.mp4" in removed
        assert len(removed) == 5
        assert "Failed to delete source file" in caplog.text
