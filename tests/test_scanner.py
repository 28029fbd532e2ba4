"""Tests for PathWalker."""

from pathlib import Path
from unittest.mock import patch

import pytest

from vaultsync.exceptions import TraversalError
from vaultsync.sync.exclusion import ExclusionSet
from vaultsync.sync.scanner import PathWalker, walk_tree


def _make_tree(root: Path, files: dict[str, str]) -> None:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


class TestPathWalker:
    """Tests for recursive directory enumeration."""

    def test_yields_relative_file_paths(self, tmp_path):
        _make_tree(
            tmp_path,
            {"a.md": "a", "notes/b.md": "b", "notes/deep/er/c.md": "c"},
        )

        assert PathWalker(tmp_path).snapshot() == {
            "a.md",
            "notes/b.md",
            "notes/deep/er/c.md",
        }

    def test_directories_are_not_yielded(self, tmp_path):
        (tmp_path / "empty" / "nested").mkdir(parents=True)
        _make_tree(tmp_path, {"dir/file.txt": ""})

        assert set(PathWalker(tmp_path)) == {"dir/file.txt"}

    def test_empty_root(self, tmp_path):
        assert PathWalker(tmp_path).snapshot() == frozenset()

    def test_walker_is_restartable(self, tmp_path):
        _make_tree(tmp_path, {"a.md": "a"})
        walker = PathWalker(tmp_path)

        assert list(walker) == ["a.md"]
        _make_tree(tmp_path, {"b.md": "b"})
        assert set(walker) == {"a.md", "b.md"}

    def test_walker_is_lazy(self, tmp_path):
        walker = PathWalker(tmp_path / "missing")

        # Nothing happens until iteration starts
        iterator = iter(walker)
        with pytest.raises(TraversalError, match="does not exist"):
            next(iterator)

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(TraversalError, match="does not exist"):
            walk_tree(tmp_path / "missing")

    def test_file_root_raises(self, tmp_path):
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")

        with pytest.raises(TraversalError, match="not a directory"):
            walk_tree(file_path)

    def test_unreadable_root_raises(self, tmp_path):
        original_iterdir = Path.iterdir

        def failing_iterdir(self):
            if self == tmp_path:
                raise PermissionError("denied")
            return original_iterdir(self)

        with patch.object(Path, "iterdir", failing_iterdir):
            with pytest.raises(TraversalError, match="Cannot read"):
                walk_tree(tmp_path)

    def test_unreadable_child_is_skipped(self, tmp_path, caplog):
        _make_tree(tmp_path, {"ok/a.md": "a", "locked/b.md": "b"})
        original_iterdir = Path.iterdir

        def failing_iterdir(self):
            if self.name == "locked":
                raise PermissionError("denied")
            return original_iterdir(self)

        with patch.object(Path, "iterdir", failing_iterdir):
            paths = walk_tree(tmp_path)

        assert paths == {"ok/a.md"}
        assert "Skipping unreadable path locked" in caplog.text

    def test_skip_dirs(self, tmp_path):
        _make_tree(tmp_path, {"a.md": "a", ".staging/a.md": "staged"})

        walker = PathWalker(tmp_path, skip_dirs=[tmp_path / ".staging"])
        assert walker.snapshot() == {"a.md"}

    def test_skip_dirs_relative_to_root(self, tmp_path):
        _make_tree(tmp_path, {"a.md": "a", "tmp/b.md": "b"})

        assert walk_tree(tmp_path, skip_dirs=[Path("tmp")]) == {"a.md"}

    def test_exclusions(self, tmp_path):
        _make_tree(
            tmp_path,
            {"a.md": "a", "b.log": "b", "cache/c.md": "c", ".vaultsync.json": "{}"},
        )
        exclusions = ExclusionSet(["*.log", "cache", ".vaultsync.json"])

        assert PathWalker(tmp_path, exclusions=exclusions).snapshot() == {"a.md"}

    def test_symlinked_directory_is_not_followed(self, tmp_path):
        _make_tree(tmp_path, {"real/a.md": "a"})
        (tmp_path / "link").symlink_to(tmp_path / "real", target_is_directory=True)

        assert walk_tree(tmp_path) == {"real/a.md"}

    def test_paths_use_forward_slashes(self, tmp_path):
        _make_tree(tmp_path, {"x/y/z.txt": ""})

        assert all("\\" not in p for p in walk_tree(tmp_path))
