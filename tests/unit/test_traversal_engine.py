"""
Unit tests for TraversalEngine.

Covers ordering, ignore rules, symlink containment, cycle protection,
de-duplication by real path, and per-entry error reporting.
"""

import os
import sys
from pathlib import Path

import pytest

from leakguard.core.traversal import EntryKind, ErrorKind, TraversalEngine, TraversalError

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="requires POSIX symlinks")


def _write(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _relative(root: Path, candidates) -> list[str]:
    return [candidate.path.relative_to(root).as_posix() for candidate in candidates]


def test_walk_yields_files_in_name_order(tmp_path):
    _write(tmp_path / "b.txt")
    _write(tmp_path / "a" / "z.txt")
    _write(tmp_path / "a" / "y.txt")
    _write(tmp_path / "c" / "d" / "e.txt")

    engine = TraversalEngine()

    assert _relative(tmp_path, engine.walk(tmp_path)) == [
        "a/y.txt",
        "a/z.txt",
        "b.txt",
        "c/d/e.txt",
    ]
    stats = engine.last_walk_stats
    assert stats.files_yielded == 4
    assert stats.directories_visited == 4


def test_walk_is_deterministic(tmp_path):
    for name in ["q.py", "a.py", "m/n.py", "m/a.py", "z/z.py"]:
        _write(tmp_path / name)

    engine = TraversalEngine()

    assert _relative(tmp_path, engine.walk(tmp_path)) == _relative(tmp_path, engine.walk(tmp_path))


def test_walk_is_lazy(tmp_path):
    _write(tmp_path / "a.txt")
    _write(tmp_path / "b.txt")

    iterator = TraversalEngine().walk(tmp_path)
    first = next(iterator)
    _write(tmp_path / "c.txt")

    assert first.path.name == "a.txt"
    assert first.kind == EntryKind.FILE
    assert first.size_bytes == 1


def test_default_and_extra_ignores_are_applied(tmp_path):
    _write(tmp_path / "node_modules" / "lib" / "index.js")
    _write(tmp_path / ".git" / "config")
    _write(tmp_path / "app.log")
    _write(tmp_path / "src" / "main.py")

    engine = TraversalEngine()
    found = _relative(tmp_path, engine.walk(tmp_path, ["*.log"]))

    assert found == ["src/main.py"]
    assert engine.last_walk_stats.ignored == 3


def test_ignore_file_in_tree_is_honored(tmp_path):
    _write(tmp_path / ".leakguardignore", "fixtures/\n")
    _write(tmp_path / "fixtures" / "fake_keys.txt")
    _write(tmp_path / "src" / "real.py")

    found = _relative(tmp_path, TraversalEngine().walk(tmp_path))

    assert found == [".leakguardignore", "src/real.py"]


def test_none_root_raises_type_error():
    with pytest.raises(TypeError):
        TraversalEngine().walk(None)


def test_missing_root_reports_error_and_yields_nothing(tmp_path):
    errors: list[TraversalError] = []
    engine = TraversalEngine(error_callback=errors.append)

    assert list(engine.walk(tmp_path / "missing")) == []
    assert len(errors) == 1
    assert errors[0].kind == ErrorKind.NOT_FOUND


def test_file_root_reports_not_a_directory(tmp_path):
    target = _write(tmp_path / "file.txt")
    errors: list[TraversalError] = []

    assert list(TraversalEngine(error_callback=errors.append).walk(target)) == []
    assert errors[0].kind == ErrorKind.NOT_A_DIRECTORY


@posix_only
@pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0, reason="root bypasses permissions")
def test_unreadable_directory_is_reported_and_skipped(tmp_path):
    _write(tmp_path / "open" / "a.txt")
    locked = tmp_path / "locked"
    _write(locked / "b.txt")
    locked.chmod(0)
    errors: list[TraversalError] = []
    try:
        found = _relative(tmp_path, TraversalEngine(error_callback=errors.append).walk(tmp_path))
    finally:
        locked.chmod(0o755)

    assert found == ["open/a.txt"]
    assert [error.kind for error in errors] == [ErrorKind.PERMISSION_DENIED]


@posix_only
def test_symlinked_file_inside_root_is_yielded_once(tmp_path):
    target = _write(tmp_path / "a.env")
    (tmp_path / "z.env").symlink_to(target)

    candidates = list(TraversalEngine().walk(tmp_path))

    assert _relative(tmp_path, candidates) == ["a.env"]
    assert candidates[0].real_path == target.resolve()


@posix_only
def test_symlink_is_yielded_when_reached_first(tmp_path):
    target = _write(tmp_path / "z.env")
    (tmp_path / "a.env").symlink_to(target)

    candidates = list(TraversalEngine().walk(tmp_path))

    assert len(candidates) == 1
    assert candidates[0].kind == EntryKind.SYMLINK
    assert candidates[0].path == tmp_path / "a.env"
    assert candidates[0].real_path == target.resolve()


@posix_only
def test_symlink_escaping_root_is_not_followed(tmp_path):
    root = tmp_path / "root"
    _write(root / "inside.txt")
    outside = _write(tmp_path / "outside" / "secret.txt")
    (root / "escape.txt").symlink_to(outside)
    (root / "escape_dir").symlink_to(outside.parent)

    engine = TraversalEngine()
    candidates = list(engine.walk(root))

    assert _relative(root, candidates) == ["inside.txt"]
    assert all(c.real_path.is_relative_to(root.resolve()) for c in candidates)
    assert engine.last_walk_stats.symlinks_rejected == 2


@posix_only
def test_self_referencing_symlink_terminates(tmp_path):
    _write(tmp_path / "a.txt")
    (tmp_path / "self").symlink_to(tmp_path)

    candidates = list(TraversalEngine().walk(tmp_path))

    assert _relative(tmp_path, candidates) == ["a.txt"]


@posix_only
def test_symlink_cycle_between_directories_terminates(tmp_path):
    _write(tmp_path / "one" / "a.txt")
    _write(tmp_path / "two" / "b.txt")
    (tmp_path / "one" / "to_two").symlink_to(tmp_path / "two")
    (tmp_path / "two" / "to_one").symlink_to(tmp_path / "one")

    candidates = list(TraversalEngine().walk(tmp_path))
    real_paths = [c.real_path for c in candidates]

    assert len(real_paths) == len(set(real_paths)) == 2


@posix_only
def test_each_real_directory_is_entered_once(tmp_path):
    _write(tmp_path / "zdir" / "file.txt")
    (tmp_path / "alias").symlink_to(tmp_path / "zdir")

    engine = TraversalEngine()
    candidates = list(engine.walk(tmp_path))

    assert _relative(tmp_path, candidates) == ["alias/file.txt"]
    assert engine.last_walk_stats.directories_visited == 2


@posix_only
def test_broken_symlink_is_skipped_silently(tmp_path):
    _write(tmp_path / "a.txt")
    (tmp_path / "dangling").symlink_to(tmp_path / "missing")
    errors: list[TraversalError] = []

    candidates = list(TraversalEngine(error_callback=errors.append).walk(tmp_path))

    assert _relative(tmp_path, candidates) == ["a.txt"]
    assert errors == []


@posix_only
def test_symlinks_can_be_disabled(tmp_path):
    target = _write(tmp_path / "real" / "a.txt")
    (tmp_path / "link.txt").symlink_to(target)

    candidates = list(TraversalEngine(follow_symlinks=False).walk(tmp_path))

    assert _relative(tmp_path, candidates) == ["real/a.txt"]


@posix_only
def test_directory_only_rule_applies_to_directory_links(tmp_path):
    _write(tmp_path / "lib" / "a.txt")
    (tmp_path / "cache").symlink_to(tmp_path / "lib")

    engine = TraversalEngine()
    candidates = list(engine.walk(tmp_path, ["cache/"]))

    assert _relative(tmp_path, candidates) == ["lib/a.txt"]
    assert engine.last_walk_stats.ignored == 1


@posix_only
def test_default_ignores_apply_to_directory_links(tmp_path):
    _write(tmp_path / "vendor_src" / "index.js")
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "node_modules").symlink_to(tmp_path / "vendor_src")

    engine = TraversalEngine()
    candidates = list(engine.walk(tmp_path))

    assert _relative(tmp_path, candidates) == ["vendor_src/index.js"]
    assert engine.last_walk_stats.ignored == 1


@posix_only
def test_directory_only_rule_does_not_hide_file_links(tmp_path):
    target = _write(tmp_path / "real" / "a.txt")
    (tmp_path / "cache").symlink_to(target)

    candidates = list(TraversalEngine().walk(tmp_path, ["cache/"]))

    assert _relative(tmp_path, candidates) == ["cache"]
