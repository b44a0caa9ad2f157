"""
Unit tests for IgnoreFilter rule loading and matching.
"""

import logging
from pathlib import Path

from leakguard.core.ignore_filter import IgnoreFilter, IgnorePattern


def test_default_patterns_prune_dependency_and_vcs_directories(tmp_path):
    ignore_filter = IgnoreFilter(tmp_path)

    assert ignore_filter.matches(Path("node_modules"), is_dir=True)
    assert ignore_filter.matches(Path("packages") / "app" / "node_modules", is_dir=True)
    assert ignore_filter.matches(Path(".git"), is_dir=True)
    assert ignore_filter.matches(Path("package-lock.json"))
    assert not ignore_filter.matches(Path("src") / "config.py")


def test_defaults_can_be_disabled(tmp_path):
    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)

    assert ignore_filter.pattern_count == 0
    assert not ignore_filter.matches(Path("node_modules"), is_dir=True)


def test_directory_only_pattern_does_not_match_files(tmp_path):
    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)
    ignore_filter.add_patterns(["fixtures/"])

    assert ignore_filter.matches(Path("fixtures"), is_dir=True)
    assert not ignore_filter.matches(Path("fixtures"), is_dir=False)


def test_last_matching_rule_wins_for_negation(tmp_path):
    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)
    ignore_filter.add_patterns(["*.env", "!example.env"])

    assert ignore_filter.matches(Path("prod.env"))
    assert not ignore_filter.matches(Path("example.env"))


def test_extra_patterns_override_ignore_files(tmp_path):
    (tmp_path / ".leakguardignore").write_text("!keep.txt\n", encoding="utf-8")
    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)
    ignore_filter.load_ignore_hierarchy()
    ignore_filter.add_patterns(["*.txt"])

    assert ignore_filter.matches(Path("keep.txt"))


def test_anchored_pattern_only_matches_at_its_scope(tmp_path):
    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)
    ignore_filter.add_patterns(["/secrets.txt"])

    assert ignore_filter.matches(Path("secrets.txt"))
    assert not ignore_filter.matches(Path("sub") / "secrets.txt")


def test_nested_ignore_file_is_scoped_to_its_directory(tmp_path):
    (tmp_path / "service" / "generated").mkdir(parents=True)
    (tmp_path / "service" / ".leakguardignore").write_text("generated/\n", encoding="utf-8")

    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)
    loaded = ignore_filter.load_ignore_hierarchy()

    assert loaded == 1
    assert ignore_filter.matches(Path("service") / "generated", is_dir=True)
    assert not ignore_filter.matches(Path("generated"), is_dir=True)
    assert not ignore_filter.matches(Path("other") / "generated", is_dir=True)


def test_hierarchy_skips_ignore_files_inside_ignored_directories(tmp_path):
    (tmp_path / "node_modules" / "pkg").mkdir(parents=True)
    (tmp_path / "node_modules" / "pkg" / ".leakguardignore").write_text("*.py\n", encoding="utf-8")

    ignore_filter = IgnoreFilter(tmp_path)
    loaded = ignore_filter.load_ignore_hierarchy()

    assert loaded == 0
    assert not ignore_filter.matches(Path("app.py"))


def test_comments_and_blank_lines_are_skipped(tmp_path):
    ignore_path = tmp_path / ".leakguardignore"
    ignore_path.write_text("# comment\n\n   \n*.log\n", encoding="utf-8")

    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)

    assert ignore_filter.load_ignore_file(ignore_path) == 1


def test_malformed_patterns_are_skipped_with_warning(tmp_path, caplog):
    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)

    with caplog.at_level(logging.WARNING):
        accepted = ignore_filter.add_patterns(["[abc", "!", "trailing\\", "*.key"])

    assert accepted == 1
    assert ignore_filter.matches(Path("server.key"))
    assert sum("malformed" in record.message for record in caplog.records) == 3


def test_invalid_utf8_ignore_file_loads_nothing(tmp_path, caplog):
    ignore_path = tmp_path / ".leakguardignore"
    ignore_path.write_bytes(b"\xff\xfe invalid\n")

    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)
    with caplog.at_level(logging.WARNING):
        loaded = ignore_filter.load_ignore_file(ignore_path)

    assert loaded == 0
    assert any("Invalid UTF-8 encoding" in record.message for record in caplog.records)


def test_missing_ignore_file_loads_nothing(tmp_path):
    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)

    assert ignore_filter.load_ignore_file(tmp_path / ".leakguardignore") == 0


def test_paths_outside_root_never_match(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    ignore_filter = IgnoreFilter(root, include_defaults=False)
    ignore_filter.add_patterns(["*"])

    assert not ignore_filter.matches(tmp_path / "elsewhere.txt")


def test_should_ignore_counts_but_matches_does_not(tmp_path):
    ignore_filter = IgnoreFilter(tmp_path, include_defaults=False)
    ignore_filter.add_patterns(["*.log"])

    ignore_filter.matches(tmp_path / "a.log")
    assert ignore_filter.ignored_count == 0

    assert ignore_filter.should_ignore(tmp_path / "a.log")
    assert not ignore_filter.should_ignore(tmp_path / "a.txt")
    assert ignore_filter.ignored_count == 1

    ignore_filter.reset_ignored_count()
    assert ignore_filter.ignored_count == 0


def test_case_insensitive_matching_can_be_forced(tmp_path):
    ignore_filter = IgnoreFilter(tmp_path, case_sensitive=False, include_defaults=False)
    ignore_filter.add_patterns(["*.PEM"])

    assert ignore_filter.matches(Path("server.pem"))


def test_parse_records_pattern_flags():
    pattern = IgnorePattern.parse("!/fixtures/", Path(".leakguardignore"))

    assert pattern.negation
    assert pattern.anchored
    assert pattern.directory_only
    assert pattern.pattern == "fixtures"
