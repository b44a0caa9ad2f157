"""
Ignore filter for LeakGuard scans.

Decides, per path, whether an entry is skipped before any stat or read is
attempted. Rules use gitignore syntax and come from three layers, lowest
precedence first:

- Built-in defaults (dependency, VCS, build and binary artifacts)
- ``.leakguardignore`` files, scoped to the directory that contains them
- Extra patterns supplied by the caller for a single scan

Within the combined rule list the last matching rule wins, so negation
patterns (``!keep.cfg``) can re-include earlier exclusions.
"""

import functools
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_FILE_NAME = ".leakguardignore"

# Applied before any ignore file. Directory-only entries prune whole subtrees.
DEFAULT_IGNORE_PATTERNS: list[str] = [
    # Dependencies
    "node_modules/",
    "vendor/",
    "bower_components/",
    ".venv/",
    "venv/",
    # Build outputs
    "dist/",
    "build/",
    "out/",
    ".next/",
    "target/",
    "*.egg-info/",
    # Version control
    ".git/",
    ".svn/",
    ".hg/",
    # IDE and editor files
    ".vscode/",
    ".idea/",
    "*.swp",
    "*.swo",
    "*~",
    # Test and tool caches
    "coverage/",
    ".nyc_output/",
    "__pycache__/",
    ".tox/",
    ".pytest_cache/",
    ".mypy_cache/",
    ".ruff_cache/",
    ".hypothesis/",
    ".cache/",
    # Lock files
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "Gemfile.lock",
    "Cargo.lock",
    "poetry.lock",
    # Binary and media files
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.ico",
    "*.pdf",
    "*.zip",
    "*.tar",
    "*.gz",
    "*.exe",
    "*.dll",
    "*.so",
    "*.dylib",
    "*.pyc",
    # Scanner output and cache
    "scan-reports/",
    ".leakguard-cache/",
]


@functools.lru_cache(maxsize=4096)
def _compile_spec(pattern_str: str) -> pathspec.PathSpec:
    """Compile a single gitwildmatch pattern, memoised across filters."""
    return pathspec.PathSpec.from_lines("gitwildmatch", [pattern_str])


def _malformed_reason(line: str) -> str | None:
    """Return why a raw pattern line is unusable, or None if it is fine."""
    body = line
    if body.startswith("!"):
        body = body[1:]
    body = body.strip("/")
    if not body:
        return "Pattern is empty after removing prefix/suffix markers"

    if body.endswith("\\") and not body.endswith("\\\\"):
        return "Trailing backslash escapes nothing"

    depth = 0
    escaped = False
    for char in body:
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
        elif char == "[":
            depth += 1
        elif char == "]" and depth > 0:
            depth -= 1
    if depth:
        return "Unbalanced brackets"

    return None


@dataclass
class IgnorePattern:
    """
    A parsed ignore rule with metadata.

    Attributes:
        raw: Original pattern string (e.g., "!/fixtures/keys.txt")
        pattern: Normalized pattern for matching (e.g., "fixtures/keys.txt")
        negation: True if pattern starts with ! (re-includes files)
        directory_only: True if pattern ends with / (matches only directories)
        anchored: True if pattern starts with / (relative to its scope only)
        source_path: Ignore file containing this pattern, or a virtual source
        source_depth: Depth of the source from root (-1 defaults, 0 root)
    """

    raw: str
    pattern: str
    negation: bool
    directory_only: bool
    anchored: bool
    source_path: Path
    source_depth: int = 0

    @classmethod
    def parse(cls, raw_line: str, source_path: Path, source_depth: int = 0) -> "IgnorePattern":
        """Parse a raw (already stripped) ignore line."""
        pattern = raw_line
        negation = False
        directory_only = False
        anchored = False

        if pattern.startswith("!"):
            negation = True
            pattern = pattern[1:]

        if pattern.endswith("/"):
            directory_only = True
            pattern = pattern[:-1]

        if pattern.startswith("/"):
            anchored = True
            pattern = pattern[1:]

        return cls(
            raw=raw_line,
            pattern=pattern,
            negation=negation,
            directory_only=directory_only,
            anchored=anchored,
            source_path=source_path,
            source_depth=source_depth,
        )


class IgnoreFilter:
    """
    Glob-style ignore rules evaluated against paths relative to a scan root.

    One filter is built per scan; it is consulted by the traversal engine
    before any entry is stat'ed.
    """

    def __init__(
        self,
        root_path: Path,
        ignore_file_name: str = DEFAULT_IGNORE_FILE_NAME,
        case_sensitive: bool | None = None,
        include_defaults: bool = True,
    ):
        """
        Initialize the filter.

        Args:
            root_path: Scan root; patterns are matched relative to it
            ignore_file_name: Name of per-directory ignore files
            case_sensitive: Override case sensitivity (None = auto-detect from platform)
            include_defaults: Whether to seed the built-in default patterns
        """
        self._root_path = Path(root_path).resolve()
        self._ignore_file_name = ignore_file_name

        if case_sensitive is None:
            # Windows is case-insensitive, POSIX is case-sensitive
            self._case_sensitive = sys.platform != "win32"
        else:
            self._case_sensitive = case_sensitive

        self._patterns: list[IgnorePattern] = []
        self._ignored_count = 0

        if include_defaults:
            self.add_default_patterns(DEFAULT_IGNORE_PATTERNS)

    @property
    def root_path(self) -> Path:
        """Return the root the patterns are evaluated against."""
        return self._root_path

    @property
    def pattern_count(self) -> int:
        """Return the number of loaded patterns."""
        return len(self._patterns)

    @property
    def patterns(self) -> list[IgnorePattern]:
        """Return a copy of the loaded patterns."""
        return list(self._patterns)

    @property
    def ignored_count(self) -> int:
        """Number of paths reported as ignored by should_ignore()."""
        return self._ignored_count

    def reset_ignored_count(self) -> None:
        self._ignored_count = 0

    def _parse_lines(self, lines: list[str], source: Path, depth: int) -> list[IgnorePattern]:
        parsed: list[IgnorePattern] = []
        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            reason = _malformed_reason(line)
            if reason is not None:
                logger.warning(f"Skipping malformed ignore pattern '{line}' in {source}: {reason}")
                continue

            try:
                pattern = IgnorePattern.parse(line, source, depth)
                _compile_spec(pattern.pattern)
            except Exception as e:
                logger.warning(f"Skipping malformed ignore pattern '{line}' in {source}: {e}")
                continue
            parsed.append(pattern)
        return parsed

    def add_default_patterns(self, patterns: list[str]) -> None:
        """
        Add default patterns with the lowest precedence.

        They behave as if they came from a virtual ignore file at the root
        with depth -1.
        """
        virtual_source = self._root_path / f"{self._ignore_file_name}.defaults"
        parsed = self._parse_lines(patterns, virtual_source, -1)
        self._patterns[0:0] = parsed

    def add_patterns(self, patterns: list[str]) -> int:
        """
        Add caller-supplied patterns with the highest precedence.

        Returns:
            Number of patterns accepted
        """
        virtual_source = self._root_path / f"{self._ignore_file_name}.extra"
        parsed = self._parse_lines(patterns, virtual_source, 0)
        self._patterns.extend(parsed)
        return len(parsed)

    def load_ignore_file(self, ignore_path: Path) -> int:
        """
        Load patterns from an ignore file.

        Args:
            ignore_path: Path to the ignore file

        Returns:
            Number of patterns loaded; 0 on any read or decode error
        """
        ignore_path = Path(ignore_path).resolve()

        if not ignore_path.exists():
            logger.debug(f"Ignore file not found: {ignore_path}")
            return 0

        try:
            rel_path = ignore_path.parent.relative_to(self._root_path)
            source_depth = len(rel_path.parts)
        except ValueError:
            source_depth = 0

        try:
            content = ignore_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Invalid UTF-8 encoding in {ignore_path}: {e}")
            return 0
        except PermissionError as e:
            logger.warning(f"Permission denied reading {ignore_path}: {e}")
            return 0
        except OSError as e:
            logger.warning(f"Error reading {ignore_path}: {e}")
            return 0

        parsed = self._parse_lines(content.splitlines(), ignore_path, source_depth)
        self._patterns.extend(parsed)
        if parsed:
            logger.debug(f"Loaded {len(parsed)} patterns from {ignore_path}")
        return len(parsed)

    def load_ignore_hierarchy(self, root_path: Path | None = None) -> int:
        """
        Load every ignore file under the root, shallowest first.

        Directories already excluded by loaded rules are not descended into,
        and symbolic links are not followed while searching.

        Returns:
            Total number of patterns loaded
        """
        root_path = self._root_path if root_path is None else Path(root_path).resolve()

        ignore_files: list[tuple[int, Path]] = []
        pending = [root_path]
        while pending:
            current = pending.pop()
            try:
                entries = sorted(current.iterdir(), key=lambda p: p.name)
            except OSError as e:
                logger.warning(f"Error listing directory while loading ignore files: {e}")
                continue

            for entry in entries:
                if entry.name == self._ignore_file_name and entry.is_file():
                    depth = len(entry.parent.relative_to(self._root_path).parts)
                    ignore_files.append((depth, entry))
                elif entry.is_dir() and not entry.is_symlink():
                    if not self.matches(entry, is_dir=True):
                        pending.append(entry)

        ignore_files.sort(key=lambda item: (item[0], str(item[1])))

        total = 0
        for depth, ignore_path in ignore_files:
            total += self.load_ignore_file(ignore_path)

        logger.debug(f"Total patterns loaded from ignore files: {total}")
        return total

    def should_ignore(self, path: Path, is_dir: bool = False) -> bool:
        """
        Decide whether a path is skipped, counting positive answers.

        Args:
            path: Absolute path or path relative to the root
            is_dir: True if the path is a directory

        Returns:
            True if the path should be skipped
        """
        ignored = self.matches(path, is_dir=is_dir)
        if ignored:
            self._ignored_count += 1
            logger.debug(f"Ignoring {path}")
        return ignored

    def matches(self, path: Path, is_dir: bool = False) -> bool:
        """
        Check a path against all rules without touching counters.

        Paths outside the root never match.
        """
        path = Path(path)
        try:
            rel_path = path.relative_to(self._root_path) if path.is_absolute() else path
        except ValueError:
            return False

        rel_path_str = rel_path.as_posix()
        if rel_path_str in ("", "."):
            return False
        match_str = rel_path_str if self._case_sensitive else rel_path_str.lower()

        ignored = False
        for pattern in self._patterns:
            if self._pattern_matches(pattern, match_str, is_dir):
                ignored = not pattern.negation

        return ignored

    def _pattern_matches(self, pattern: IgnorePattern, rel_path_str: str, is_dir: bool) -> bool:
        if pattern.directory_only and not is_dir:
            return False

        pattern_str = pattern.pattern if self._case_sensitive else pattern.pattern.lower()

        # Patterns from nested ignore files only apply inside their directory
        scoped_path_str = rel_path_str
        if pattern.source_depth > 0:
            source_dir = self._get_pattern_source_dir(pattern)
            if source_dir:
                if not self._case_sensitive:
                    source_dir = source_dir.lower()
                if not rel_path_str.startswith(source_dir + "/"):
                    return False
                scoped_path_str = rel_path_str[len(source_dir) + 1:]

        if pattern.anchored or "/" in pattern_str:
            if "/" not in pattern_str and "**" not in pattern_str and "/" in scoped_path_str:
                return False
            return _compile_spec(pattern_str).match_file(scoped_path_str)

        # A slash-free pattern matches the basename or any directory component
        spec = _compile_spec(pattern_str)
        return any(spec.match_file(part) for part in scoped_path_str.split("/"))

    def _get_pattern_source_dir(self, pattern: IgnorePattern) -> str | None:
        """Directory of the pattern's ignore file relative to the root, or None at root."""
        if pattern.source_depth <= 0:
            return None
        try:
            return pattern.source_path.parent.relative_to(self._root_path).as_posix()
        except ValueError:
            return None
