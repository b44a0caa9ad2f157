"""
Traversal engine implementation.

Walks a scan root depth-first in name order, consulting the ignore filter
before any entry is stat'ed and the symlink validator before any link is
followed.
"""

import errno
import logging
import os
import threading
from collections.abc import Callable, Container, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from leakguard.core.ignore_filter import DEFAULT_IGNORE_FILE_NAME, IgnoreFilter
from leakguard.core.symlink_validator import SymlinkValidator

from .interfaces import TraversalEngineInterface
from .models import CandidateFile, EntryKind, ErrorKind, TraversalError, WalkStats

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[TraversalError], None]


def _error_kind_for(exc: OSError) -> ErrorKind:
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(exc, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, NotADirectoryError) or exc.errno == errno.ENOTDIR:
        return ErrorKind.NOT_A_DIRECTORY
    return ErrorKind.IO_ERROR


class _LockedView(Container):
    """Membership view of a set that another thread may be growing."""

    def __init__(self, items: set[Path], lock: threading.Lock):
        self._items = items
        self._lock = lock

    def __contains__(self, item: object) -> bool:
        with self._lock:
            return item in self._items


def _points_to_directory(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir(follow_symlinks=True)
    except OSError:
        return False


@dataclass
class _WalkState:
    """State owned by exactly one walk() invocation."""

    root: Path
    ignore_filter: IgnoreFilter
    symlink_validator: SymlinkValidator
    visited: set[Path] = field(default_factory=set)
    yielded: set[Path] = field(default_factory=set)
    lock: threading.Lock = field(default_factory=threading.Lock)
    stats: WalkStats = field(default_factory=WalkStats)

    @property
    def visited_view(self) -> _LockedView:
        return _LockedView(self.visited, self.lock)

    def enter(self, real_dir: Path) -> bool:
        """Mark a directory as entered; False if it was already entered."""
        with self.lock:
            if real_dir in self.visited:
                return False
            self.visited.add(real_dir)
            self.stats.directories_visited += 1
            return True

    def claim(self, real_file: Path) -> bool:
        """Reserve a file's real path for yielding; False if already yielded."""
        with self.lock:
            if real_file in self.yielded:
                return False
            self.yielded.add(real_file)
            return True


class TraversalEngine(TraversalEngineInterface):
    """
    Concrete implementation of TraversalEngineInterface.

    Provides:
    - Deterministic, lazy depth-first traversal
    - Gitignore-style filtering via IgnoreFilter
    - Symlink containment and cycle checks via SymlinkValidator
    - De-duplication of files by canonical real path
    - Per-entry error reporting through a callback
    """

    def __init__(
        self,
        ignore_patterns: list[str] | None = None,
        ignore_file_name: str = DEFAULT_IGNORE_FILE_NAME,
        follow_symlinks: bool = True,
        include_default_ignores: bool = True,
        case_sensitive: bool | None = None,
        error_callback: ErrorCallback | None = None,
    ):
        """
        Initialize the TraversalEngine.

        Args:
            ignore_patterns: Patterns applied to every walk on top of ignore files
            ignore_file_name: Name of per-directory ignore files
            follow_symlinks: Whether safe symlinks are followed at all
            include_default_ignores: Whether built-in default patterns apply
            case_sensitive: Override case sensitivity for pattern matching
            error_callback: Receives a TraversalError for every skipped entry
        """
        self._ignore_patterns = list(ignore_patterns or [])
        self._ignore_file_name = ignore_file_name
        self._follow_symlinks = follow_symlinks
        self._include_default_ignores = include_default_ignores
        self._case_sensitive = case_sensitive
        self._error_callback = error_callback
        self._last_walk_stats = WalkStats()

    @property
    def last_walk_stats(self) -> WalkStats:
        return self._last_walk_stats

    def set_error_callback(self, callback: ErrorCallback | None) -> None:
        self._error_callback = callback

    def _report(self, state: _WalkState | None, path: Path, exc: OSError | str, kind: ErrorKind | None = None) -> None:
        if isinstance(exc, OSError):
            kind = kind or _error_kind_for(exc)
            message = exc.strerror or str(exc)
        else:
            kind = kind or ErrorKind.IO_ERROR
            message = exc

        if state is not None:
            state.stats.errors += 1
        logger.warning(f"Skipping {path}: {message}")
        if self._error_callback is not None:
            self._error_callback(TraversalError(path=path, kind=kind, message=message))

    def build_ignore_filter(
        self, root: Path, extra_ignore_patterns: list[str] | None = None
    ) -> IgnoreFilter:
        """Build the ignore filter for one walk of a canonical root."""
        ignore_filter = IgnoreFilter(
            root,
            ignore_file_name=self._ignore_file_name,
            case_sensitive=self._case_sensitive,
            include_defaults=self._include_default_ignores,
        )
        ignore_filter.load_ignore_hierarchy(root)
        ignore_filter.add_patterns(self._ignore_patterns + list(extra_ignore_patterns or []))
        return ignore_filter

    def walk(
        self, root_path: Path, extra_ignore_patterns: list[str] | None = None
    ) -> Iterator[CandidateFile]:
        """
        Walk a directory tree and yield candidate files lazily.

        Args:
            root_path: Root directory to walk
            extra_ignore_patterns: Additional gitignore-style patterns for this walk

        Returns:
            Iterator of CandidateFile objects

        Raises:
            TypeError: If root_path is None
        """
        if root_path is None:
            raise TypeError("root_path must not be None")

        self._last_walk_stats = WalkStats()
        requested = Path(root_path)

        try:
            root = requested.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            if isinstance(e, OSError):
                self._report(None, requested, e)
            else:
                self._report(None, requested, str(e))
            self._last_walk_stats.errors += 1
            return iter(())

        if not root.is_dir():
            self._report(None, requested, "Root path is not a directory", ErrorKind.NOT_A_DIRECTORY)
            self._last_walk_stats.errors += 1
            return iter(())

        state = _WalkState(
            root=root,
            ignore_filter=self.build_ignore_filter(root, extra_ignore_patterns),
            symlink_validator=SymlinkValidator(root),
            stats=self._last_walk_stats,
        )
        logger.debug(
            f"Walking {root} with {state.ignore_filter.pattern_count} ignore patterns"
        )
        return self._walk_directory(root, root, state)

    def _walk_directory(
        self, current_path: Path, real_path: Path, state: _WalkState
    ) -> Iterator[CandidateFile]:
        """
        Walk one directory.

        Args:
            current_path: Directory as reached from the root
            real_path: Canonical real path of the same directory
            state: Per-walk state

        Yields:
            CandidateFile objects in name order
        """
        if not state.enter(real_path):
            logger.debug(f"Skipping already visited directory: {current_path} -> {real_path}")
            return

        try:
            with os.scandir(current_path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._report(state, current_path, e)
            return

        for entry in entries:
            entry_path = current_path / entry.name
            try:
                is_symlink = entry.is_symlink()
                is_dir = not is_symlink and entry.is_dir(follow_symlinks=False)
            except OSError as e:
                self._report(state, entry_path, e)
                continue

            if is_symlink:
                # links are filtered by what they point at
                is_dir = _points_to_directory(entry)

            if state.ignore_filter.should_ignore(entry_path, is_dir=is_dir):
                state.stats.ignored += 1
                continue

            if is_symlink:
                yield from self._follow_symlink(entry_path, state)
            elif is_dir:
                yield from self._walk_directory(entry_path, real_path / entry.name, state)
            else:
                try:
                    is_file = entry.is_file(follow_symlinks=False)
                except OSError as e:
                    self._report(state, entry_path, e)
                    continue
                if is_file:
                    candidate = self._make_candidate(
                        entry_path, real_path / entry.name, EntryKind.FILE, state
                    )
                    if candidate is not None:
                        yield candidate

    def _follow_symlink(self, link_path: Path, state: _WalkState) -> Iterator[CandidateFile]:
        if not self._follow_symlinks:
            logger.debug(f"Skipping symlink (follow_symlinks=False): {link_path}")
            state.stats.symlinks_rejected += 1
            return

        result = state.symlink_validator.is_safe_symlink(link_path, state.visited_view)
        if not result.safe or result.target_path is None:
            state.stats.symlinks_rejected += 1
            return

        target = result.target_path
        if target.is_dir():
            yield from self._walk_directory(link_path, target, state)
        elif target.is_file():
            candidate = self._make_candidate(link_path, target, EntryKind.SYMLINK, state)
            if candidate is not None:
                yield candidate
        else:
            logger.debug(f"Skipping symlink to special file: {link_path} -> {target}")

    def _make_candidate(
        self, path: Path, real_path: Path, kind: EntryKind, state: _WalkState
    ) -> CandidateFile | None:
        if not state.claim(real_path):
            logger.debug(f"Skipping already yielded file: {path} -> {real_path}")
            return None

        try:
            stat = path.stat()
        except OSError as e:
            self._report(state, path, e)
            return None

        state.stats.files_yielded += 1
        return CandidateFile(
            path=path,
            kind=kind,
            real_path=real_path,
            size_bytes=stat.st_size,
            modified_time=stat.st_mtime,
        )
