"""
Abstract interfaces for directory traversal.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path

from .models import CandidateFile, WalkStats


class TraversalEngineInterface(ABC):
    """
    Abstract interface for walking a scan root.

    Implementations yield each regular file reachable from the root at most
    once, never outside the canonical root, in a deterministic order.
    """

    @abstractmethod
    def walk(
        self, root_path: Path, extra_ignore_patterns: list[str] | None = None
    ) -> Iterator[CandidateFile]:
        """
        Walk a directory tree and yield candidate files lazily.

        Args:
            root_path: Root directory to walk
            extra_ignore_patterns: Additional gitignore-style patterns for this walk

        Yields:
            CandidateFile objects in deterministic order

        Notes:
            - Ignored entries are skipped before they are stat'ed
            - Per-entry errors are reported and the entry is skipped
            - Unsafe symlinks are skipped silently
        """
        pass

    @property
    @abstractmethod
    def last_walk_stats(self) -> WalkStats:
        """Counters for the most recent walk."""
        pass
