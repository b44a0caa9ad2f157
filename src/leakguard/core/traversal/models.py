"""
Data models for the traversal engine.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class EntryKind(str, Enum):
    """How a candidate was reached."""

    FILE = "file"
    SYMLINK = "symlink"
    DIRECTORY = "directory"


class ErrorKind(str, Enum):
    """Category of a non-fatal, per-path error."""

    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    NOT_A_DIRECTORY = "not_a_directory"
    DECODE_ERROR = "decode_error"
    IO_ERROR = "io_error"


@dataclass(frozen=True)
class CandidateFile:
    """
    A regular file produced by the traversal engine.

    Attributes:
        path: Path as reached from the scan root (may run through a followed link)
        kind: FILE for plain entries, SYMLINK when the entry itself is a link
        real_path: Canonical real path of the file, always inside the root
        size_bytes: File size in bytes at discovery time
        modified_time: Modification timestamp (Unix epoch) at discovery time
    """

    path: Path
    kind: EntryKind
    real_path: Path
    size_bytes: int
    modified_time: float


@dataclass(frozen=True)
class TraversalError:
    """A per-entry failure reported while walking; the entry was skipped."""

    path: Path
    kind: ErrorKind
    message: str


@dataclass
class WalkStats:
    """Counters for the most recent walk."""

    directories_visited: int = 0
    files_yielded: int = 0
    ignored: int = 0
    symlinks_rejected: int = 0
    errors: int = 0
