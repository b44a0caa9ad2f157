"""
Traversal module for LeakGuard.

Provides a lazy, deterministic directory walk with ignore-rule filtering,
symlink containment and cycle protection.
"""

from .interfaces import TraversalEngineInterface
from .models import CandidateFile, EntryKind, ErrorKind, TraversalError, WalkStats
from .walker import TraversalEngine

__all__ = [
    "TraversalEngine",
    "TraversalEngineInterface",
    "CandidateFile",
    "EntryKind",
    "ErrorKind",
    "TraversalError",
    "WalkStats",
]
