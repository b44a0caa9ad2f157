"""
Scan Service data models.

Contains dataclasses for scan options, results and per-file errors.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path

from leakguard.core.findings import Finding
from leakguard.core.patterns.models import Severity
from leakguard.core.traversal import ErrorKind, TraversalError


@dataclass
class ScanOptions:
    """Options for one scan invocation."""

    ignore_patterns: list[str] = field(default_factory=list)
    verbose: bool = False
    use_cache: bool = True
    workers: int = 1
    cancel_event: threading.Event | None = None


@dataclass(frozen=True)
class ScanError:
    """A non-fatal failure recorded against one path."""

    path: str
    kind: ErrorKind
    message: str

    @classmethod
    def from_traversal(cls, error: TraversalError) -> "ScanError":
        return cls(path=str(error.path), kind=error.kind, message=error.message)

    @classmethod
    def from_exception(cls, path: Path | str, exc: Exception) -> "ScanError":
        if isinstance(exc, UnicodeDecodeError):
            kind = ErrorKind.DECODE_ERROR
        elif isinstance(exc, PermissionError):
            kind = ErrorKind.PERMISSION_DENIED
        elif isinstance(exc, FileNotFoundError):
            kind = ErrorKind.NOT_FOUND
        else:
            kind = ErrorKind.IO_ERROR
        return cls(path=str(path), kind=kind, message=str(exc))


@dataclass
class ScanResult:
    """Result of a scan operation."""

    findings: list[Finding] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)
    files_scanned: int = 0
    files_skipped: int = 0
    files_ignored: int = 0
    files_cached: int = 0
    duration_seconds: float = 0.0
    cancelled: bool = False

    def summary(self) -> dict[str, int]:
        """Number of findings per severity, most severe first."""
        counts = {severity.value: 0 for severity in Severity}
        for finding in self.findings:
            counts[finding.severity.value] += 1
        return counts

    def count_at_or_above(self, severity: Severity) -> int:
        return sum(1 for finding in self.findings if finding.severity.rank <= severity.rank)


@dataclass
class FileOutcome:
    """Result of processing a single candidate file."""

    path: str
    findings: list[Finding] = field(default_factory=list)
    skipped: bool = False
    cached: bool = False
    error: ScanError | None = None
