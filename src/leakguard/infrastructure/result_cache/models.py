"""
Data models for the result cache.
"""

from dataclasses import dataclass, field
from typing import Any

from leakguard.core.findings import Finding

CACHE_VERSION = "1.0"
CACHE_FILE_NAME = "scan-results.json"


@dataclass
class CacheEntry:
    """Findings recorded for one file, keyed by its fingerprint."""
    fingerprint: str
    timestamp: float
    findings: list[Finding] = field(default_factory=list)
    file_size: int = 0
    modified_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.fingerprint,
            "timestamp": self.timestamp,
            "results": [finding.to_dict() for finding in self.findings],
            "fileSize": self.file_size,
            "modifiedTime": self.modified_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(
            fingerprint=str(data["hash"]),
            timestamp=float(data["timestamp"]),
            findings=[Finding.from_dict(item) for item in data.get("results", [])],
            file_size=int(data.get("fileSize", 0)),
            modified_time=float(data.get("modifiedTime", 0.0)),
        )


@dataclass
class CacheStats:
    """Snapshot of cache counters."""
    total_entries: int
    hit_count: int
    miss_count: int
    hit_rate: float
    cache_size: int
    expired_entries: int
