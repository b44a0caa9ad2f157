"""
Result cache implementation.

JSON-file storage of per-file findings, keyed by absolute path and guarded
by a (size, modification time) fingerprint.

The fingerprint is not a content hash: an edit that keeps both the size and
the nanosecond mtime unchanged is not detected.

The document also records a digest of the rule set the findings came from;
binding a different rule set discards every entry.
"""

import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from collections.abc import Callable
from pathlib import Path

from leakguard.core.findings import Finding
from leakguard.core.path_utils import cache_key_for, ensure_directory_exists

from .models import CACHE_FILE_NAME, CACHE_VERSION, CacheEntry, CacheStats

logger = logging.getLogger(__name__)


def compute_fingerprint(size_bytes: int, mtime_ns: int) -> str:
    """Hash a file's size and modification time."""
    key = f"{size_bytes}-{mtime_ns}"
    return hashlib.md5(key.encode("utf-8"), usedforsecurity=False).hexdigest()


def fingerprint_file(path: Path) -> tuple[str, int, float]:
    """
    Fingerprint a file on disk.

    Returns:
        (fingerprint, size in bytes, mtime in seconds)

    Raises:
        OSError: If the file cannot be stat'ed
    """
    stat = os.stat(path)
    return compute_fingerprint(stat.st_size, stat.st_mtime_ns), stat.st_size, stat.st_mtime


class ResultCache:
    """
    Per-file findings cache with explicit persistence.

    The in-memory map is authoritative during a run; ``save()`` flushes it.
    All public methods are safe to call from several threads; concurrent
    ``set()`` calls for one path resolve last-write-wins.
    """

    def __init__(
        self,
        cache_dir: Path | str = ".leakguard-cache",
        max_age_hours: float = 24,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache and load any persisted entries.

        Args:
            cache_dir: Directory holding the cache file
            max_age_hours: Retention window for entries
            clock: Source of the current time in seconds
        """
        self._cache_dir = Path(cache_dir)
        self._cache_file = self._cache_dir / CACHE_FILE_NAME
        self._max_age_seconds = max_age_hours * 3600
        self._clock = clock

        self._lock = threading.RLock()
        self._entries: dict[str, CacheEntry] = {}
        self._hit_count = 0
        self._miss_count = 0
        self._dirty = False
        self._rule_set_digest: str | None = None

        self._load()

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def cache_file(self) -> Path:
        return self._cache_file

    @property
    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    @property
    def rule_set_digest(self) -> str | None:
        with self._lock:
            return self._rule_set_digest

    def bind_rule_set(self, digest: str) -> bool:
        """
        Tie the cached findings to the rule set that produced them.

        Entries recorded under a different rule set are dropped, since
        their findings no longer reflect the active rules.

        Args:
            digest: Digest of the active rule set

        Returns:
            True if existing entries were discarded
        """
        with self._lock:
            if digest == self._rule_set_digest:
                return False
            discarded = bool(self._entries)
            if discarded:
                logger.info(
                    f"Rule set changed, discarding {len(self._entries)} cached results"
                )
            self._entries.clear()
            self._rule_set_digest = digest
            self._dirty = True
            return discarded

    # ─────────────────────────────────────────────────────────────────
    # Lookup and store
    # ─────────────────────────────────────────────────────────────────

    def get(self, file_path: Path | str) -> list[Finding] | None:
        """
        Return cached findings for a file, or None on a miss.

        A miss is returned (and the stale entry evicted) when the entry is
        older than the retention window, the file is gone, or the current
        fingerprint differs from the stored one.
        """
        key = cache_key_for(Path(file_path))
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._miss_count += 1
                return None

            if self._is_expired(entry):
                return self._evict(key, "expired")

            try:
                fingerprint, _, _ = fingerprint_file(Path(file_path))
            except OSError:
                return self._evict(key, "file missing")

            if fingerprint != entry.fingerprint:
                return self._evict(key, "fingerprint changed")

            self._hit_count += 1
            return list(entry.findings)

    def set(self, file_path: Path | str, findings: list[Finding]) -> None:
        """Record findings for a file; silently does nothing if it cannot be stat'ed."""
        try:
            fingerprint, size_bytes, mtime = fingerprint_file(Path(file_path))
        except OSError as e:
            logger.debug(f"Not caching {file_path}: {e}")
            return

        entry = CacheEntry(
            fingerprint=fingerprint,
            timestamp=self._clock(),
            findings=list(findings),
            file_size=size_bytes,
            modified_time=mtime,
        )
        key = cache_key_for(Path(file_path))
        with self._lock:
            self._entries[key] = entry
            self._dirty = True

    def _evict(self, key: str, reason: str) -> None:
        del self._entries[key]
        self._dirty = True
        self._miss_count += 1
        logger.debug(f"Cache miss for {key}: {reason}")
        return None

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp > self._max_age_seconds

    # ─────────────────────────────────────────────────────────────────
    # Maintenance
    # ─────────────────────────────────────────────────────────────────

    def cleanup(self) -> int:
        """Remove expired entries; returns how many were removed."""
        with self._lock:
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
            for key in expired:
                del self._entries[key]
            if expired:
                self._dirty = True
                logger.debug(f"Removed {len(expired)} expired cache entries")
            return len(expired)

    def clear(self) -> None:
        """Drop every entry and reset the hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._hit_count = 0
            self._miss_count = 0
            self._dirty = True

    def get_stats(self) -> CacheStats:
        """Return counters without changing cache state."""
        with self._lock:
            expired = sum(1 for entry in self._entries.values() if self._is_expired(entry))
            total_requests = self._hit_count + self._miss_count
            hit_rate = (self._hit_count / total_requests * 100) if total_requests else 0.0
            return CacheStats(
                total_entries=len(self._entries) - expired,
                hit_count=self._hit_count,
                miss_count=self._miss_count,
                hit_rate=round(hit_rate, 2),
                cache_size=len(self._serialize().encode("utf-8")),
                expired_entries=expired,
            )

    # ─────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────

    def _serialize(self) -> str:
        document = {
            "version": CACHE_VERSION,
            "timestamp": self._clock(),
            "rulesDigest": self._rule_set_digest,
            "entries": [[key, entry.to_dict()] for key, entry in self._entries.items()],
        }
        return json.dumps(document)

    def _load(self) -> None:
        """Load persisted entries; any failure leaves the cache empty."""
        if not self._cache_file.exists():
            return

        try:
            document = json.loads(self._cache_file.read_text(encoding="utf-8"))
            if not isinstance(document, dict) or document.get("version") != CACHE_VERSION:
                logger.info(f"Ignoring cache file with unsupported version: {self._cache_file}")
                return
            entries = {
                str(key): CacheEntry.from_dict(value)
                for key, value in document.get("entries", [])
            }
            rules_digest = document.get("rulesDigest")
            if rules_digest is not None and not isinstance(rules_digest, str):
                raise TypeError("rulesDigest must be a string")
        except (OSError, ValueError, TypeError, KeyError, AttributeError, RecursionError) as e:
            logger.warning(f"Failed to load cache {self._cache_file}, starting empty: {e}")
            return

        with self._lock:
            self._entries = entries
            self._rule_set_digest = rules_digest
        removed = self.cleanup()
        logger.debug(
            f"Loaded {len(self._entries)} cache entries from {self._cache_file}"
            + (f" ({removed} expired)" if removed else "")
        )

    def save(self) -> bool:
        """
        Persist the cache if anything changed since the last save.

        Expired entries are removed first. The file is replaced atomically.

        Returns:
            True if the file was written
        """
        with self._lock:
            if not self._dirty:
                return False

            self.cleanup()
            content = self._serialize()

            if not ensure_directory_exists(self._cache_dir):
                logger.warning(f"Cannot create cache directory: {self._cache_dir}")
                return False

            tmp_name = None
            try:
                fd, tmp_name = tempfile.mkstemp(
                    dir=self._cache_dir, prefix=".scan-results-", suffix=".tmp"
                )
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp_name, self._cache_file)
            except OSError as e:
                logger.warning(f"Failed to save cache {self._cache_file}: {e}")
                if tmp_name is not None and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                return False

            self._dirty = False
            logger.debug(f"Saved {len(self._entries)} cache entries to {self._cache_file}")
            return True

    def is_enabled(self) -> bool:
        """Return True if the cache directory is writable."""
        if not ensure_directory_exists(self._cache_dir):
            return False
        probe = self._cache_dir / ".write-test"
        try:
            probe.write_text("ok", encoding="utf-8")
            probe.unlink()
            return True
        except OSError:
            return False

    def get_cache_file_size(self) -> int:
        """Size of the persisted cache file in bytes, 0 if absent."""
        try:
            return self._cache_file.stat().st_size
        except OSError:
            return 0


def create_result_cache(cache_dir: Path | str, max_age_hours: float = 24) -> ResultCache:
    """Factory function to create a result cache."""
    return ResultCache(cache_dir, max_age_hours=max_age_hours)
