"""
Result Cache module for LeakGuard.

JSON-file storage of per-file findings with size/mtime fingerprints.
"""

from .models import CACHE_FILE_NAME, CACHE_VERSION, CacheEntry, CacheStats
from .store import ResultCache, compute_fingerprint, create_result_cache, fingerprint_file

__all__ = [
    # Main classes
    "ResultCache",
    "CacheEntry",
    "CacheStats",
    # Fingerprints
    "compute_fingerprint",
    "fingerprint_file",
    # Factory
    "create_result_cache",
    # Constants
    "CACHE_FILE_NAME",
    "CACHE_VERSION",
]
