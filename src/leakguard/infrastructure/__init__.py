"""
Infrastructure Layer - Persistent result cache.
"""

from leakguard.infrastructure.result_cache import (
    CacheEntry,
    CacheStats,
    ResultCache,
    create_result_cache,
)

__all__ = [
    "CacheEntry",
    "CacheStats",
    "ResultCache",
    "create_result_cache",
]
