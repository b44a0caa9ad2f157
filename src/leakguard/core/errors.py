"""
Custom exceptions for LeakGuard.

Expected scan-time failures (unreadable files, bad patterns, corrupt cache)
are reported as data, not raised. These exceptions cover configuration
defects that should stop the process at startup.
"""


class LeakGuardError(Exception):
    """Base exception for all LeakGuard errors."""
    pass


class ConfigurationError(LeakGuardError):
    """Raised when configuration is invalid."""
    pass


class CatalogError(LeakGuardError):
    """Raised when a rule catalog cannot be loaded or fails schema validation."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        super().__init__(message)
