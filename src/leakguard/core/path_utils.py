"""
Path validation utilities for LeakGuard.

Shared by the CLI and the services container to reject unusable scan roots
before any component is built.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class PathValidationResult:
    """Result of path validation.

    Attributes:
        valid: True if the path can be scanned.
        error_message: Human-readable error message if validation failed.
    """
    valid: bool
    error_message: Optional[str] = None


def validate_scan_path(path: str | Path) -> PathValidationResult:
    """
    Validate that a path is suitable as a scan root.

    Performs the following checks:
    1. Path exists
    2. Path is a directory

    Args:
        path: Path to validate (string or Path object).

    Returns:
        PathValidationResult with valid=True if all checks pass,
        or valid=False with an appropriate error message.
    """
    try:
        p = Path(path) if isinstance(path, str) else path

        if not p.exists():
            return PathValidationResult(
                valid=False,
                error_message=f"Path '{path}' does not exist"
            )

        if not p.is_dir():
            return PathValidationResult(
                valid=False,
                error_message=f"Path '{path}' is not a directory"
            )

        return PathValidationResult(valid=True)

    except (OSError, ValueError) as e:
        return PathValidationResult(
            valid=False,
            error_message=f"Invalid path '{path}': {e}"
        )


def ensure_directory_exists(path: Path) -> bool:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory to ensure exists.

    Returns:
        True if the directory exists or was created successfully,
        False if creation failed (e.g., permission error).
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        return True
    except OSError:
        return False


def cache_key_for(path: Path) -> str:
    """Return the absolute, forward-slash form of a path used as a cache key."""
    return Path(path).absolute().as_posix()
