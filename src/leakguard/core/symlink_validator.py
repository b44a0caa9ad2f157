"""
SymlinkValidator module for LeakGuard.

Decides whether the traversal engine may follow a symbolic link. A link is
followed only when:
- It resolves to an existing target
- The target's canonical real path lies within the scan root
- For directory targets, the real path has not been entered yet in this walk

Rejections are never errors: the link simply does not exist for the scan.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from collections.abc import Container
from pathlib import Path

logger = logging.getLogger(__name__)


class SymlinkRejection(str, Enum):
    """Why a symbolic link was not followed."""

    NOT_SYMLINK = "not_symlink"
    BROKEN = "broken"
    OUTSIDE_ROOT = "outside_root"
    CYCLE = "cycle"


@dataclass
class SymlinkValidationResult:
    """
    Result of symlink validation.

    Attributes:
        safe: True if symlink is safe to follow
        reason: Reason if unsafe (for logging), None if safe
        target_path: Resolved target path if safe, None if unsafe
        rejection: Category of the rejection, None if safe
    """

    safe: bool
    reason: str | None
    target_path: Path | None
    rejection: SymlinkRejection | None = None


class SymlinkValidator:
    """
    Validates symbolic links against a canonical scan root.

    Checks:
    - Symlink target exists (broken links are rejected)
    - Symlink target is within the root directory
    - Symlink to a directory does not re-enter a visited directory
    """

    def __init__(self, root_path: Path):
        """
        Initialize the SymlinkValidator.

        Args:
            root_path: Root directory boundary; symlinks must resolve within this
        """
        self._root_path = Path(root_path).resolve()

    def is_safe_symlink(
        self, symlink_path: Path, visited: Container[Path] | None = None
    ) -> SymlinkValidationResult:
        """
        Check if a symlink is safe to follow.

        Args:
            symlink_path: Path to the symlink to validate
            visited: Canonical real paths of directories already entered.
                    If None, cycle detection is skipped.

        Returns:
            SymlinkValidationResult with safe status, reason if unsafe, and target path
        """
        symlink_path = Path(symlink_path)

        if not symlink_path.is_symlink():
            return self._reject(symlink_path, SymlinkRejection.NOT_SYMLINK, "Path is not a symlink")

        # strict resolution fails for missing targets and link loops alike
        try:
            target_path = symlink_path.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            return self._reject(
                symlink_path,
                SymlinkRejection.BROKEN,
                f"Broken symlink - target cannot be resolved: {e}",
            )

        if not self._is_within_root(target_path):
            return self._reject(
                symlink_path,
                SymlinkRejection.OUTSIDE_ROOT,
                f"Symlink target is outside root directory: {target_path}",
            )

        if visited is not None and target_path.is_dir() and target_path in visited:
            return self._reject(
                symlink_path,
                SymlinkRejection.CYCLE,
                "Symlink target directory was already visited",
            )

        return SymlinkValidationResult(
            safe=True,
            reason=None,
            target_path=target_path,
        )

    def is_within_root(self, path: Path) -> bool:
        """Return True if the canonical form of a path is the root or below it."""
        try:
            return self._is_within_root(Path(path).resolve())
        except (OSError, RuntimeError):
            return False

    def _is_within_root(self, target_path: Path) -> bool:
        try:
            target_path.relative_to(self._root_path)
            return True
        except ValueError:
            return False

    @staticmethod
    def _reject(
        symlink_path: Path, rejection: SymlinkRejection, reason: str
    ) -> SymlinkValidationResult:
        logger.debug(f"Skipping symlink {symlink_path}: {reason}")
        return SymlinkValidationResult(
            safe=False,
            reason=reason,
            target_path=None,
            rejection=rejection,
        )

    @property
    def root_path(self) -> Path:
        """Return the root path boundary."""
        return self._root_path
