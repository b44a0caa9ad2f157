"""
Data models for secret patterns and their validation outcomes.
"""

import re
from dataclasses import dataclass, field
from enum import Enum


class Severity(str, Enum):
    """Finding severity, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort key; 0 is most severe."""
        return list(Severity).index(self)


@dataclass(frozen=True)
class PatternTestCase:
    """
    An example input a pattern must (or must not) match.

    Attributes:
        input: Text to search
        should_match: True for a positive case, False for a negative one
        description: Human-readable label
        expected_match: Exact text a positive case must match, if declared
    """

    input: str
    should_match: bool
    description: str = ""
    expected_match: str | None = None


@dataclass(frozen=True)
class SecretPattern:
    """
    A detection rule supplied by a catalog.

    Attributes:
        id: Stable rule identifier (e.g., "aws-access-key")
        name: Display name
        pattern: Regular expression source
        severity: Severity inherited by findings
        description: What the rule detects
        suggestion: Remediation hint
        confidence: Declared base confidence in [0, 1]; None uses the severity default
        test_cases: Examples run by the validator
        case_sensitive: Compile without IGNORECASE
    """

    id: str
    name: str
    pattern: str
    severity: Severity = Severity.MEDIUM
    description: str = ""
    suggestion: str = ""
    confidence: float | None = None
    test_cases: tuple[PatternTestCase, ...] = ()
    case_sensitive: bool = False

    @property
    def flags(self) -> int:
        return 0 if self.case_sensitive else re.IGNORECASE

    def compile(self) -> re.Pattern:
        """Compile the pattern; raises re.error for invalid sources."""
        return re.compile(self.pattern, self.flags)


@dataclass
class TestCaseResult:
    """Outcome of running one PatternTestCase."""

    __test__ = False  # not a pytest class

    test_case: PatternTestCase
    passed: bool
    actual_match: str | None
    error: str | None = None


@dataclass
class BacktrackingResult:
    """
    Outcome of the catastrophic-backtracking probe battery.

    Attributes:
        has_backtracking: True if any probe timed out or ran over the slow threshold
        execution_time_ms: Time of the triggering probe, or of the slowest probe when clean
        timed_out: True if the triggering probe hit the timeout and was killed
        test_input: The triggering probe, None when clean
    """

    has_backtracking: bool
    execution_time_ms: float
    timed_out: bool
    test_input: str | None = None


@dataclass
class ValidationResult:
    """Per-pattern validation outcome, produced once at load time."""

    pattern_id: str
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    compile_time_ms: float | None = None
    backtracking: BacktrackingResult | None = None
    test_results: list[TestCaseResult] | None = None

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False


@dataclass
class BatchValidationResult:
    """
    Aggregated validation of a pattern collection.

    ``entries`` keeps catalog order so the active rule set is deterministic.
    """

    entries: list[tuple[SecretPattern, ValidationResult]] = field(default_factory=list)

    @property
    def results(self) -> dict[str, ValidationResult]:
        return {pattern.id: result for pattern, result in self.entries}

    @property
    def valid_count(self) -> int:
        return sum(1 for _, result in self.entries if result.is_valid)

    @property
    def invalid_count(self) -> int:
        return sum(1 for _, result in self.entries if not result.is_valid)

    @property
    def warning_count(self) -> int:
        """Number of patterns with at least one warning."""
        return sum(1 for _, result in self.entries if result.warnings)

    @property
    def active_patterns(self) -> list[SecretPattern]:
        """Patterns whose validation succeeded, in catalog order."""
        return [pattern for pattern, result in self.entries if result.is_valid]

    @property
    def invalid_results(self) -> list[ValidationResult]:
        return [result for _, result in self.entries if not result.is_valid]
