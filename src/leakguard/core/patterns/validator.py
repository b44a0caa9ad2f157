"""
Pattern validator.

Every pattern is validated once at load time before it may join the active
rule set. Validation never raises for a bad pattern: problems are reported
as errors (which invalidate the pattern) or warnings (which do not).
"""

import logging
import re
import time
from collections.abc import Iterable

from .heuristics import structural_warnings
from .models import (
    BatchValidationResult,
    PatternTestCase,
    SecretPattern,
    TestCaseResult,
    ValidationResult,
)
from .probes import PROBE_INPUTS, ProbeError, ProbeRunner

logger = logging.getLogger(__name__)


class PatternValidator:
    """
    Validates regex patterns for correctness, performance, and safety.

    Checks, in order:
    1. Compilation (a failure stops further checks)
    2. Compile time against a slow threshold (warning)
    3. Catastrophic backtracking against a probe battery (error)
    4. Declared test cases (error on any failure)
    5. Structural heuristics (warnings)
    """

    def __init__(
        self,
        backtracking_timeout_ms: float = 1000,
        slow_match_threshold_ms: float = 100,
        slow_compile_threshold_ms: float = 100,
        probes: tuple[str, ...] = PROBE_INPUTS,
    ):
        self._backtracking_timeout_ms = backtracking_timeout_ms
        self._slow_match_threshold_ms = slow_match_threshold_ms
        self._slow_compile_threshold_ms = slow_compile_threshold_ms
        self._probes = probes

    def _new_runner(self) -> ProbeRunner:
        return ProbeRunner(
            timeout_ms=self._backtracking_timeout_ms,
            slow_threshold_ms=self._slow_match_threshold_ms,
            probes=self._probes,
        )

    def validate(self, pattern: SecretPattern | str) -> ValidationResult:
        """
        Validate a single pattern.

        Args:
            pattern: A SecretPattern, or a bare regex source

        Returns:
            ValidationResult; is_valid is False on any error
        """
        with self._new_runner() as runner:
            return self._validate(_as_pattern(pattern), runner)

    def validate_all(self, patterns: Iterable[SecretPattern]) -> BatchValidationResult:
        """
        Validate a collection of patterns, sharing one probe process.

        Invalid patterns are logged once here and excluded from
        ``active_patterns`` of the returned batch.
        """
        batch = BatchValidationResult()
        with self._new_runner() as runner:
            for pattern in patterns:
                result = self._validate(pattern, runner)
                batch.entries.append((pattern, result))

                if result.is_valid:
                    logger.debug(f"Validated pattern {pattern.id}: VALID")
                else:
                    logger.warning(
                        f"Excluding pattern {pattern.id}: {'; '.join(result.errors)}"
                    )
                if result.warnings:
                    logger.debug(f"Pattern {pattern.id} warnings: {', '.join(result.warnings)}")

        logger.info(
            f"Validated {len(batch.entries)} patterns: {batch.valid_count} valid, "
            f"{batch.invalid_count} invalid, {batch.warning_count} with warnings"
        )
        return batch

    def _validate(self, pattern: SecretPattern, runner: ProbeRunner) -> ValidationResult:
        result = ValidationResult(pattern_id=pattern.id)

        start = time.perf_counter()
        try:
            compiled = pattern.compile()
        except (re.error, TypeError, ValueError, OverflowError) as e:
            result.add_error(f"Pattern compilation failed: {e}")
            return result
        compile_time_ms = (time.perf_counter() - start) * 1000.0
        result.compile_time_ms = round(compile_time_ms, 3)

        if compile_time_ms > self._slow_compile_threshold_ms:
            result.warnings.append(f"Pattern compilation took {compile_time_ms:.0f}ms (slow)")

        try:
            backtracking = runner.run(pattern.pattern, pattern.flags)
        except ProbeError as e:
            result.add_error(f"Backtracking check could not complete: {e}")
        else:
            result.backtracking = backtracking
            if backtracking.has_backtracking:
                if backtracking.timed_out:
                    result.add_error(
                        "Pattern has catastrophic backtracking "
                        f"(timed out after {backtracking.execution_time_ms:.0f}ms)"
                    )
                else:
                    result.add_error(
                        "Pattern has catastrophic backtracking "
                        f"(execution time: {backtracking.execution_time_ms:.0f}ms)"
                    )

        # Test cases run in this process, only after the probes came back clean
        probes_clean = result.backtracking is not None and not result.backtracking.has_backtracking
        if pattern.test_cases and probes_clean:
            test_results = [self._run_test_case(compiled, case) for case in pattern.test_cases]
            result.test_results = test_results
            failed = sum(1 for r in test_results if not r.passed)
            if failed:
                result.add_error(f"{failed} test cases failed")

        result.warnings.extend(structural_warnings(pattern))
        return result

    def test_pattern(self, pattern: SecretPattern, test_cases: Iterable[PatternTestCase]) -> list[TestCaseResult]:
        """Run test cases against a pattern; a compile failure fails every case."""
        cases = list(test_cases)
        try:
            compiled = pattern.compile()
        except re.error as e:
            return [
                TestCaseResult(
                    test_case=case,
                    passed=False,
                    actual_match=None,
                    error=f"Pattern compilation failed: {e}",
                )
                for case in cases
            ]
        return [self._run_test_case(compiled, case) for case in cases]

    @staticmethod
    def _run_test_case(compiled: re.Pattern, case: PatternTestCase) -> TestCaseResult:
        match = compiled.search(case.input)
        actual = match.group(0) if match else None

        if case.should_match:
            passed = actual is not None
            if passed and case.expected_match is not None:
                passed = actual == case.expected_match
        else:
            passed = actual is None

        return TestCaseResult(test_case=case, passed=passed, actual_match=actual)


def _as_pattern(pattern: SecretPattern | str) -> SecretPattern:
    if isinstance(pattern, SecretPattern):
        return pattern
    if isinstance(pattern, str):
        return SecretPattern(id="inline", name="inline", pattern=pattern)
    raise TypeError(f"Expected SecretPattern or str, got {type(pattern).__name__}")


def generate_test_cases(pattern_type: str) -> list[PatternTestCase]:
    """Return canned test cases for common rule families."""
    kind = pattern_type.lower()

    if kind == "api-key":
        return [
            PatternTestCase("api_key=abc123def456", True, "Basic API key"),
            PatternTestCase('API_KEY="xyz789abc"', True, "Quoted API key"),
            PatternTestCase("apikey: sk_test_123456789", True, "Stripe-style key"),
            PatternTestCase('const message = "api key is secret"', False, "False positive text"),
            PatternTestCase("api_key_length = 32", False, "Variable name only"),
        ]

    if kind == "password":
        return [
            PatternTestCase("password=secret123", True, "Basic password"),
            PatternTestCase('PASSWORD: "mypassword"', True, "Quoted password"),
            PatternTestCase("pwd=admin123", True, "Short password"),
            PatternTestCase("password_field = input", False, "Field reference"),
            PatternTestCase("password validation failed", False, "Error message"),
        ]

    if kind == "token":
        return [
            PatternTestCase("token=eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9", True, "JWT token"),
            PatternTestCase('access_token: "ghp_1234567890abcdef"', True, "GitHub token"),
            PatternTestCase('bearer_token = "sk_live_123"', True, "Bearer token"),
            PatternTestCase('token_type = "bearer"', False, "Token type only"),
            PatternTestCase("tokenize the string", False, "Verb usage"),
        ]

    return [
        PatternTestCase("test_string_123", False, "Generic test string"),
        PatternTestCase("", False, "Empty string"),
        PatternTestCase("a" * 1000, False, "Very long string"),
    ]
