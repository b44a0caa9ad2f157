"""
Unit tests for PatternValidator.

Backtracking probes run in a child process, so these tests use short
timeouts to keep rejected patterns cheap.
"""

import pytest

from leakguard.core.patterns import (
    PatternTestCase,
    PatternValidator,
    SecretPattern,
    generate_test_cases,
)
from leakguard.core.patterns.heuristics import (
    MISSING_UPPERCASE,
    MISSING_WORD_BOUNDARY,
    NESTED_DOT_STAR,
    OVERLY_BROAD,
)


@pytest.fixture(scope="module")
def validator():
    return PatternValidator(backtracking_timeout_ms=200, slow_match_threshold_ms=100)


class TestCompilation:
    """Compilation failures."""

    def test_invalid_regex_is_rejected(self, validator):
        result = validator.validate("[unclosed")

        assert not result.is_valid
        assert result.errors[0].startswith("Pattern compilation failed")
        assert result.backtracking is None

    def test_valid_regex_records_compile_time(self, validator):
        result = validator.validate(r"\bsk_live_[0-9a-zA-Z]{24}")

        assert result.is_valid
        assert result.compile_time_ms is not None
        assert result.backtracking is not None
        assert not result.backtracking.has_backtracking


class TestCatastrophicBacktracking:
    """Probe battery outcomes."""

    @pytest.mark.parametrize("pattern", [r"(a+)+b", r"(a*)*b", r"(a|a)*b", r"(.*)*$"])
    def test_redos_patterns_are_rejected(self, validator, pattern):
        result = validator.validate(pattern)

        assert not result.is_valid
        assert any("catastrophic backtracking" in error for error in result.errors)
        assert result.backtracking.has_backtracking
        assert result.backtracking.test_input is not None

    @pytest.mark.parametrize("pattern", [r"test", r"[a-z]+", r"\d{3,10}", r"[A-Z0-9]{20}"])
    def test_linear_patterns_are_accepted(self, validator, pattern):
        result = validator.validate(pattern)

        assert result.is_valid, result.errors
        assert not result.backtracking.has_backtracking

    def test_batch_keeps_going_after_a_rejected_pattern(self, validator):
        patterns = [
            SecretPattern(id="first", name="First", pattern=r"(a+)+b"),
            SecretPattern(id="second", name="Second", pattern=r"[a-z]+"),
        ]

        batch = validator.validate_all(patterns)

        assert batch.invalid_count == 1
        assert batch.valid_count == 1
        assert [p.id for p in batch.active_patterns] == ["second"]
        assert batch.results["first"].is_valid is False


class TestDeclaredTestCases:
    """Test cases attached to patterns."""

    def test_failing_test_cases_invalidate_pattern(self, validator):
        pattern = SecretPattern(
            id="digits",
            name="Digits",
            pattern=r"\d{4}",
            test_cases=(
                PatternTestCase("pin=1234", True),
                PatternTestCase("pin=12", True),
                PatternTestCase("no digits", False),
            ),
        )

        result = validator.validate(pattern)

        assert not result.is_valid
        assert "1 test cases failed" in result.errors
        assert [r.passed for r in result.test_results] == [True, False, True]

    def test_expected_match_must_be_exact(self, validator):
        pattern = SecretPattern(
            id="digits",
            name="Digits",
            pattern=r"\d{4}",
            test_cases=(PatternTestCase("pin=12345", True, expected_match="1234"),),
        )

        assert validator.validate(pattern).is_valid

    def test_test_cases_are_skipped_for_backtracking_patterns(self, validator):
        pattern = SecretPattern(
            id="slow",
            name="Slow",
            pattern=r"(a+)+b",
            test_cases=(PatternTestCase("aab", True),),
        )

        result = validator.validate(pattern)

        assert result.test_results is None
        assert not any("test cases failed" in error for error in result.errors)

    def test_test_pattern_reports_compile_failure_per_case(self, validator):
        pattern = SecretPattern(id="bad", name="Bad", pattern="(")
        cases = [PatternTestCase("x", True), PatternTestCase("y", False)]

        results = validator.test_pattern(pattern, cases)

        assert len(results) == 2
        assert all(not r.passed and r.error for r in results)

    @pytest.mark.parametrize("pattern_type", ["api-key", "password", "token", "unknown"])
    def test_generated_cases_cover_both_outcomes_where_known(self, pattern_type):
        cases = generate_test_cases(pattern_type)

        assert cases
        if pattern_type != "unknown":
            assert {case.should_match for case in cases} == {True, False}

    def test_generated_api_key_cases_pass_for_a_reasonable_rule(self, validator):
        pattern = SecretPattern(
            id="generic-api-key",
            name="API key",
            pattern=r"(?:\b|_)api[_-]?key\s*[:=]\s*['\"]?([A-Za-z0-9_\-]{8,})['\"]?",
            test_cases=tuple(generate_test_cases("api-key")),
        )

        result = validator.validate(pattern)

        assert result.is_valid, result.errors


class TestHeuristicWarnings:
    """Warnings never invalidate a pattern."""

    def test_overly_broad_pattern_warns(self, validator):
        result = validator.validate(SecretPattern(id="broad", name="Broad", pattern=".+"))

        assert OVERLY_BROAD in result.warnings

    def test_nested_dot_star_warns(self, validator):
        result = validator.validate(SecretPattern(id="x", name="X", pattern="secret.*.*end"))

        assert NESTED_DOT_STAR in result.warnings

    def test_key_rule_without_word_boundary_warns(self, validator):
        result = validator.validate(SecretPattern(id="my-key", name="Key", pattern="key=[a-z]+"))

        assert result.is_valid
        assert MISSING_WORD_BOUNDARY in result.warnings

    def test_uppercase_warning_only_for_case_sensitive_rules(self, validator):
        insensitive = validator.validate(SecretPattern(id="x", name="X", pattern="[a-z]{8}"))
        sensitive = validator.validate(
            SecretPattern(id="x", name="X", pattern="[a-z]{8}", case_sensitive=True)
        )

        assert MISSING_UPPERCASE not in insensitive.warnings
        assert MISSING_UPPERCASE in sensitive.warnings


def test_non_pattern_input_raises_type_error(validator):
    with pytest.raises(TypeError):
        validator.validate(42)
