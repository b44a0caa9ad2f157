"""
Pattern module for LeakGuard.

Provides secret pattern models, the rule catalog loader, and the validator
that gates patterns before they join the active rule set.
"""

from .catalog import (
    DEFAULT_CATALOG_PATH,
    RuleDefinition,
    load_catalog,
    load_catalogs,
    load_default_catalog,
    parse_catalog,
)
from .models import (
    BacktrackingResult,
    BatchValidationResult,
    PatternTestCase,
    SecretPattern,
    Severity,
    TestCaseResult,
    ValidationResult,
)
from .probes import PROBE_INPUTS, ProbeError, ProbeRunner
from .validator import PatternValidator, generate_test_cases

__all__ = [
    # Models
    "BacktrackingResult",
    "BatchValidationResult",
    "PatternTestCase",
    "SecretPattern",
    "Severity",
    "TestCaseResult",
    "ValidationResult",
    # Validation
    "PatternValidator",
    "ProbeRunner",
    "ProbeError",
    "PROBE_INPUTS",
    "generate_test_cases",
    # Catalog
    "DEFAULT_CATALOG_PATH",
    "RuleDefinition",
    "load_catalog",
    "load_catalogs",
    "load_default_catalog",
    "parse_catalog",
]
