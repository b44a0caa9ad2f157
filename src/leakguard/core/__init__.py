"""
Core Layer - Traversal, ignore rules, pattern validation, matching and classification.
"""

from leakguard.core.config import (
    CacheConfig,
    LeakGuardConfig,
    LoggingConfig,
    ScanConfig,
    ValidationConfig,
    load_config,
)
from leakguard.core.errors import CatalogError, ConfigurationError, LeakGuardError
from leakguard.core.file_classifier import (
    BINARY_EXTENSIONS,
    DefaultFileClassifier,
    FileClassification,
    FileClassifierInterface,
    detect_encoding,
)
from leakguard.core.findings import Finding, score_confidence, shannon_entropy
from leakguard.core.ignore_filter import DEFAULT_IGNORE_FILE_NAME, IgnoreFilter, IgnorePattern
from leakguard.core.matcher import PatternMatcher
from leakguard.core.path_utils import PathValidationResult, validate_scan_path
from leakguard.core.patterns import (
    BatchValidationResult,
    PatternTestCase,
    PatternValidator,
    SecretPattern,
    Severity,
    ValidationResult,
    generate_test_cases,
    load_catalogs,
    load_default_catalog,
)
from leakguard.core.symlink_validator import (
    SymlinkRejection,
    SymlinkValidationResult,
    SymlinkValidator,
)
from leakguard.core.traversal import (
    CandidateFile,
    EntryKind,
    ErrorKind,
    TraversalEngine,
    TraversalEngineInterface,
    TraversalError,
    WalkStats,
)

__all__ = [
    # Config
    "CacheConfig",
    "LeakGuardConfig",
    "LoggingConfig",
    "ScanConfig",
    "ValidationConfig",
    "load_config",
    # Errors
    "CatalogError",
    "ConfigurationError",
    "LeakGuardError",
    # Traversal
    "CandidateFile",
    "EntryKind",
    "ErrorKind",
    "TraversalEngine",
    "TraversalEngineInterface",
    "TraversalError",
    "WalkStats",
    "IgnoreFilter",
    "IgnorePattern",
    "DEFAULT_IGNORE_FILE_NAME",
    "SymlinkRejection",
    "SymlinkValidationResult",
    "SymlinkValidator",
    "PathValidationResult",
    "validate_scan_path",
    # Patterns
    "BatchValidationResult",
    "PatternTestCase",
    "PatternValidator",
    "SecretPattern",
    "Severity",
    "ValidationResult",
    "generate_test_cases",
    "load_catalogs",
    "load_default_catalog",
    # Matching
    "Finding",
    "PatternMatcher",
    "score_confidence",
    "shannon_entropy",
    # Classification
    "BINARY_EXTENSIONS",
    "DefaultFileClassifier",
    "FileClassification",
    "FileClassifierInterface",
    "detect_encoding",
]
