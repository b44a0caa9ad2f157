"""
Centralized services container module for LeakGuard.

Builds every component a scan needs from configuration, once, so the CLI
(and any other entry point) shares one wiring path.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from leakguard.core.config import LeakGuardConfig, load_config
from leakguard.core.errors import CatalogError
from leakguard.core.file_classifier import DefaultFileClassifier
from leakguard.core.patterns import (
    BatchValidationResult,
    PatternValidator,
    SecretPattern,
    load_catalogs,
)
from leakguard.core.traversal import TraversalEngine, TraversalError
from leakguard.infrastructure.result_cache import ResultCache, create_result_cache
from leakguard.services.scan_service import ScanService, TraversalFactory

logger = logging.getLogger(__name__)


@dataclass
class ServicesContainer:
    """
    Container holding all shared service instances.

    Attributes:
        config: Application configuration
        patterns: Rules loaded from the catalog(s), before validation
        validation: Validation outcome for every loaded rule
        cache: Result cache, or None when caching is disabled
        classifier: Binary/encoding classifier
        scan_service: Orchestrator wired with all of the above
    """

    config: LeakGuardConfig
    patterns: list[SecretPattern]
    validation: BatchValidationResult
    cache: Optional[ResultCache]
    classifier: DefaultFileClassifier
    scan_service: ScanService


def create_validator(config: LeakGuardConfig) -> PatternValidator:
    """Create a pattern validator from the validation config section."""
    return PatternValidator(
        backtracking_timeout_ms=config.validation.backtracking_timeout_ms,
        slow_match_threshold_ms=config.validation.slow_match_threshold_ms,
        slow_compile_threshold_ms=config.validation.slow_compile_threshold_ms,
    )


def load_patterns(
    config: LeakGuardConfig, extra_rules_paths: Optional[list[Path]] = None
) -> list[SecretPattern]:
    """
    Load the configured rule catalogs.

    Raises:
        CatalogError: If a catalog is missing or malformed
    """
    paths = [Path(p) for p in config.validation.rules_paths] + list(extra_rules_paths or [])
    patterns = load_catalogs(paths, include_defaults=config.validation.include_default_rules)
    if not patterns:
        raise CatalogError("No rules configured: enable the default rules or provide a catalog")
    return patterns


def _traversal_factory(config: LeakGuardConfig) -> TraversalFactory:
    def factory(error_callback: Callable[[TraversalError], None]) -> TraversalEngine:
        return TraversalEngine(
            ignore_patterns=config.scan.ignore_patterns,
            ignore_file_name=config.scan.ignore_file_name,
            follow_symlinks=config.scan.follow_symlinks,
            error_callback=error_callback,
        )

    return factory


def create_services(
    config_path: Optional[Path] = None,
    cache_dir: Optional[Path] = None,
    rules_paths: Optional[list[Path]] = None,
    config: Optional[LeakGuardConfig] = None,
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> ServicesContainer:
    """
    Create and initialize all services.

    Rules are validated exactly once here; invalid rules are excluded from
    the scan service for its whole lifetime.

    Args:
        config_path: Optional path to configuration file. If None, uses
                    environment variables and defaults.
        cache_dir: Optional cache directory overriding the configured one.
        rules_paths: Additional catalog files on top of the configured ones.
        config: Pre-built configuration; takes precedence over config_path.
        progress_callback: Optional callback(current, total, message).

    Returns:
        ServicesContainer with all initialized services.

    Raises:
        ConfigurationError: If the configuration is invalid.
        CatalogError: If a rule catalog cannot be loaded.
    """
    config = config or load_config(config_path)

    patterns = load_patterns(config, rules_paths)
    validation = create_validator(config).validate_all(patterns)

    cache: Optional[ResultCache] = None
    if config.cache.enabled:
        cache = create_result_cache(
            cache_dir or Path(config.cache.directory),
            max_age_hours=config.cache.max_age_hours,
        )

    classifier = DefaultFileClassifier(
        stream_threshold_bytes=int(config.scan.stream_threshold_mb * 1024 * 1024)
    )

    scan_service = ScanService(
        validation,
        cache=cache,
        classifier=classifier,
        traversal_factory=_traversal_factory(config),
        progress_callback=progress_callback,
        context_width=config.scan.context_width,
    )

    return ServicesContainer(
        config=config,
        patterns=patterns,
        validation=validation,
        cache=cache,
        classifier=classifier,
        scan_service=scan_service,
    )
