"""
Configuration module for LeakGuard.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from leakguard.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section) or {}
    value = section_defaults.get(key, fallback)
    # Lists are copied so instances never share the cached defaults
    if isinstance(value, list):
        return list(value)
    return value


@dataclass
class ScanConfig:
    """Configuration for directory traversal and matching."""

    ignore_patterns: list[str] = field(
        default_factory=lambda: _get_default("scan", "ignore_patterns", [])
    )
    ignore_file_name: str = field(
        default_factory=lambda: _get_default("scan", "ignore_file_name", ".leakguardignore")
    )
    follow_symlinks: bool = field(
        default_factory=lambda: _get_default("scan", "follow_symlinks", True)
    )
    stream_threshold_mb: float = field(
        default_factory=lambda: _get_default("scan", "stream_threshold_mb", 10)
    )
    context_width: int = field(default_factory=lambda: _get_default("scan", "context_width", 120))
    workers: int = field(default_factory=lambda: _get_default("scan", "workers", 1))


@dataclass
class CacheConfig:
    """Configuration for the result cache."""

    enabled: bool = field(default_factory=lambda: _get_default("cache", "enabled", True))
    directory: str = field(
        default_factory=lambda: _get_default("cache", "directory", ".leakguard-cache")
    )
    max_age_hours: float = field(
        default_factory=lambda: _get_default("cache", "max_age_hours", 24)
    )


@dataclass
class ValidationConfig:
    """Configuration for pattern validation at load time."""

    backtracking_timeout_ms: int = field(
        default_factory=lambda: _get_default("validation", "backtracking_timeout_ms", 1000)
    )
    slow_match_threshold_ms: float = field(
        default_factory=lambda: _get_default("validation", "slow_match_threshold_ms", 100)
    )
    slow_compile_threshold_ms: float = field(
        default_factory=lambda: _get_default("validation", "slow_compile_threshold_ms", 100)
    )
    include_default_rules: bool = field(
        default_factory=lambda: _get_default("validation", "include_default_rules", True)
    )
    rules_paths: list[str] = field(
        default_factory=lambda: _get_default("validation", "rules_paths", [])
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "WARNING"))
    format: str = field(
        default_factory=lambda: _get_default(
            "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )


@dataclass
class LeakGuardConfig:
    """Main configuration class for LeakGuard."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "LeakGuardConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            LeakGuardConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported
            ConfigurationError: If a section contains unknown keys
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "LeakGuardConfig":
        """Create LeakGuardConfig from a dictionary."""
        config = cls()
        sections = {
            "scan": ScanConfig,
            "cache": CacheConfig,
            "validation": ValidationConfig,
            "logging": LoggingConfig,
        }

        for name, section_cls in sections.items():
            if name not in data:
                continue
            try:
                setattr(config, name, section_cls(**(data[name] or {})))
            except TypeError as e:
                raise ConfigurationError(f"Invalid '{name}' section: {e}") from e

        return config

    def apply_env_overrides(self) -> "LeakGuardConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: LEAKGUARD_<SECTION>_<KEY>
        Examples:
            - LEAKGUARD_SCAN_WORKERS
            - LEAKGUARD_CACHE_ENABLED
            - LEAKGUARD_CACHE_DIRECTORY
            - LEAKGUARD_VALIDATION_BACKTRACKING_TIMEOUT_MS
            - LEAKGUARD_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Scan config
            "LEAKGUARD_SCAN_IGNORE_PATTERNS": ("scan", "ignore_patterns", _parse_list),
            "LEAKGUARD_SCAN_FOLLOW_SYMLINKS": ("scan", "follow_symlinks", _parse_bool),
            "LEAKGUARD_SCAN_STREAM_THRESHOLD_MB": ("scan", "stream_threshold_mb", float),
            "LEAKGUARD_SCAN_CONTEXT_WIDTH": ("scan", "context_width", int),
            "LEAKGUARD_SCAN_WORKERS": ("scan", "workers", int),
            # Cache config
            "LEAKGUARD_CACHE_ENABLED": ("cache", "enabled", _parse_bool),
            "LEAKGUARD_CACHE_DIRECTORY": ("cache", "directory", str),
            "LEAKGUARD_CACHE_MAX_AGE_HOURS": ("cache", "max_age_hours", float),
            # Validation config
            "LEAKGUARD_VALIDATION_BACKTRACKING_TIMEOUT_MS": (
                "validation", "backtracking_timeout_ms", int,
            ),
            "LEAKGUARD_VALIDATION_SLOW_MATCH_THRESHOLD_MS": (
                "validation", "slow_match_threshold_ms", float,
            ),
            "LEAKGUARD_VALIDATION_SLOW_COMPILE_THRESHOLD_MS": (
                "validation", "slow_compile_threshold_ms", float,
            ),
            "LEAKGUARD_VALIDATION_INCLUDE_DEFAULT_RULES": (
                "validation", "include_default_rules", _parse_bool,
            ),
            "LEAKGUARD_VALIDATION_RULES_PATHS": ("validation", "rules_paths", _parse_list),
            # Logging config
            "LEAKGUARD_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                converted = converter(value)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {env_var}: {value!r}") from e
            section_obj = getattr(self, section)
            setattr(section_obj, key, converted)

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string into a list of non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(config_path: Optional[Path | str] = None, apply_env: bool = True) -> LeakGuardConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        LeakGuardConfig instance
    """
    if config_path:
        config = LeakGuardConfig.from_file(config_path)
    else:
        config = LeakGuardConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
