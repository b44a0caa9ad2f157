"""
Rule catalog loading.

Catalogs are YAML documents with a top-level ``rules`` list. Documents are
checked against a pydantic schema; a malformed catalog is a configuration
defect and raises CatalogError. Whether each rule's regex is usable is left
to the PatternValidator.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from leakguard.core.errors import CatalogError

from .models import PatternTestCase, SecretPattern, Severity

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "rules" / "default_rules.yaml"


class TestCaseDefinition(BaseModel):
    """Schema for a rule's example input."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    input: str
    should_match: bool
    description: str = ""
    expected_match: str | None = None


class RuleDefinition(BaseModel):
    """Schema for one catalog rule."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    pattern: str = Field(min_length=1)
    severity: Severity = Severity.MEDIUM
    description: str = ""
    suggestion: str = ""
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    case_sensitive: bool = False
    test_cases: list[TestCaseDefinition] = Field(default_factory=list)

    def to_pattern(self) -> SecretPattern:
        return SecretPattern(
            id=self.id,
            name=self.name,
            pattern=self.pattern,
            severity=self.severity,
            description=self.description,
            suggestion=self.suggestion,
            confidence=self.confidence,
            case_sensitive=self.case_sensitive,
            test_cases=tuple(
                PatternTestCase(
                    input=case.input,
                    should_match=case.should_match,
                    description=case.description,
                    expected_match=case.expected_match,
                )
                for case in self.test_cases
            ),
        )


class CatalogDocument(BaseModel):
    """Schema for a whole catalog file."""

    model_config = ConfigDict(extra="forbid")

    version: str = "1"
    rules: list[RuleDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "CatalogDocument":
        seen: set[str] = set()
        duplicates: set[str] = set()
        for rule in self.rules:
            if rule.id in seen:
                duplicates.add(rule.id)
            seen.add(rule.id)
        if duplicates:
            raise ValueError(f"Duplicate rule ids: {', '.join(sorted(duplicates))}")
        return self


def parse_catalog(data: object, source: str = "<memory>") -> list[SecretPattern]:
    """
    Validate an already-parsed catalog document.

    Raises:
        CatalogError: If the document does not match the schema
    """
    if not isinstance(data, dict):
        raise CatalogError(f"Catalog {source} must be a mapping with a 'rules' list", source=source)

    try:
        document = CatalogDocument.model_validate(data)
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog {source}: {e}", source=source) from e

    return [rule.to_pattern() for rule in document.rules]


def load_catalog(path: Path | str) -> list[SecretPattern]:
    """
    Load and schema-check a catalog file.

    Args:
        path: Path to a YAML (or JSON) catalog

    Returns:
        Patterns in file order

    Raises:
        CatalogError: If the file is missing, unreadable, or invalid
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}", source=str(path)) from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise CatalogError(f"Cannot parse catalog {path}: {e}", source=str(path)) from e

    patterns = parse_catalog(data if data is not None else {}, source=str(path))
    logger.debug(f"Loaded {len(patterns)} rules from {path}")
    return patterns


def load_default_catalog() -> list[SecretPattern]:
    """Load the bundled default rule set."""
    return load_catalog(DEFAULT_CATALOG_PATH)


def load_catalogs(
    paths: Iterable[Path | str], include_defaults: bool = True
) -> list[SecretPattern]:
    """
    Merge several catalogs into one rule list.

    Later catalogs replace earlier rules with the same id, keeping the
    original position.
    """
    merged: dict[str, SecretPattern] = {}
    sources: list[list[SecretPattern]] = []
    if include_defaults:
        sources.append(load_default_catalog())
    sources.extend(load_catalog(path) for path in paths)

    for patterns in sources:
        for pattern in patterns:
            if pattern.id in merged:
                logger.info(f"Rule {pattern.id} overridden by a later catalog")
            merged[pattern.id] = pattern

    return list(merged.values())
