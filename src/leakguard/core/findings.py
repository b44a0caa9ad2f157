"""
Finding model and scoring helpers.
"""

import hashlib
import math
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any

from leakguard.core.patterns.models import Severity

# Base confidence when a rule does not declare one
SEVERITY_CONFIDENCE: dict[Severity, float] = {
    Severity.CRITICAL: 0.9,
    Severity.HIGH: 0.8,
    Severity.MEDIUM: 0.6,
    Severity.LOW: 0.4,
    Severity.INFO: 0.2,
}

# Captures at or above this many bits per character keep the full base confidence
ENTROPY_REFERENCE_BITS = 3.5
MIN_ENTROPY_FACTOR = 0.5


def shannon_entropy(value: str) -> float:
    """
    Calculate Shannon entropy of a string in bits per character.

    Random tokens usually score above 3.5; placeholders such as
    ``xxxxxxxx`` or ``changeme`` score well below it.
    """
    if not value:
        return 0.0
    length = len(value)
    return -sum(
        (count / length) * math.log2(count / length)
        for count in Counter(value).values()
    )


def score_confidence(
    severity: Severity, declared: float | None, captured: str | None
) -> float:
    """
    Combine a rule's base confidence with the entropy of its captured value.

    Returns:
        Confidence in [0, 1], rounded to two decimals
    """
    confidence = declared if declared is not None else SEVERITY_CONFIDENCE[severity]
    if captured:
        factor = shannon_entropy(captured) / ENTROPY_REFERENCE_BITS
        confidence *= min(1.0, max(MIN_ENTROPY_FACTOR, factor))
    return round(min(1.0, max(0.0, confidence)), 2)


def finding_id(rule_id: str, file_path: str, line: int, column: int) -> str:
    """Stable identifier for a rule hit at one location."""
    key = f"{rule_id}:{file_path}:{line}:{column}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]


@dataclass(frozen=True)
class Finding:
    """
    One secret-detection match.

    Attributes:
        id: Stable id derived from rule, path and location
        rule_id: Id of the rule that matched
        rule_name: Display name of the rule
        severity: Severity inherited from the rule
        file_path: Path of the scanned file
        line: 1-based line number
        column: 1-based column of the match start
        matched_text: The matched substring
        context: The trimmed source line, truncated to the context width
        confidence: Score in [0, 1]
        description: What the rule detects
        suggestion: Remediation hint
    """

    id: str
    rule_id: str
    rule_name: str
    severity: Severity
    file_path: str
    line: int
    column: int
    matched_text: str
    context: str
    confidence: float
    description: str = ""
    suggestion: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Finding":
        return cls(
            id=data["id"],
            rule_id=data["rule_id"],
            rule_name=data["rule_name"],
            severity=Severity(data["severity"]),
            file_path=data["file_path"],
            line=int(data["line"]),
            column=int(data["column"]),
            matched_text=data["matched_text"],
            context=data["context"],
            confidence=float(data["confidence"]),
            description=data.get("description", ""),
            suggestion=data.get("suggestion", ""),
        )
