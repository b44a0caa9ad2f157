"""
Structural checks on pattern sources.

These never invalidate a pattern; they only add warnings for constructs
that are usually slow or noisy.
"""

from .models import SecretPattern

NESTED_DOT_STAR = "Pattern contains nested .* quantifiers which may cause performance issues"
NESTED_QUANTIFIERS = "Pattern contains nested quantifiers which may cause catastrophic backtracking"
OVERLAPPING_ALTERNATION = "Pattern contains alternation with overlapping branches"
OVERLY_BROAD = "Pattern is overly broad and may cause false positives"
MISSING_ANCHORS = "Line-based pattern should consider using anchors (^ or $)"
MISSING_UPPERCASE = "Pattern may miss uppercase variants - consider case-insensitive flag"
MISSING_WORD_BOUNDARY = "Key/token pattern should consider word boundaries to avoid false positives"


def structural_warnings(pattern: SecretPattern) -> list[str]:
    """Return the heuristic warnings for a pattern, in a fixed order."""
    source = pattern.pattern
    warnings: list[str] = []

    if ".*.*" in source:
        warnings.append(NESTED_DOT_STAR)

    if "(.+)+" in source or "(.*)+" in source or "(.*)*" in source or "(.+)*" in source:
        warnings.append(NESTED_QUANTIFIERS)

    if "(.*|.*)" in source:
        warnings.append(OVERLAPPING_ALTERNATION)

    if source in (".*", ".+"):
        warnings.append(OVERLY_BROAD)

    if "line" in pattern.id and "^" not in source and "$" not in source:
        warnings.append(MISSING_ANCHORS)

    if pattern.case_sensitive and "[a-z]" in source and "[A-Z]" not in source:
        warnings.append(MISSING_UPPERCASE)

    if "key" in pattern.id or "token" in pattern.id:
        if "\\b" not in source and "(?:^|\\W)" not in source:
            warnings.append(MISSING_WORD_BOUNDARY)

    return warnings
