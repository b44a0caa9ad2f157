"""
Pattern-matching engine.

Applies the active rule set to decoded text line by line. Deciding whether
a file is text, which encoding it uses, or whether it must be streamed is
the file classifier's job; this module only sees lines.
"""

import hashlib
import json
import logging
import re
from collections.abc import Iterable
from pathlib import Path

from leakguard.core.findings import Finding, finding_id, score_confidence
from leakguard.core.patterns.models import BatchValidationResult, SecretPattern

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_WIDTH = 120


class PatternMatcher:
    """
    Runs a fixed set of trusted patterns over text.

    Every pattern is applied independently, so one line can yield one
    finding per matching pattern.
    """

    def __init__(self, patterns: Iterable[SecretPattern], context_width: int = DEFAULT_CONTEXT_WIDTH):
        """
        Initialize the matcher.

        Args:
            patterns: Patterns that already passed validation
            context_width: Maximum length of a finding's context snippet
        """
        self._context_width = max(1, context_width)
        self._compiled: list[tuple[SecretPattern, re.Pattern]] = []
        for pattern in patterns:
            try:
                self._compiled.append((pattern, pattern.compile()))
            except re.error as e:
                logger.error(f"Dropping pattern {pattern.id}: compilation failed: {e}")

    @classmethod
    def from_validation(
        cls, batch: BatchValidationResult, context_width: int = DEFAULT_CONTEXT_WIDTH
    ) -> "PatternMatcher":
        """Build a matcher from the valid patterns of a batch only."""
        return cls(batch.active_patterns, context_width=context_width)

    @property
    def patterns(self) -> list[SecretPattern]:
        return [pattern for pattern, _ in self._compiled]

    @property
    def pattern_count(self) -> int:
        return len(self._compiled)

    @property
    def rule_set_digest(self) -> str:
        """
        Digest of everything that shapes this matcher's findings.

        Two matchers with the same digest produce identical findings for
        identical input, so cached results may be reused between them.
        """
        document = {
            "context_width": self._context_width,
            "rules": [
                [
                    pattern.id,
                    pattern.name,
                    pattern.pattern,
                    pattern.case_sensitive,
                    pattern.severity.value,
                    pattern.confidence,
                    pattern.description,
                    pattern.suggestion,
                ]
                for pattern, _ in self._compiled
            ],
        }
        encoded = json.dumps(document, sort_keys=True).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()

    def match_text(self, file_path: Path | str, text: str) -> list[Finding]:
        """Match an in-memory document."""
        # Split like file iteration does so line numbers agree with streamed scans
        return self.match_lines(file_path, text.split("\n"))

    def match_lines(self, file_path: Path | str, lines: Iterable[str]) -> list[Finding]:
        """
        Match an iterable of lines.

        Args:
            file_path: Path recorded on findings
            lines: Lines of decoded text; an open text file works as well

        Returns:
            Findings ordered by line, then rule order, then column
        """
        path_str = str(file_path)
        findings: list[Finding] = []

        for line_number, raw_line in enumerate(lines, start=1):
            line = raw_line.rstrip("\r\n")
            if not line:
                continue
            for pattern, compiled in self._compiled:
                for match in compiled.finditer(line):
                    if match.end() == match.start():
                        continue
                    findings.append(self._build_finding(pattern, match, path_str, line_number, line))

        return findings

    def _build_finding(
        self,
        pattern: SecretPattern,
        match: re.Match,
        path_str: str,
        line_number: int,
        line: str,
    ) -> Finding:
        column = match.start() + 1
        captured = next((group for group in match.groups() if group), None)
        return Finding(
            id=finding_id(pattern.id, path_str, line_number, column),
            rule_id=pattern.id,
            rule_name=pattern.name,
            severity=pattern.severity,
            file_path=path_str,
            line=line_number,
            column=column,
            matched_text=match.group(0),
            context=self._context(line, match.start()),
            confidence=score_confidence(pattern.severity, pattern.confidence, captured),
            description=pattern.description,
            suggestion=pattern.suggestion,
        )

    def _context(self, line: str, start: int) -> str:
        text = line.strip()
        if len(text) <= self._context_width:
            return text
        begin = max(0, start - self._context_width // 4)
        return line[begin:begin + self._context_width].strip()
