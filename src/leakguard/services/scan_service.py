"""
Scan Service for LeakGuard.

Coordinates the scan workflow: traversal, classification, cache lookup,
pattern matching, cache store and aggregation of findings and errors.

Files are independent, so matching can optionally fan out to a thread pool
while traversal stays on the calling thread.
"""

import logging
import time
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from leakguard.core.file_classifier import DefaultFileClassifier, FileClassifierInterface
from leakguard.core.matcher import DEFAULT_CONTEXT_WIDTH, PatternMatcher
from leakguard.core.patterns import BatchValidationResult, PatternValidator, SecretPattern
from leakguard.core.traversal import (
    CandidateFile,
    TraversalEngine,
    TraversalEngineInterface,
    TraversalError,
)
from leakguard.infrastructure.result_cache import ResultCache
from leakguard.services.scan_models import FileOutcome, ScanError, ScanOptions, ScanResult

logger = logging.getLogger(__name__)

TraversalFactory = Callable[[Callable[[TraversalError], None]], TraversalEngineInterface]


def _default_traversal_factory(
    error_callback: Callable[[TraversalError], None],
) -> TraversalEngineInterface:
    return TraversalEngine(error_callback=error_callback)


class ScanService:
    """
    Service for scanning directory trees for secrets.

    The active rule set is fixed at construction from an already validated
    batch, so a pattern that failed validation can never run.
    """

    def __init__(
        self,
        patterns: BatchValidationResult | PatternMatcher,
        cache: Optional[ResultCache] = None,
        classifier: Optional[FileClassifierInterface] = None,
        traversal_factory: Optional[TraversalFactory] = None,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
        context_width: int = DEFAULT_CONTEXT_WIDTH,
    ):
        """
        Initialize the scan service.

        Args:
            patterns: Validated batch (only valid patterns are used) or a ready matcher
            cache: Result cache; None disables caching entirely
            classifier: Binary/encoding classifier (default: DefaultFileClassifier)
            traversal_factory: Builds a traversal engine wired to an error callback
            progress_callback: Optional callback(current, total, message); total is 0 while unknown
            context_width: Maximum length of finding context snippets
        """
        if isinstance(patterns, PatternMatcher):
            self._matcher = patterns
        else:
            self._matcher = PatternMatcher.from_validation(patterns, context_width=context_width)
        self._cache = cache
        self._classifier = classifier or DefaultFileClassifier()
        self._traversal_factory = traversal_factory or _default_traversal_factory
        self._progress_callback = progress_callback

    @classmethod
    def from_patterns(
        cls,
        patterns: Iterable[SecretPattern],
        validator: Optional[PatternValidator] = None,
        **kwargs,
    ) -> "ScanService":
        """Validate raw patterns and build a service over the valid ones."""
        batch = (validator or PatternValidator()).validate_all(patterns)
        return cls(batch, **kwargs)

    @property
    def matcher(self) -> PatternMatcher:
        return self._matcher

    @property
    def cache(self) -> Optional[ResultCache]:
        return self._cache

    def _report_progress(self, current: int, total: int, message: str) -> None:
        """Report progress if callback is set."""
        if self._progress_callback:
            self._progress_callback(current, total, message)

    def scan(self, root_path: Path, options: Optional[ScanOptions] = None) -> ScanResult:
        """
        Scan a directory tree.

        Per-file problems are collected in ``ScanResult.errors`` and never
        abort the scan.

        Args:
            root_path: Root directory to scan
            options: Scan options (default: ScanOptions())

        Returns:
            ScanResult with findings, errors and counters

        Raises:
            TypeError: If root_path is None
        """
        options = options or ScanOptions()
        start_time = time.time()
        result = ScanResult()

        if self._matcher.pattern_count == 0:
            logger.warning(
                "No valid patterns are active; the scan will report no findings. "
                "Check the rule catalog configuration."
            )

        cache = self._cache if options.use_cache else None
        if cache is not None:
            cache.bind_rule_set(self._matcher.rule_set_digest)

        def on_traversal_error(error: TraversalError) -> None:
            result.errors.append(ScanError.from_traversal(error))

        traversal = self._traversal_factory(on_traversal_error)
        candidates = traversal.walk(root_path, options.ignore_patterns)

        self._report_progress(0, 0, "Scanning files...")
        if options.workers > 1:
            outcomes = self._scan_parallel(candidates, cache, options, result)
        else:
            outcomes = self._scan_sequential(candidates, cache, options, result)

        for outcome in outcomes:
            self._record(outcome, result)
            self._report_progress(
                result.files_scanned + result.files_skipped, 0, f"Scanned {outcome.path}"
            )

        result.files_ignored = traversal.last_walk_stats.ignored

        if cache is not None:
            cache.save()

        result.duration_seconds = time.time() - start_time
        processed = result.files_scanned + result.files_skipped
        self._report_progress(processed, processed, "Scan complete")

        logger.info(
            "Scan completed",
            extra={
                "files_scanned": result.files_scanned,
                "files_skipped": result.files_skipped,
                "files_ignored": result.files_ignored,
                "files_cached": result.files_cached,
                "findings": len(result.findings),
                "errors": len(result.errors),
                "cancelled": result.cancelled,
                "duration_seconds": result.duration_seconds,
            },
        )
        return result

    @staticmethod
    def _is_cancelled(options: ScanOptions) -> bool:
        return options.cancel_event is not None and options.cancel_event.is_set()

    def _next_candidate(
        self, candidates: Iterator[CandidateFile], options: ScanOptions, result: ScanResult
    ) -> CandidateFile | None:
        """Pull the next candidate unless the scan has been cancelled."""
        if self._is_cancelled(options):
            if not result.cancelled:
                logger.info("Scan cancelled")
            result.cancelled = True
            return None
        return next(candidates, None)

    def _scan_sequential(
        self,
        candidates: Iterator[CandidateFile],
        cache: Optional[ResultCache],
        options: ScanOptions,
        result: ScanResult,
    ) -> Iterator[FileOutcome]:
        while True:
            candidate = self._next_candidate(candidates, options, result)
            if candidate is None:
                return
            yield self._process_candidate(candidate, cache, options)

    def _scan_parallel(
        self,
        candidates: Iterator[CandidateFile],
        cache: Optional[ResultCache],
        options: ScanOptions,
        result: ScanResult,
    ) -> Iterator[FileOutcome]:
        """
        Process candidates on a thread pool, yielding outcomes in traversal order.

        At most ``2 * workers`` files are in flight, so traversal never runs
        far ahead of matching.
        """
        window = options.workers * 2
        in_flight: deque[Future] = deque()

        with ThreadPoolExecutor(max_workers=options.workers) as executor:
            exhausted = False
            while not exhausted or in_flight:
                while not exhausted and len(in_flight) < window:
                    candidate = self._next_candidate(candidates, options, result)
                    if candidate is None:
                        exhausted = True
                        break
                    in_flight.append(
                        executor.submit(self._process_candidate, candidate, cache, options)
                    )
                if in_flight:
                    yield in_flight.popleft().result()

    def _process_candidate(
        self,
        candidate: CandidateFile,
        cache: Optional[ResultCache],
        options: ScanOptions,
    ) -> FileOutcome:
        """
        Classify, look up, match and store a single file.

        Args:
            candidate: File yielded by the traversal engine
            cache: Active cache or None
            options: Scan options

        Returns:
            FileOutcome; never raises for I/O or decoding problems
        """
        path = candidate.path
        outcome = FileOutcome(path=str(path))
        if options.verbose:
            logger.info(f"Scanning {path}")

        try:
            classification = self._classifier.classify(path)
        except OSError as e:
            outcome.error = ScanError.from_exception(path, e)
            return outcome

        if classification.is_binary:
            logger.debug(f"Skipping binary file: {path}")
            outcome.skipped = True
            return outcome

        if cache is not None:
            cached = cache.get(path)
            if cached is not None:
                outcome.findings = cached
                outcome.cached = True
                return outcome

        try:
            with open(path, encoding=classification.encoding, errors="strict") as f:
                if classification.should_stream:
                    findings = self._matcher.match_lines(path, f)
                else:
                    findings = self._matcher.match_text(path, f.read())
        except (OSError, UnicodeDecodeError) as e:
            outcome.error = ScanError.from_exception(path, e)
            return outcome

        if cache is not None:
            cache.set(path, findings)

        outcome.findings = findings
        return outcome

    @staticmethod
    def _record(outcome: FileOutcome, result: ScanResult) -> None:
        if outcome.error is not None:
            logger.warning(f"Error scanning {outcome.path}: {outcome.error.message}")
            result.errors.append(outcome.error)
            result.files_skipped += 1
            return

        if outcome.skipped:
            result.files_skipped += 1
            return

        result.files_scanned += 1
        if outcome.cached:
            result.files_cached += 1
        result.findings.extend(outcome.findings)
