"""
Process exit codes for CI integration.
"""

from leakguard.core.patterns import Severity
from leakguard.services.scan_models import ScanResult

EXIT_SUCCESS = 0
EXIT_FINDINGS = 1
EXIT_INVALID_ARGUMENTS = 2
EXIT_UNEXPECTED_ERROR = 3


def exit_code_for(result: ScanResult) -> int:
    """Critical or high findings fail the run; anything less passes."""
    if result.count_at_or_above(Severity.HIGH):
        return EXIT_FINDINGS
    return EXIT_SUCCESS
