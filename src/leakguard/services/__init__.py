"""
Service Layer - ScanService and ServicesContainer.
"""

from leakguard.services.container import (
    ServicesContainer,
    create_services,
    create_validator,
    load_patterns,
)
from leakguard.services.scan_models import FileOutcome, ScanError, ScanOptions, ScanResult
from leakguard.services.scan_service import ScanService

__all__ = [
    "ScanService",
    "ScanOptions",
    "ScanResult",
    "ScanError",
    "FileOutcome",
    "ServicesContainer",
    "create_services",
    "create_validator",
    "load_patterns",
]
