"""Findings extraction services."""
from cortex_review.services.findings.extractor import (
    FindingExtractor,
    categorize_findings,
    normalize_severity,
)

__all__ = [
    "FindingExtractor",
    "categorize_findings",
    "normalize_severity",
]
