"""Coverage module - interface coverage of test units."""

from .analyzer import (
    CoverageAnalyzer,
    CoverageAnalyzerProtocol,
    CoverageStats,
    collect_identifiers,
)

__all__ = [
    "CoverageAnalyzer",
    "CoverageAnalyzerProtocol",
    "CoverageStats",
    "collect_identifiers",
]
