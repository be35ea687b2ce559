"""Domain layer definitions."""

from .reports import ReportPreview, ReportResult

__all__ = [
    "ReportPreview",
    "ReportResult",
]
