"""Application services."""

from .builder import ReportBuilder, preview_report
from .fetcher import MAX_ATTEMPTS, ReportFetcher
from .filters import DEFAULT_DEBOUNCE_SECONDS, FilterStateManager
from .session import ReportContext, ReportSession

__all__ = [
    "DEFAULT_DEBOUNCE_SECONDS",
    "MAX_ATTEMPTS",
    "FilterStateManager",
    "ReportBuilder",
    "ReportContext",
    "ReportFetcher",
    "ReportSession",
    "preview_report",
]
