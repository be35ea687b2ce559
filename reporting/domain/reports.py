"""Domain state for a report fetch."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from reporting.core.schema import ReportGroup, ReportRequest


@dataclass(slots=True)
class ReportResult:
    """Visible outcome of the most recent report request.

    A result moves from loading to either success (rows populated, no error)
    or error (rows cleared, diagnostic set).  ``request`` records which
    request produced it.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    is_loading: bool = False
    is_error: bool = False
    error: str | None = None
    request: ReportRequest | None = None

    @classmethod
    def loading(cls, request: ReportRequest | None) -> "ReportResult":
        return cls(is_loading=True, request=request)

    @classmethod
    def success(cls, request: ReportRequest, rows: list[dict[str, Any]]) -> "ReportResult":
        return cls(rows=list(rows), request=request)

    @classmethod
    def failure(cls, request: ReportRequest | None, message: str) -> "ReportResult":
        return cls(is_error=True, error=message, request=request)

    @property
    def status(self) -> str:
        if self.is_loading:
            return "loading"
        if self.is_error:
            return "error"
        if self.request is None:
            return "idle"
        return "success"

    @property
    def is_empty(self) -> bool:
        return self.status == "success" and not self.rows


@dataclass(slots=True)
class ReportPreview:
    """Rows of a custom report together with its SQL preview."""

    request: ReportRequest
    sql: str
    rows: list[dict[str, Any]] = field(default_factory=list)
    groups: list[ReportGroup] = field(default_factory=list)
