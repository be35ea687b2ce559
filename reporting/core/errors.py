from __future__ import annotations


class ReportError(Exception):
    """Base class for reporting failures."""


class DataAPIError(ReportError):
    """Raised when the remote data API cannot satisfy a query."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientDataError(DataAPIError):
    """Network or backend hiccup; the query may succeed if attempted again."""


class PermanentQueryError(DataAPIError):
    """The query itself is invalid and retrying it cannot help."""


class UnknownEntityError(ReportError, KeyError):
    """Raised for an entity kind that is not registered."""

    def __str__(self) -> str:
        return f"unknown report entity: {self.args[0]!r}" if self.args else "unknown report entity"
