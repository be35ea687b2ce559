"""Data API contract and the in-memory implementation.

The reporting core only needs a row-oriented query interface.  Production
deployments install a :class:`~reporting.infrastructure.postgrest.PostgrestDataAPI`
during application start-up; tests and local development use the in-memory
store below, which evaluates the same predicates over seeded rows.
"""
from __future__ import annotations

import re
from typing import Any, Protocol

from reporting.core.errors import PermanentQueryError
from reporting.core.schema import Predicate, PredicateValue, QuerySpec, SearchPredicate


class DataAPI(Protocol):
    """Contract for remote data stores."""

    async def query(self, table: str, spec: QuerySpec) -> list[dict[str, Any]]:
        """Return the rows of ``table`` matching ``spec``."""

    async def count(self, table: str, spec: QuerySpec) -> int:
        """Return how many rows of ``table`` match ``spec`` ignoring paging."""


def _column_name(column: str) -> str:
    # strip PostgREST casts such as ``id::text``
    return column.split("::", 1)[0]


def _comparable(value: Any) -> tuple[int, Any]:
    if isinstance(value, bool):
        return (0, float(value))
    if isinstance(value, (int, float)):
        return (0, float(value))
    try:
        return (0, float(str(value)))
    except ValueError:
        return (1, str(value))


def _like_to_regex(pattern: str) -> re.Pattern[str]:
    # ``%`` and PostgREST's ``*`` match any run, ``_`` exactly one character
    parts = []
    for token in re.split(r"([%*_])", pattern):
        if token in ("%", "*"):
            parts.append(".*")
        elif token == "_":
            parts.append(".")
        else:
            parts.append(re.escape(token))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def _matches_predicate(row: dict[str, Any], predicate: Predicate) -> bool:
    actual = row.get(_column_name(predicate.column))
    expected: PredicateValue = predicate.value
    if predicate.op == "in":
        options = expected if isinstance(expected, tuple) else (expected,)
        return actual is not None and str(actual) in {str(option) for option in options}
    if predicate.op == "ilike":
        return actual is not None and bool(_like_to_regex(str(expected)).match(str(actual)))
    if predicate.op == "eq":
        return actual is not None and _comparable(actual) == _comparable(expected)
    if predicate.op == "neq":
        return actual is None or _comparable(actual) != _comparable(expected)
    if actual is None:
        return False

    left, right = _comparable(actual), _comparable(expected)
    if left[0] != right[0]:
        left, right = (1, str(actual)), (1, str(expected))
    if predicate.op == "gt":
        return left > right
    if predicate.op == "gte":
        return left >= right
    if predicate.op == "lt":
        return left < right
    if predicate.op == "lte":
        return left <= right
    raise PermanentQueryError(f"unsupported operator: {predicate.op}")


def _matches_search(row: dict[str, Any], predicate: SearchPredicate) -> bool:
    needle = predicate.term.casefold()
    for column in predicate.columns:
        value = row.get(_column_name(column))
        if value is not None and needle in str(value).casefold():
            return True
    return False


def matches(row: dict[str, Any], spec: QuerySpec) -> bool:
    for predicate in spec.filters:
        if isinstance(predicate, SearchPredicate):
            if not _matches_search(row, predicate):
                return False
        elif not _matches_predicate(row, predicate):
            return False
    return True


class InMemoryDataAPI:
    """Simple in-memory data store for fast iteration and tests."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, QuerySpec]] = []
        for table, rows in (tables or {}).items():
            self.seed(table, rows)

    def seed(self, table: str, rows: list[dict[str, Any]]) -> None:
        self._tables.setdefault(table, []).extend(dict(row) for row in rows)

    def reset(self) -> None:
        self._tables.clear()
        self.calls.clear()

    def _select(self, table: str, spec: QuerySpec) -> list[dict[str, Any]]:
        if table not in self._tables:
            raise PermanentQueryError(f'relation "{table}" does not exist', status_code=404)
        return [row for row in self._tables[table] if matches(row, spec)]

    async def query(self, table: str, spec: QuerySpec) -> list[dict[str, Any]]:
        self.calls.append((table, spec))
        rows = self._select(table, spec)

        if spec.order is not None:
            column, descending = spec.order
            present = [row for row in rows if row.get(column) is not None]
            missing = [row for row in rows if row.get(column) is None]
            present.sort(key=lambda row: _comparable(row[column]), reverse=descending)
            rows = present + missing

        rows = rows[spec.offset :]
        if spec.limit is not None:
            rows = rows[: spec.limit]

        if spec.select == ("*",):
            return [dict(row) for row in rows]
        columns = [_column_name(column) for column in spec.select]
        return [{column: row[column] for column in columns if column in row} for row in rows]

    async def count(self, table: str, spec: QuerySpec) -> int:
        return len(self._select(table, spec))


_data_api: DataAPI = InMemoryDataAPI()


def configure_data_api(api: DataAPI) -> None:
    """Install the data API used by report fetches."""

    global _data_api
    _data_api = api


def get_data_api() -> DataAPI:
    """Return the currently configured data API."""

    return _data_api


def reset_data_api() -> None:
    """Reinstall an empty in-memory store (used in tests)."""

    configure_data_api(InMemoryDataAPI())


__all__ = [
    "DataAPI",
    "InMemoryDataAPI",
    "configure_data_api",
    "get_data_api",
    "matches",
    "reset_data_api",
]
