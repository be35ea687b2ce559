from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

from reporting.core.entities import get_entity
from reporting.core.errors import PermanentQueryError
from reporting.core.schema import EntityKind, ReportGroup, ReportSummary


def summarise_rows(entity: EntityKind | str, rows: Iterable[dict[str, Any]]) -> ReportSummary:
    """Count rows, total each currency column and tally statuses."""

    definition = get_entity(entity)
    df = pd.DataFrame(list(rows))
    if df.empty:
        return ReportSummary(entity=definition.kind)

    totals: dict[str, float] = {}
    for field in definition.fields:
        if field.type != "currency" or field.field not in df.columns:
            continue
        values = pd.to_numeric(df[field.field], errors="coerce")
        totals[field.field] = round(float(values.sum(skipna=True)), 2)

    status_counts: dict[str, int] = {}
    if "status" in df.columns:
        statuses = df["status"].dropna().astype(str)
        status_counts = {str(key): int(count) for key, count in statuses.value_counts().sort_index().items()}

    return ReportSummary(
        entity=definition.kind,
        row_count=int(len(df)),
        totals=totals,
        status_counts=status_counts,
    )


def _group_key(value: Any) -> str | None:
    if value is None or (isinstance(value, float) and value != value):
        return None
    return str(value)


def group_rows(entity: EntityKind | str, rows: Iterable[dict[str, Any]], field: str) -> list[ReportGroup]:
    """Split rows by ``field`` and total the currency columns of each group.

    Groups are ordered by key; rows without a value form a trailing group
    keyed ``None``.
    """

    definition = get_entity(entity)
    if definition.field(field) is None:
        raise PermanentQueryError(f"{definition.kind.value} has no field {field!r}")

    df = pd.DataFrame(list(rows))
    if df.empty:
        return []
    keys = df[field].map(_group_key) if field in df.columns else pd.Series([None] * len(df), index=df.index)
    currency = [
        item.field
        for item in definition.fields
        if item.type == "currency" and item.field in df.columns and item.field != field
    ]

    groups: list[ReportGroup] = []
    for key, frame in df.groupby(keys.rename("__group"), dropna=False, sort=True):
        totals = {
            column: round(float(pd.to_numeric(frame[column], errors="coerce").sum(skipna=True)), 2)
            for column in currency
        }
        groups.append(ReportGroup(key=None if pd.isna(key) else str(key), row_count=int(len(frame)), totals=totals))
    return groups


__all__ = ["group_rows", "summarise_rows"]
