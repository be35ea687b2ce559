from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Literal, Sequence

import pandas as pd

from reporting.core.derived import format_date, format_value, to_float
from reporting.core.entities import get_entity
from reporting.core.schema import EntityKind, FieldDefinition

CellStyle = Literal["display", "csv", "raw"]


def csv_cell(field: FieldDefinition, value: object) -> str:
    """Plain-text cell for CSV files: blank when missing, unformatted amounts."""

    if value is None:
        return ""
    if field.type == "date":
        return format_date(value)
    if field.type == "currency":
        amount = to_float(value)
        return f"{amount:.2f}" if amount is not None else str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def report_frame(
    entity: EntityKind | str,
    rows: Iterable[dict[str, Any]],
    fields: Sequence[FieldDefinition] | None = None,
    *,
    style: CellStyle = "display",
) -> pd.DataFrame:
    """Lay ``rows`` out as the entity's report columns, labelled for display."""

    columns = list(fields or get_entity(entity).fields)
    records = []
    for row in rows:
        record = {}
        for field in columns:
            value = row.get(field.field)
            if style == "display":
                value = format_value(field, value)
            elif style == "csv":
                value = csv_cell(field, value)
            record[field.label] = value
        records.append(record)
    return pd.DataFrame(records, columns=[field.label for field in columns])


def render_report_csv(
    entity: EntityKind | str,
    rows: Iterable[dict[str, Any]],
    fields: Sequence[FieldDefinition] | None = None,
) -> str:
    return report_frame(entity, rows, fields, style="csv").to_csv(index=False)


def export_report_csv(path: Path, entity: EntityKind | str, rows: Iterable[dict[str, Any]]) -> Path:
    df = report_frame(entity, rows, style="csv")
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
