"""Derived report columns and display formatting."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable

from reporting.core.entities import coerce_kind
from reporting.core.schema import EntityKind, FieldDefinition

MISSING_VALUE = "—"

# computed columns and the stored columns they are derived from
DERIVED_COLUMNS: dict[str, tuple[str, ...]] = {
    "budget_utilization": ("total_budget", "current_expenses"),
    "total_with_contingency": ("estimateamount", "contingencyamount"),
    "full_name": ("first_name", "last_name"),
}


def to_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if result != result:  # NaN
        return None
    return result


def process_entity_data(entity: EntityKind | str, rows: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Return copies of ``rows`` enriched with the entity's computed columns."""

    kind = coerce_kind(entity)
    processed: list[dict[str, Any]] = []
    for row in rows:
        item = dict(row)
        if kind is EntityKind.PROJECTS:
            budget = to_float(item.get("total_budget"))
            spent = to_float(item.get("current_expenses")) or 0.0
            item["budget_utilization"] = (spent / budget) * 100 if budget and budget > 0 else 0.0
        elif kind is EntityKind.ESTIMATES:
            amount = to_float(item.get("estimateamount")) or 0.0
            contingency = to_float(item.get("contingencyamount")) or 0.0
            item["total_with_contingency"] = amount + contingency
        elif kind is EntityKind.EMPLOYEES:
            parts = [str(item.get(key) or "").strip() for key in ("first_name", "last_name")]
            item["full_name"] = " ".join(part for part in parts if part)
        processed.append(item)
    return processed


# ----------------------------------------------------------------------
# formatting
# ----------------------------------------------------------------------
def format_currency(value: object) -> str:
    amount = to_float(value)
    if amount is None:
        return MISSING_VALUE
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_percentage(value: object) -> str:
    amount = to_float(value)
    return f"{amount if amount is not None else 0.0:.1f}%"


def format_hours(value: object) -> str:
    amount = to_float(value)
    return f"{amount if amount is not None else 0.0:.1f}h"


def format_date(value: object) -> str:
    if value is None or value == "":
        return MISSING_VALUE
    if isinstance(value, datetime):
        parsed: date = value.date()
    elif isinstance(value, date):
        parsed = value
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            return text
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def status_variant(status: str | None) -> str:
    """Badge variant for a status value."""

    if not status:
        return "default"
    status = status.lower()
    if any(token in status for token in ("active", "approved", "completed")):
        return "secondary"
    if any(token in status for token in ("pending", "draft", "progress")):
        return "secondary"
    if "hold" in status or "review" in status:
        return "outline"
    if "cancel" in status or "reject" in status:
        return "destructive"
    return "default"


def format_status(value: object) -> str:
    return str(value).lower().replace("_", " ")


def format_value(field: FieldDefinition, value: object) -> str:
    if value is None:
        return MISSING_VALUE
    if field.type == "date":
        return format_date(value)
    if field.type == "currency":
        return format_currency(value)
    if field.type == "percentage":
        return format_percentage(value)
    if field.type == "status":
        return format_status(value)
    if field.type == "boolean":
        return "Yes" if value else "No"
    return str(value)


__all__ = [
    "DERIVED_COLUMNS",
    "MISSING_VALUE",
    "format_currency",
    "format_date",
    "format_hours",
    "format_percentage",
    "format_status",
    "format_value",
    "process_entity_data",
    "status_variant",
    "to_float",
]
