"""Translate an entity selection and filter snapshot into a data request."""
from __future__ import annotations

from typing import Iterable

from reporting.core.derived import DERIVED_COLUMNS
from reporting.core.entities import coerce_kind, get_entity
from reporting.core.errors import PermanentQueryError
from reporting.core.schema import (
    EntityDefinition,
    EntityKind,
    FieldDefinition,
    FilterDefinition,
    Predicate,
    PredicateValue,
    QuerySpec,
    ReportConfig,
    ReportFilters,
    ReportRequest,
    SearchPredicate,
)

_SQL_OPERATORS: dict[str, str] = {
    "eq": "=",
    "neq": "<>",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "ilike": "ILIKE",
}


def _normalise_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _normalise_choice(value: str | None) -> str | None:
    """Treat blank and ``all`` selections as "no constraint"."""

    cleaned = _normalise_text(value)
    if cleaned is None or cleaned.lower() == "all":
        return None
    return cleaned


def build_predicates(entity: EntityKind | str, filters: ReportFilters | None) -> tuple[Predicate | SearchPredicate, ...]:
    kind = coerce_kind(entity)
    definition = get_entity(kind)
    filters = filters or ReportFilters()
    predicates: list[Predicate | SearchPredicate] = []

    term = _normalise_text(filters.search)
    if term and definition.search_columns:
        predicates.append(SearchPredicate(columns=definition.search_columns, term=term))

    date_range = filters.date_range
    if date_range is not None and not date_range.is_open:
        if date_range.start and date_range.end and date_range.start > date_range.end:
            raise PermanentQueryError(
                f"date range start {date_range.start.isoformat()} is after end {date_range.end.isoformat()}"
            )
        if date_range.start:
            predicates.append(Predicate(column=definition.date_field, op="gte", value=date_range.start.isoformat()))
        if date_range.end:
            predicates.append(Predicate(column=definition.date_field, op="lte", value=date_range.end.isoformat()))

    status = _normalise_choice(filters.status)
    if status:
        predicates.append(Predicate(column="status", op="eq", value=status))

    # role and expense type only narrow the entities that carry those columns
    if kind is EntityKind.EMPLOYEES:
        role = _normalise_choice(filters.role)
        if role:
            predicates.append(Predicate(column="role", op="eq", value=role))
    if kind is EntityKind.EXPENSES:
        expense_type = _normalise_choice(filters.expense_type)
        if expense_type:
            predicates.append(Predicate(column="expense_type", op="eq", value=expense_type))

    return tuple(sorted(predicates, key=lambda item: item.sort_key))


def build_request(
    entity: EntityKind | str,
    filters: ReportFilters | None = None,
    *,
    select: Iterable[str] | None = None,
    order_by: str | None = None,
    descending: bool = True,
    limit: int | None = None,
    offset: int = 0,
) -> ReportRequest:
    """Build the normalised request for ``entity`` under ``filters``.

    Semantically identical filter states (blank vs. missing search, ``"all"``
    vs. missing status, an empty date range vs. none) produce equal requests.
    Raises :class:`PermanentQueryError` when the filters describe an invalid
    predicate such as an inverted date range.
    """

    kind = coerce_kind(entity)
    definition = get_entity(kind)

    columns = tuple(column.strip() for column in (select or ()) if column and column.strip())
    if not columns or "*" in columns:
        columns = ("*",)

    return ReportRequest(
        entity=kind,
        table=definition.table,
        select=columns,
        predicates=build_predicates(kind, filters),
        order_by=_normalise_text(order_by) or definition.date_field,
        descending=descending,
        limit=limit,
        offset=offset,
    )


_FILTER_OPERATORS: dict[str, str] = {
    "equals": "eq",
    "notEquals": "neq",
    "contains": "ilike",
    "startsWith": "ilike",
    "greaterThan": "gt",
    "lessThan": "lt",
}


def _config_field(definition: EntityDefinition, name: str) -> FieldDefinition:
    field = definition.field(name)
    if field is None:
        raise PermanentQueryError(f"{definition.kind.value} has no field {name!r}")
    return field


def _stored_column(definition: EntityDefinition, name: str, purpose: str) -> str:
    field = _config_field(definition, name)
    if field.field in DERIVED_COLUMNS:
        raise PermanentQueryError(f"computed field {name!r} cannot be used to {purpose}")
    return field.field


def filter_predicate(entity: EntityKind | str, item: FilterDefinition) -> Predicate | None:
    """Translate one user-defined condition; blank values constrain nothing."""

    definition = get_entity(entity)
    column = _stored_column(definition, item.field, "filter")
    value = item.value.strip() if isinstance(item.value, str) else item.value
    if value == "":
        return None
    if item.operator == "contains":
        value = f"%{value}%"
    elif item.operator == "startsWith":
        value = f"{value}%"
    return Predicate(column=column, op=_FILTER_OPERATORS[item.operator], value=value)


def _select_columns(definition: EntityDefinition, names: Iterable[str]) -> tuple[str, ...]:
    columns: list[str] = []
    for name in names:
        field = _config_field(definition, name)
        for column in DERIVED_COLUMNS.get(field.field, (field.field,)):
            if column not in columns:
                columns.append(column)
    return tuple(columns) or ("*",)


def build_config_request(
    config: ReportConfig,
    filters: ReportFilters | None = None,
    *,
    limit: int | None = None,
    offset: int = 0,
) -> ReportRequest:
    """Build the request for a custom report layout.

    Chosen fields become the projection (computed fields pull in the columns
    they are derived from). Group and sort fields must be among the chosen
    fields when any are chosen. Without a sort field the rows are unordered.
    """

    definition = get_entity(config.entity)
    for name in (config.group_by, config.sort_by):
        if name is None:
            continue
        _config_field(definition, name)
        if config.selected_fields and name not in config.selected_fields:
            raise PermanentQueryError(f"{name!r} is not one of the selected fields")

    predicates: list[Predicate | SearchPredicate] = list(build_predicates(definition.kind, filters))
    for item in config.filters:
        predicate = filter_predicate(definition.kind, item)
        if predicate is not None and predicate not in predicates:
            predicates.append(predicate)

    order_by = _stored_column(definition, config.sort_by, "sort") if config.sort_by else None
    return ReportRequest(
        entity=definition.kind,
        table=definition.table,
        select=_select_columns(definition, config.selected_fields),
        predicates=tuple(sorted(predicates, key=lambda item: item.sort_key)),
        order_by=order_by,
        descending=config.sort_direction == "desc",
        group_by=config.group_by,
        limit=limit,
        offset=offset,
    )


def to_query(request: ReportRequest) -> QuerySpec:
    order = (request.order_by, request.descending) if request.order_by else None
    return QuerySpec(
        select=request.select,
        filters=request.predicates,
        order=order,
        limit=request.limit,
        offset=request.offset,
    )


def _sql_literal(value: PredicateValue) -> str:
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, tuple):
        return "(" + ", ".join(_sql_literal(item) for item in value) + ")"
    return "'" + str(value).replace("'", "''") + "'"


def _sql_clause(predicate: Predicate | SearchPredicate) -> str:
    if isinstance(predicate, SearchPredicate):
        pattern = _sql_literal(f"%{predicate.term}%")
        parts = [f"{column} ILIKE {pattern}" for column in predicate.columns]
        return "(" + " OR ".join(parts) + ")"
    if predicate.op == "in":
        return f"{predicate.column} IN {_sql_literal(predicate.value)}"
    return f"{predicate.column} {_SQL_OPERATORS[predicate.op]} {_sql_literal(predicate.value)}"


def describe_sql(request: ReportRequest) -> str:
    """Render a read-only SQL preview of ``request`` for display purposes."""

    sql = f"SELECT {', '.join(request.select)} FROM {request.table}"
    if request.predicates:
        sql += " WHERE " + " AND ".join(_sql_clause(predicate) for predicate in request.predicates)
    if request.group_by:
        sql += f" GROUP BY {request.group_by}"
    if request.order_by:
        sql += f" ORDER BY {request.order_by} {'DESC' if request.descending else 'ASC'}"
    if request.limit is not None:
        sql += f" LIMIT {request.limit}"
    if request.offset:
        sql += f" OFFSET {request.offset}"
    return sql


__all__ = [
    "build_config_request",
    "build_predicates",
    "build_request",
    "describe_sql",
    "filter_predicate",
    "to_query",
]
