from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EntityKind(str, Enum):
    PROJECTS = "projects"
    CUSTOMERS = "customers"
    VENDORS = "vendors"
    SUBCONTRACTORS = "subcontractors"
    WORK_ORDERS = "work_orders"
    ESTIMATES = "estimates"
    EXPENSES = "expenses"
    TIME_ENTRIES = "time_entries"
    CHANGE_ORDERS = "change_orders"
    EMPLOYEES = "employees"


FieldType = Literal["text", "number", "date", "currency", "status", "percentage", "boolean"]


class FieldDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    label: str
    type: FieldType = "text"


class EntityDefinition(BaseModel):
    """Static description of a reportable entity kind."""

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    display_name: str
    icon: str
    table: str
    date_field: str
    search_columns: tuple[str, ...] = ()
    fields: tuple[FieldDefinition, ...] = ()

    def field(self, name: str) -> FieldDefinition | None:
        for definition in self.fields:
            if definition.field == name:
                return definition
        return None


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: date | None = None
    end: date | None = None

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None


class ReportFilters(BaseModel):
    """User-controlled filter snapshot. Edits produce a new instance."""

    model_config = ConfigDict(frozen=True)

    search: str | None = ""
    date_range: DateRange | None = None
    status: str | None = "all"
    role: str | None = None
    expense_type: str | None = None


PredicateOp = Literal["eq", "neq", "gt", "gte", "lt", "lte", "ilike", "in"]
PredicateValue = Union[str, int, float, bool, tuple[str, ...]]


class Predicate(BaseModel):
    """Single column comparison."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["column"] = "column"
    column: str
    op: PredicateOp
    value: PredicateValue

    @property
    def sort_key(self) -> tuple:
        return (0, self.column, self.op, str(self.value))


class SearchPredicate(BaseModel):
    """Case-insensitive substring match against any of ``columns``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["search"] = "search"
    columns: tuple[str, ...]
    term: str

    @property
    def sort_key(self) -> tuple:
        return (1, ",".join(self.columns), self.term)


AnyPredicate = Annotated[Union[Predicate, SearchPredicate], Field(discriminator="kind")]


class ReportRequest(BaseModel):
    """Normalised fetch request; equal requests are interchangeable cache keys."""

    model_config = ConfigDict(frozen=True)

    entity: EntityKind
    table: str
    select: tuple[str, ...] = ("*",)
    predicates: tuple[AnyPredicate, ...] = ()
    order_by: str | None = None
    descending: bool = True
    group_by: str | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_select(self) -> "ReportRequest":
        if not self.select:
            raise ValueError("select must name at least one column")
        return self

    @property
    def search(self) -> SearchPredicate | None:
        for predicate in self.predicates:
            if isinstance(predicate, SearchPredicate):
                return predicate
        return None


class QuerySpec(BaseModel):
    """Payload handed to a data API implementation."""

    model_config = ConfigDict(frozen=True)

    select: tuple[str, ...] = ("*",)
    filters: tuple[AnyPredicate, ...] = ()
    order: tuple[str, bool] | None = None
    limit: int | None = None
    offset: int = 0


class ReportSummary(BaseModel):
    entity: EntityKind
    row_count: int = 0
    totals: dict[str, float] = Field(default_factory=dict)
    status_counts: dict[str, int] = Field(default_factory=dict)


class ReportGroup(BaseModel):
    key: str | None = None
    row_count: int = 0
    totals: dict[str, float] = Field(default_factory=dict)


FilterOperator = Literal["equals", "notEquals", "contains", "startsWith", "greaterThan", "lessThan"]
SortDirection = Literal["asc", "desc"]


class FilterDefinition(BaseModel):
    """User-defined condition on one field of the report entity."""

    model_config = ConfigDict(frozen=True)

    id: str
    field: str
    operator: FilterOperator = "equals"
    value: str | int | float = ""


class ReportConfig(BaseModel):
    """Custom report layout: entity, chosen fields, conditions, grouping and sort."""

    model_config = ConfigDict(frozen=True)

    name: str = "New Report"
    description: str = "Report description"
    entity: EntityKind = EntityKind.PROJECTS
    selected_fields: tuple[str, ...] = ()
    filters: tuple[FilterDefinition, ...] = ()
    group_by: str | None = None
    sort_by: str | None = None
    sort_direction: SortDirection = "desc"
    chart_type: str = "table"
