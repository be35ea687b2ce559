"""Registry of reportable entity kinds.

Each entity maps to a backing table, the column used for date-range
filtering, the columns searched by free text and the ordered list of
reportable fields.  Definitions are built once at import and never change.
"""
from __future__ import annotations

from reporting.core.errors import UnknownEntityError
from reporting.core.schema import EntityDefinition, EntityKind, FieldDefinition


def _fields(*items: tuple[str, str, str]) -> tuple[FieldDefinition, ...]:
    return tuple(FieldDefinition(label=label, field=field, type=kind) for label, field, kind in items)


_DEFINITIONS: tuple[EntityDefinition, ...] = (
    EntityDefinition(
        kind=EntityKind.PROJECTS,
        display_name="Projects",
        icon="building",
        table="projects",
        date_field="createdon",
        search_columns=("projectid", "projectname"),
        fields=_fields(
            ("Project ID", "projectid", "text"),
            ("Project Name", "projectname", "text"),
            ("Customer", "customername", "text"),
            ("Status", "status", "status"),
            ("Created Date", "createdon", "date"),
            ("Total Budget", "total_budget", "currency"),
            ("Current Expenses", "current_expenses", "currency"),
            ("Budget Utilization", "budget_utilization", "percentage"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.CUSTOMERS,
        display_name="Customers",
        icon="users",
        table="customers",
        date_field="createdon",
        search_columns=("customerid", "customername"),
        fields=_fields(
            ("Customer ID", "customerid", "text"),
            ("Customer Name", "customername", "text"),
            ("Email", "contactemail", "text"),
            ("Phone", "phone", "text"),
            ("Status", "status", "status"),
            ("Created Date", "createdon", "date"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.VENDORS,
        display_name="Vendors",
        icon="truck",
        table="vendors",
        date_field="createdon",
        search_columns=("vendorid", "vendorname"),
        fields=_fields(
            ("Vendor ID", "vendorid", "text"),
            ("Vendor Name", "vendorname", "text"),
            ("Email", "email", "text"),
            ("Phone", "phone", "text"),
            ("Status", "status", "status"),
            ("Created Date", "createdon", "date"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.SUBCONTRACTORS,
        display_name="Subcontractors",
        icon="hard-hat",
        table="subcontractors",
        date_field="created_at",
        search_columns=("subid", "subname"),
        fields=_fields(
            ("Subcontractor ID", "subid", "text"),
            ("Name", "subname", "text"),
            ("Email", "contactemail", "text"),
            ("Phone", "phone", "text"),
            ("Status", "status", "status"),
            ("Rating", "rating", "number"),
            ("Created Date", "created_at", "date"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.WORK_ORDERS,
        display_name="Work Orders",
        icon="clipboard-list",
        table="maintenance_work_orders",
        date_field="created_at",
        search_columns=("work_order_id::text", "title"),
        fields=_fields(
            ("Work Order ID", "work_order_id", "text"),
            ("Title", "title", "text"),
            ("Status", "status", "status"),
            ("Priority", "priority", "text"),
            ("Created Date", "created_at", "date"),
            ("Due Date", "due_by_date", "date"),
            ("Progress", "progress", "percentage"),
            ("Total Cost", "total_cost", "currency"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.ESTIMATES,
        display_name="Estimates",
        icon="calculator",
        table="estimates",
        date_field="datecreated",
        search_columns=("estimateid", "projectname"),
        fields=_fields(
            ("Estimate ID", "estimateid", "text"),
            ("Project Name", "projectname", "text"),
            ("Customer Name", "customername", "text"),
            ("Status", "status", "status"),
            ("Created Date", "datecreated", "date"),
            ("Amount", "estimateamount", "currency"),
            ("Contingency", "contingencyamount", "currency"),
            ("Total with Contingency", "total_with_contingency", "currency"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.EXPENSES,
        display_name="Expenses",
        icon="receipt",
        table="expenses",
        date_field="expense_date",
        search_columns=("description",),
        fields=_fields(
            ("Description", "description", "text"),
            ("Type", "expense_type", "text"),
            ("Amount", "amount", "currency"),
            ("Date", "expense_date", "date"),
            ("Vendor", "vendor_id", "text"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.TIME_ENTRIES,
        display_name="Time Entries",
        icon="clock",
        table="time_entries",
        date_field="date_worked",
        search_columns=("id::text", "notes"),
        fields=_fields(
            ("Employee", "employee_id", "text"),
            ("Date Worked", "date_worked", "date"),
            ("Hours", "hours_worked", "number"),
            ("Rate", "employee_rate", "currency"),
            ("Total Cost", "total_cost", "currency"),
            ("Notes", "notes", "text"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.CHANGE_ORDERS,
        display_name="Change Orders",
        icon="file-diff",
        table="change_orders",
        date_field="created_at",
        search_columns=("title", "change_order_number"),
        fields=_fields(
            ("CO Number", "change_order_number", "text"),
            ("Title", "title", "text"),
            ("Status", "status", "status"),
            ("Amount", "total_amount", "currency"),
            ("Impact Days", "impact_days", "number"),
            ("Requested Date", "requested_date", "date"),
            ("Approved Date", "approved_date", "date"),
            ("Requested By", "requested_by", "text"),
        ),
    ),
    EntityDefinition(
        kind=EntityKind.EMPLOYEES,
        display_name="Employees",
        icon="user",
        table="employees",
        date_field="created_at",
        search_columns=("first_name", "last_name", "email"),
        fields=_fields(
            ("Name", "full_name", "text"),
            ("Email", "email", "text"),
            ("Role", "role", "text"),
            ("Status", "status", "status"),
            ("Hourly Rate", "hourly_rate", "currency"),
            ("Created Date", "created_at", "date"),
        ),
    ),
)

_REGISTRY: dict[EntityKind, EntityDefinition] = {definition.kind: definition for definition in _DEFINITIONS}


def coerce_kind(kind: EntityKind | str) -> EntityKind:
    """Return ``kind`` as an :class:`EntityKind`, failing fast when unknown."""

    if isinstance(kind, EntityKind):
        return kind
    try:
        return EntityKind(kind)
    except ValueError as exc:
        raise UnknownEntityError(kind) from exc


def get_entity(kind: EntityKind | str) -> EntityDefinition:
    return _REGISTRY[coerce_kind(kind)]


def list_entities() -> list[EntityDefinition]:
    return list(_DEFINITIONS)


__all__ = ["coerce_kind", "get_entity", "list_entities"]
