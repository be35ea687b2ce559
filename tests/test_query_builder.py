from datetime import date

import pytest

from reporting.core.errors import PermanentQueryError
from reporting.core.query_builder import build_config_request, build_request, describe_sql, filter_predicate, to_query
from reporting.core.schema import (
    DateRange,
    FilterDefinition,
    Predicate,
    ReportConfig,
    ReportFilters,
    SearchPredicate,
)


def test_projects_oak_active_scenario():
    request = build_request("projects", ReportFilters(search="oak", status="active"))

    assert request.table == "projects"
    assert set(request.predicates) == {
        Predicate(column="status", op="eq", value="active"),
        SearchPredicate(columns=("projectid", "projectname"), term="oak"),
    }
    assert request.order_by == "createdon"
    assert request.descending is True


def test_blank_and_missing_search_build_the_same_request():
    blank = build_request("projects", ReportFilters(search="", status="active"))
    missing = build_request("projects", ReportFilters(search=None, status="active"))
    padded = build_request("projects", ReportFilters(search="   ", status="active"))

    assert blank == missing == padded
    assert hash(blank) == hash(missing)
    assert blank.search is None


def test_all_status_and_open_date_range_are_dropped():
    plain = build_request("vendors", ReportFilters())
    noisy = build_request("vendors", ReportFilters(status="ALL", date_range=DateRange()))
    assert plain == noisy
    assert plain.predicates == ()


def test_date_range_uses_entity_date_column():
    filters = ReportFilters(date_range=DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31)))
    request = build_request("estimates", filters)

    assert Predicate(column="datecreated", op="gte", value="2024-01-01") in request.predicates
    assert Predicate(column="datecreated", op="lte", value="2024-01-31") in request.predicates


def test_inverted_date_range_is_a_permanent_error():
    filters = ReportFilters(date_range=DateRange(start=date(2024, 2, 1), end=date(2024, 1, 1)))
    with pytest.raises(PermanentQueryError):
        build_request("projects", filters)


def test_role_only_applies_to_employees():
    filters = ReportFilters(role="foreman")
    assert Predicate(column="role", op="eq", value="foreman") in build_request("employees", filters).predicates
    assert build_request("projects", filters).predicates == ()


def test_expense_type_only_applies_to_expenses():
    filters = ReportFilters(expense_type="materials")
    assert build_request("expenses", filters).predicates == (
        Predicate(column="expense_type", op="eq", value="materials"),
    )
    assert build_request("employees", filters).predicates == ()


def test_to_query_carries_paging_and_order():
    request = build_request("projects", ReportFilters(status="active"), select=["projectid", "status"], limit=25, offset=50)
    spec = to_query(request)

    assert spec.select == ("projectid", "status")
    assert spec.order == ("createdon", True)
    assert spec.limit == 25
    assert spec.offset == 50
    assert spec.filters == request.predicates


def test_describe_sql_escapes_values():
    request = build_request("projects", ReportFilters(search="o'ak", status="active"), limit=10)
    sql = describe_sql(request)

    assert sql == (
        "SELECT * FROM projects WHERE status = 'active' AND "
        "(projectid ILIKE '%o''ak%' OR projectname ILIKE '%o''ak%') "
        "ORDER BY createdon DESC LIMIT 10"
    )


@pytest.mark.parametrize(
    ("field", "operator", "value", "expected"),
    [
        ("status", "equals", "active", Predicate(column="status", op="eq", value="active")),
        ("status", "notEquals", "completed", Predicate(column="status", op="neq", value="completed")),
        ("projectname", "contains", "oak", Predicate(column="projectname", op="ilike", value="%oak%")),
        ("projectname", "startsWith", " Oak ", Predicate(column="projectname", op="ilike", value="Oak%")),
        ("total_budget", "greaterThan", 40000, Predicate(column="total_budget", op="gt", value=40000)),
        ("createdon", "lessThan", "2024-02-01", Predicate(column="createdon", op="lt", value="2024-02-01")),
    ],
)
def test_filter_operators_map_to_predicates(field, operator, value, expected):
    item = FilterDefinition(id="filter-1", field=field, operator=operator, value=value)
    assert filter_predicate("projects", item) == expected


def test_blank_filter_value_constrains_nothing():
    item = FilterDefinition(id="filter-1", field="projectname", operator="contains", value="  ")
    assert filter_predicate("projects", item) is None


def test_filter_on_unknown_or_computed_field_is_rejected():
    with pytest.raises(PermanentQueryError, match="no field 'vendorname'"):
        filter_predicate("projects", FilterDefinition(id="f", field="vendorname", value="x"))
    with pytest.raises(PermanentQueryError, match="computed field"):
        filter_predicate("projects", FilterDefinition(id="f", field="budget_utilization", operator="greaterThan", value=50))


def test_config_request_projection_sort_and_sql():
    config = ReportConfig(
        entity="projects",
        selected_fields=("projectname", "total_budget", "budget_utilization"),
        filters=(
            FilterDefinition(id="filter-1", field="total_budget", operator="greaterThan", value=40000),
            FilterDefinition(id="filter-2", field="projectname", operator="contains", value="oak"),
        ),
        sort_by="total_budget",
        sort_direction="asc",
    )

    request = build_config_request(config)

    assert request.select == ("projectname", "total_budget", "current_expenses")
    assert request.order_by == "total_budget"
    assert request.descending is False
    assert describe_sql(request) == (
        "SELECT projectname, total_budget, current_expenses FROM projects "
        "WHERE projectname ILIKE '%oak%' AND total_budget > 40000 ORDER BY total_budget ASC"
    )


def test_config_request_groups_without_order():
    config = ReportConfig(entity="projects", selected_fields=("status", "total_budget"), group_by="status")

    request = build_config_request(config)

    assert request.group_by == "status"
    assert to_query(request).order is None
    assert describe_sql(request) == "SELECT status, total_budget FROM projects GROUP BY status"


def test_config_request_without_fields_selects_everything():
    request = build_config_request(ReportConfig(entity="vendors"), ReportFilters(status="active"))

    assert request.select == ("*",)
    assert request.predicates == (Predicate(column="status", op="eq", value="active"),)


def test_group_and_sort_fields_must_be_selected():
    with pytest.raises(PermanentQueryError, match="not one of the selected fields"):
        build_config_request(ReportConfig(entity="projects", selected_fields=("projectname",), group_by="status"))
    with pytest.raises(PermanentQueryError, match="computed field"):
        build_config_request(ReportConfig(entity="projects", sort_by="budget_utilization"))
    with pytest.raises(PermanentQueryError, match="no field"):
        build_config_request(ReportConfig(entity="projects", sort_by="vendorname"))
