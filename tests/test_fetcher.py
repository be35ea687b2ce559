import asyncio
import logging

from conftest import ControlledDataAPI, FlakyDataAPI, PROJECT_ROWS
from reporting.application import ReportFetcher
from reporting.core.errors import PermanentQueryError, TransientDataError
from reporting.core.query_builder import build_request
from reporting.core.schema import EntityKind, ReportFilters


def test_projects_oak_active_returns_three_rows(data_api):
    request = build_request("projects", ReportFilters(search="oak", status="active"))
    fetcher = ReportFetcher(data_api)

    result = asyncio.run(fetcher.load(request))

    assert result.is_loading is False
    assert result.is_error is False
    assert result.error is None
    assert [row["projectid"] for row in result.rows] == ["PRJ-000002", "PRJ-000001", "PRJ-000003"]
    assert result.request == request
    assert result.status == "success"


def test_rows_carry_derived_columns(data_api):
    request = build_request("projects", ReportFilters(search="duplex"))
    result = asyncio.run(ReportFetcher(data_api).load(request))

    assert result.rows[0]["budget_utilization"] == 25.0


def test_two_transient_failures_make_exactly_two_attempts(caplog):
    api = FlakyDataAPI({"projects": PROJECT_ROWS})
    api.failures = [TransientDataError("gateway timeout"), TransientDataError("gateway timeout"), TransientDataError("never reached")]
    fetcher = ReportFetcher(api)

    with caplog.at_level(logging.WARNING, logger="reporting"):
        result = asyncio.run(fetcher.load(build_request("projects")))

    assert api.attempts == 2
    assert result.is_error is True
    assert result.is_loading is False
    assert result.rows == []
    assert "gateway timeout" in result.error
    failures = [record for record in caplog.records if record.name == "reporting.application.fetcher"]
    assert len(failures) == 2
    assert all(record.entity == "projects" for record in failures)
    assert [record.attempt for record in failures] == [1, 2]


def test_single_transient_failure_is_retried():
    api = FlakyDataAPI({"projects": PROJECT_ROWS})
    api.failures = [TransientDataError("connection reset")]

    result = asyncio.run(ReportFetcher(api).load(build_request("projects", ReportFilters(status="completed"))))

    assert api.attempts == 2
    assert result.is_error is False
    assert [row["projectid"] for row in result.rows] == ["PRJ-000004"]


def test_permanent_error_is_not_retried():
    api = FlakyDataAPI({"projects": PROJECT_ROWS})
    api.failures = [PermanentQueryError("column projects.bogus does not exist", status_code=400)]

    result = asyncio.run(ReportFetcher(api).load(build_request("projects")))

    assert api.attempts == 1
    assert result.is_error is True
    assert result.error == "column projects.bogus does not exist"


def test_superseded_success_never_overwrites_newer_result():
    async def scenario():
        api = ControlledDataAPI()
        fetcher = ReportFetcher(api)
        first = build_request("projects", ReportFilters(search="oak"))
        second = build_request("projects", ReportFilters(search="pine"))

        first_task = fetcher.issue(first)
        await asyncio.sleep(0)
        second_task = fetcher.issue(second)
        await asyncio.sleep(0)
        assert len(api.calls) == 2

        api.calls[1][2].set_result([{"projectid": "PRJ-000005"}])
        await second_task
        api.calls[0][2].set_result([{"projectid": "PRJ-000001"}])
        await first_task
        return fetcher.result, second

    result, second = asyncio.run(scenario())

    assert result.request == second
    assert [row["projectid"] for row in result.rows] == ["PRJ-000005"]


def test_superseded_resolution_while_newer_request_loading_is_ignored():
    async def scenario():
        api = ControlledDataAPI()
        fetcher = ReportFetcher(api)
        first_task = fetcher.issue(build_request("projects"))
        await asyncio.sleep(0)
        second = build_request("vendors")
        fetcher.issue(second)
        await asyncio.sleep(0)

        api.calls[0][2].set_exception(PermanentQueryError("stale failure"))
        await first_task
        snapshot = (fetcher.result.is_loading, fetcher.result.is_error, fetcher.result.request)

        api.calls[1][2].set_result([])
        await fetcher.wait()
        return snapshot, fetcher.result, second

    snapshot, result, second = asyncio.run(scenario())

    assert snapshot == (True, False, second)
    assert result.is_empty
    assert result.error is None


def test_identical_request_is_not_fetched_twice(data_api):
    async def scenario():
        fetcher = ReportFetcher(data_api)
        request = build_request("projects", ReportFilters(status="active"))
        first = fetcher.issue(request)
        again = fetcher.issue(request)
        assert first is again
        await fetcher.wait()
        assert fetcher.issue(request) is None
        assert fetcher.issue(request, force=True) is not None
        await fetcher.wait()

    asyncio.run(scenario())
    assert len(data_api.calls) == 2


def test_report_error_supersedes_inflight_request():
    async def scenario():
        api = ControlledDataAPI()
        fetcher = ReportFetcher(api)
        task = fetcher.issue(build_request("projects"))
        await asyncio.sleep(0)
        fetcher.report_error(EntityKind.PROJECTS, PermanentQueryError("bad date range"))
        api.calls[0][2].set_result([{"projectid": "PRJ-000001"}])
        await task
        return fetcher.result

    result = asyncio.run(scenario())
    assert result.is_error is True
    assert result.error == "bad date range"
    assert result.rows == []


def test_aclose_cancels_superseded_fetches_too():
    async def scenario():
        api = ControlledDataAPI()
        fetcher = ReportFetcher(api)
        first_task = fetcher.issue(build_request("projects", ReportFilters(search="oak")))
        await asyncio.sleep(0)
        second_task = fetcher.issue(build_request("projects", ReportFilters(search="pine")))
        await asyncio.sleep(0)

        await fetcher.aclose()
        return first_task, second_task, api

    first_task, second_task, api = asyncio.run(scenario())

    assert first_task.done() is True
    assert first_task.cancelled() is True
    assert second_task.cancelled() is True
    assert all(future.cancelled() for _, _, future in api.calls)
