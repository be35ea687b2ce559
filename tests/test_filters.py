from datetime import date

import pytest

from conftest import ManualScheduler
from reporting.application import FilterStateManager
from reporting.core.schema import DateRange, ReportFilters


def _manager(scheduler: ManualScheduler) -> tuple[FilterStateManager, list[ReportFilters]]:
    manager = FilterStateManager(scheduler, delay=0.3)
    seen: list[ReportFilters] = []
    manager.subscribe(seen.append)
    return manager, seen


def test_set_filter_replaces_snapshot_without_mutating_previous(scheduler):
    manager, _ = _manager(scheduler)
    before = manager.filters

    after = manager.set_filter("search", "oak")

    assert before.search == ""
    assert after.search == "oak"
    assert after is not before
    assert manager.debounced_filters == before


def test_burst_of_edits_coalesces_into_last_snapshot(scheduler):
    manager, seen = _manager(scheduler)

    for text in ("o", "oa", "oak"):
        manager.set_filter("search", text)
        scheduler.advance(0.1)
    manager.set_filter("status", "active")
    scheduler.advance(0.25)
    assert seen == []

    scheduler.advance(0.1)
    assert seen == [ReportFilters(search="oak", status="active")]
    assert manager.debounced_filters == seen[0]
    assert not manager.pending


def test_edits_that_return_to_published_state_do_not_notify(scheduler):
    manager, seen = _manager(scheduler)
    manager.set_filter("search", "oak")
    manager.set_filter("search", "")
    scheduler.advance(1)
    assert seen == []


def test_reset_cancels_pending_timer(scheduler):
    manager, seen = _manager(scheduler)
    manager.set_filter("status", "completed")
    manager.reset_filters()

    scheduler.advance(1)
    assert seen == []
    assert manager.filters == ReportFilters()
    assert scheduler.pending == []


def test_reset_publishes_defaults_when_published_state_differs(scheduler):
    manager, seen = _manager(scheduler)
    manager.set_filter("status", "completed")
    scheduler.advance(0.3)

    manager.reset_filters()
    assert seen[-1] == ReportFilters()
    assert manager.debounced_filters == ReportFilters()


def test_date_range_accepts_pairs(scheduler):
    manager, _ = _manager(scheduler)
    filters = manager.set_filter("date_range", (date(2024, 1, 1), None))
    assert filters.date_range == DateRange(start=date(2024, 1, 1))


def test_unknown_filter_key_is_rejected(scheduler):
    manager, _ = _manager(scheduler)
    with pytest.raises(ValueError):
        manager.set_filter("colour", "red")


def test_flush_publishes_immediately(scheduler):
    manager, seen = _manager(scheduler)
    manager.set_filter("search", "pine")
    manager.flush()
    assert seen == [ReportFilters(search="pine")]
    scheduler.advance(1)
    assert len(seen) == 1
