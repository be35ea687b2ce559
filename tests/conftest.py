from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from reporting.core.schema import QuerySpec
from reporting.infrastructure import InMemoryDataAPI, reset_data_api


class _ManualHandle:
    def __init__(self, when: float, fn: Callable[[], None]) -> None:
        self.when = when
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when ``advance`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[_ManualHandle] = []

    def schedule(self, fn: Callable[[], None], delay: float) -> _ManualHandle:
        handle = _ManualHandle(self.now + delay, fn)
        self._timers.append(handle)
        return handle

    @property
    def pending(self) -> list[_ManualHandle]:
        return [timer for timer in self._timers if not timer.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        while True:
            due = [timer for timer in self._timers if not timer.cancelled and timer.when <= self.now]
            if not due:
                return
            timer = min(due, key=lambda item: item.when)
            self._timers.remove(timer)
            timer.fn()


class ControlledDataAPI:
    """Data API whose responses are released by the test."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, QuerySpec, asyncio.Future]] = []

    async def query(self, table: str, spec: QuerySpec) -> list[dict[str, Any]]:
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self.calls.append((table, spec, future))
        return await future

    async def count(self, table: str, spec: QuerySpec) -> int:
        return 0


class FlakyDataAPI(InMemoryDataAPI):
    """In-memory store that raises the queued errors before answering."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        super().__init__(tables)
        self.failures: list[Exception] = []
        self.attempts = 0

    async def query(self, table: str, spec: QuerySpec) -> list[dict[str, Any]]:
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)
        return await super().query(table, spec)


PROJECT_ROWS: list[dict[str, Any]] = [
    {
        "projectid": "PRJ-000001",
        "projectname": "Oak Street Duplex",
        "customername": "ABC Corp",
        "status": "active",
        "createdon": "2024-01-15",
        "total_budget": 100000,
        "current_expenses": 25000,
    },
    {
        "projectid": "PRJ-000002",
        "projectname": "Oakridge Clinic",
        "customername": "Valley Health",
        "status": "active",
        "createdon": "2024-02-10",
        "total_budget": 50000,
        "current_expenses": 50000,
    },
    {
        "projectid": "PRJ-000003",
        "projectname": "Harbor oak Remodel",
        "customername": "Taste of Italy",
        "status": "active",
        "createdon": "2023-12-01",
        "total_budget": 0,
        "current_expenses": 1000,
    },
    {
        "projectid": "PRJ-000004",
        "projectname": "Oak Library",
        "customername": "City of Springfield",
        "status": "completed",
        "createdon": "2024-03-01",
        "total_budget": 80000,
        "current_expenses": 79000,
    },
    {
        "projectid": "PRJ-000005",
        "projectname": "Pine Plaza",
        "customername": "ABC Corp",
        "status": "active",
        "createdon": "2024-01-20",
        "total_budget": 35000,
        "current_expenses": 34000,
    },
]

EMPLOYEE_ROWS: list[dict[str, Any]] = [
    {"first_name": "Ana", "last_name": "Lopez", "email": "ana@example.com", "role": "foreman", "status": "active", "hourly_rate": 42, "created_at": "2023-05-01"},
    {"first_name": "Ben", "last_name": "Oakes", "email": "ben@example.com", "role": "laborer", "status": "active", "hourly_rate": 28, "created_at": "2023-06-11"},
    {"first_name": "Cy", "last_name": "Park", "email": "cy@example.com", "role": "laborer", "status": "inactive", "hourly_rate": 30, "created_at": "2022-01-20"},
]


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def data_api() -> InMemoryDataAPI:
    return InMemoryDataAPI({"projects": PROJECT_ROWS, "employees": EMPLOYEE_ROWS})


@pytest.fixture(autouse=True)
def reset_state():
    reset_data_api()
    yield
    reset_data_api()
