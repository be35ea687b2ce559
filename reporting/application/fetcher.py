"""Execute report requests and expose their visible state."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from reporting.core.derived import process_entity_data
from reporting.core.errors import DataAPIError, PermanentQueryError, TransientDataError
from reporting.core.observability import report_context
from reporting.core.query_builder import to_query
from reporting.core.schema import EntityKind, ReportRequest
from reporting.domain import ReportResult
from reporting.infrastructure import DataAPI

logger = logging.getLogger(__name__)

# one automatic retry after the first failure
MAX_ATTEMPTS = 2

ResultListener = Callable[[ReportResult], None]


class ReportFetcher:
    """Runs report requests against a :class:`DataAPI`.

    Every issued request gets a new generation number.  Only the task
    holding the latest generation may commit its outcome, so a request
    superseded while in flight is allowed to finish but its rows or error
    are dropped.
    """

    def __init__(
        self,
        data_api: DataAPI,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = 0.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._api = data_api
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._result = ReportResult()
        self._generation = 0
        self._inflight: ReportRequest | None = None
        self._task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._listeners: list[ResultListener] = []

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------
    @property
    def result(self) -> ReportResult:
        return self._result

    @property
    def data(self) -> list[dict[str, Any]]:
        return self._result.rows

    @property
    def loading(self) -> bool:
        return self._result.is_loading

    @property
    def error(self) -> str | None:
        return self._result.error

    def subscribe(self, listener: ResultListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, result: ReportResult) -> None:
        self._result = result
        for listener in list(self._listeners):
            listener(result)

    # ------------------------------------------------------------------
    # fetching
    # ------------------------------------------------------------------
    async def fetch_once(self, request: ReportRequest) -> list[dict[str, Any]]:
        """Run ``request`` with the retry policy and return processed rows.

        Transient failures are retried until ``max_attempts`` is reached;
        permanent query errors are raised immediately.
        """

        spec = to_query(request)
        attempt = 0
        with report_context(request.entity.value):
            while True:
                attempt += 1
                try:
                    rows = await self._api.query(request.table, spec)
                except TransientDataError as exc:
                    logger.warning(
                        "Fetching %s failed (attempt %d/%d): %s",
                        request.entity.value,
                        attempt,
                        self._max_attempts,
                        exc,
                        extra={"entity": request.entity.value, "attempt": attempt, "table": request.table},
                    )
                    if attempt >= self._max_attempts:
                        raise
                    if self._retry_delay:
                        await asyncio.sleep(self._retry_delay)
                    continue
                except PermanentQueryError as exc:
                    logger.error(
                        "Query for %s rejected: %s",
                        request.entity.value,
                        exc,
                        extra={"entity": request.entity.value, "attempt": attempt, "table": request.table},
                    )
                    raise
                return process_entity_data(request.entity, rows)

    def issue(self, request: ReportRequest, *, force: bool = False) -> asyncio.Task[None] | None:
        """Start loading ``request`` and supersede whatever was in flight.

        Returns the running task, or ``None`` when ``request`` is already the
        committed successful result and ``force`` is not set.
        """

        if request == self._inflight and self._task is not None and not self._task.done():
            return self._task
        if not force and request == self._result.request and self._result.status == "success":
            return None

        self._generation += 1
        self._inflight = request
        self._commit(ReportResult.loading(request))
        task = asyncio.get_running_loop().create_task(self._run(request, self._generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._task = task
        return task

    def report_error(self, entity: EntityKind, exc: Exception) -> None:
        """Surface a failure that happened before a request could be built."""

        self._generation += 1
        self._inflight = None
        with report_context(entity.value):
            logger.error("Cannot build %s report: %s", entity.value, exc, extra={"entity": entity.value})
        self._commit(ReportResult.failure(None, str(exc)))

    async def load(self, request: ReportRequest) -> ReportResult:
        task = self.issue(request)
        if task is not None:
            await task
        return self._result

    async def wait(self) -> ReportResult:
        """Wait until the latest issued request has settled."""

        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)
        return self._result

    async def aclose(self) -> None:
        """Cancel every running fetch, superseded ones included."""

        self._generation += 1
        self._inflight = None
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()
        self._listeners.clear()

    async def _run(self, request: ReportRequest, generation: int) -> None:
        try:
            rows = await self.fetch_once(request)
        except DataAPIError as exc:
            outcome = ReportResult.failure(request, str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure fetching %s", request.entity.value, extra={"entity": request.entity.value})
            outcome = ReportResult.failure(request, f"unexpected error: {exc}")
        else:
            outcome = ReportResult.success(request, rows)

        if generation != self._generation:
            logger.debug("Discarding superseded %s result", request.entity.value, extra={"entity": request.entity.value})
            return
        self._inflight = None
        self._commit(outcome)


__all__ = ["MAX_ATTEMPTS", "ReportFetcher"]
