"""Filter state with a debounced view for downstream fetches."""
from __future__ import annotations

from datetime import date
from typing import Any, Callable

from reporting.core.scheduling import CancellableTimer, Scheduler
from reporting.core.schema import DateRange, ReportFilters

DEFAULT_DEBOUNCE_SECONDS = 0.3
FILTER_KEYS = frozenset(ReportFilters.model_fields)

FiltersListener = Callable[[ReportFilters], None]


def _coerce_date_range(value: Any) -> DateRange | None:
    if value is None or isinstance(value, DateRange):
        return value
    if isinstance(value, dict):
        return DateRange.model_validate(value)
    if isinstance(value, (tuple, list)) and len(value) == 2:
        start, end = value
        return DateRange(start=start, end=end)
    if isinstance(value, date):
        return DateRange(start=value, end=value)
    raise ValueError(f"cannot interpret {value!r} as a date range")


class FilterStateManager:
    """Owns the current :class:`ReportFilters` snapshot.

    ``filters`` changes on every edit.  ``debounced_filters`` only follows
    once no edit has arrived for ``delay`` seconds, so a burst of edits is
    observed downstream as a single update carrying the final snapshot.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        initial: ReportFilters | None = None,
    ) -> None:
        self._timer = CancellableTimer(scheduler, delay)
        self._filters = initial or ReportFilters()
        self._debounced = self._filters
        self._listeners: list[FiltersListener] = []

    @property
    def filters(self) -> ReportFilters:
        return self._filters

    @property
    def debounced_filters(self) -> ReportFilters:
        return self._debounced

    @property
    def pending(self) -> bool:
        return self._timer.pending

    def subscribe(self, listener: FiltersListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_filter(self, key: str, value: Any) -> ReportFilters:
        if key not in FILTER_KEYS:
            raise ValueError(f"unknown filter: {key}")
        if key == "date_range":
            value = _coerce_date_range(value)

        data = self._filters.model_dump()
        data[key] = value
        self._filters = ReportFilters.model_validate(data)
        self._timer.schedule(self._publish)
        return self._filters

    def reset_filters(self, *, notify: bool = True) -> ReportFilters:
        """Restore the defaults and drop any pending debounced update."""

        self._timer.cancel()
        self._filters = ReportFilters()
        changed = self._debounced != self._filters
        self._debounced = self._filters
        if notify and changed:
            self._emit()
        return self._filters

    def flush(self) -> None:
        """Publish the current snapshot now instead of waiting for the timer."""

        self._timer.cancel()
        self._publish()

    def close(self) -> None:
        self._timer.cancel()
        self._listeners.clear()

    def _publish(self) -> None:
        if self._filters == self._debounced:
            return
        self._debounced = self._filters
        self._emit()

    def _emit(self) -> None:
        snapshot = self._debounced
        for listener in list(self._listeners):
            listener(snapshot)


__all__ = ["DEFAULT_DEBOUNCE_SECONDS", "FILTER_KEYS", "FilterStateManager"]
