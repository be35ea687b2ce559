"""Reporting session bound to one report view."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from reporting.application.fetcher import MAX_ATTEMPTS, ReportFetcher
from reporting.application.filters import DEFAULT_DEBOUNCE_SECONDS, FilterStateManager
from reporting.core.entities import coerce_kind, get_entity
from reporting.core.errors import PermanentQueryError
from reporting.core.query_builder import build_request
from reporting.core.scheduling import AsyncioScheduler, Scheduler
from reporting.core.schema import EntityDefinition, EntityKind, ReportFilters, ReportRequest
from reporting.core.settings import Settings
from reporting.domain import ReportResult
from reporting.infrastructure import DataAPI, get_data_api


@dataclass(slots=True)
class ReportContext:
    """Collaborators a session needs, passed in explicitly."""

    data_api: DataAPI
    scheduler: Scheduler
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    page_size: int | None = None
    max_attempts: int = MAX_ATTEMPTS

    @classmethod
    def default(cls, data_api: DataAPI, **kwargs: Any) -> "ReportContext":
        return cls(data_api=data_api, scheduler=AsyncioScheduler(), **kwargs)

    @classmethod
    def from_settings(cls, settings: Settings, data_api: DataAPI | None = None) -> "ReportContext":
        """Context for the configured debounce window and page size."""

        return cls(
            data_api=data_api if data_api is not None else get_data_api(),
            scheduler=AsyncioScheduler(),
            debounce_seconds=settings.debounce_seconds,
            page_size=settings.page_size,
        )


class ReportSession:
    """Couples filter state to report fetches for the presentation layer.

    Entity changes reset the filters and fetch straight away; filter edits
    fetch once the debounce window has passed without further edits.
    """

    def __init__(self, context: ReportContext, entity: EntityKind | str = EntityKind.PROJECTS) -> None:
        self._context = context
        self._entity = coerce_kind(entity)
        self._filters = FilterStateManager(context.scheduler, delay=context.debounce_seconds)
        self._fetcher = ReportFetcher(context.data_api, max_attempts=context.max_attempts)
        self._filters.subscribe(self._on_filters_settled)

    # ------------------------------------------------------------------
    # presentation boundary
    # ------------------------------------------------------------------
    @property
    def selected_entity(self) -> EntityKind:
        return self._entity

    @property
    def entity(self) -> EntityDefinition:
        return get_entity(self._entity)

    @property
    def filters(self) -> ReportFilters:
        return self._filters.filters

    @property
    def debounced_filters(self) -> ReportFilters:
        return self._filters.debounced_filters

    @property
    def result(self) -> ReportResult:
        return self._fetcher.result

    @property
    def data(self) -> list[dict[str, Any]]:
        return self._fetcher.data

    @property
    def loading(self) -> bool:
        return self._fetcher.loading

    @property
    def error(self) -> str | None:
        return self._fetcher.error

    @property
    def fetcher(self) -> ReportFetcher:
        return self._fetcher

    def start(self) -> asyncio.Task[None] | None:
        """Issue the initial fetch for the selected entity."""

        return self._issue()

    def handle_entity_change(self, entity: EntityKind | str) -> asyncio.Task[None] | None:
        kind = coerce_kind(entity)
        if kind is self._entity:
            return None
        self._entity = kind
        self._filters.reset_filters(notify=False)
        return self._issue()

    def handle_filter_change(self, key: str, value: Any) -> ReportFilters:
        return self._filters.set_filter(key, value)

    def reset_filters(self) -> ReportFilters:
        return self._filters.reset_filters()

    def refresh(self) -> asyncio.Task[None] | None:
        """Fetch the current debounced request again, even if already loaded."""

        request = self._build()
        if request is None:
            return None
        return self._fetcher.issue(request, force=True)

    async def wait(self) -> ReportResult:
        return await self._fetcher.wait()

    async def aclose(self) -> None:
        self._filters.close()
        await self._fetcher.aclose()

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _on_filters_settled(self, _filters: ReportFilters) -> None:
        self._issue()

    def _build(self) -> ReportRequest | None:
        try:
            return build_request(self._entity, self._filters.debounced_filters, limit=self._context.page_size)
        except PermanentQueryError as exc:
            self._fetcher.report_error(self._entity, exc)
            return None

    def _issue(self) -> asyncio.Task[None] | None:
        request = self._build()
        if request is None:
            return None
        return self._fetcher.issue(request)


__all__ = ["ReportContext", "ReportSession"]
