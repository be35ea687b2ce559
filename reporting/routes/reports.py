from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, Response

from reporting.application import ReportFetcher, preview_report
from reporting.core.aggregation import summarise_rows
from reporting.core.entities import get_entity, list_entities
from reporting.core.errors import PermanentQueryError, TransientDataError, UnknownEntityError
from reporting.core.query_builder import build_config_request, build_request, describe_sql, to_query
from reporting.core.schema import DateRange, ReportConfig, ReportFilters, ReportRequest
from reporting.exporters.report_csv import render_report_csv
from reporting.infrastructure import get_data_api

router = APIRouter(prefix="/reports", tags=["reports"])


@contextmanager
def _data_errors() -> Iterator[None]:
    try:
        yield
    except TransientDataError as exc:
        raise HTTPException(status_code=502, detail=f"data API unavailable: {exc}") from exc
    except PermanentQueryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def report_request(
    request: Request,
    entity: str,
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    role: str | None = Query(default=None),
    expense_type: str | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=5000),
    offset: int = Query(default=0, ge=0),
    order_by: str | None = Query(default=None),
    descending: bool = Query(default=True),
) -> ReportRequest:
    """Build the report request described by the query string."""

    filters = ReportFilters(
        search=search or "",
        status=status or "all",
        role=role,
        expense_type=expense_type,
        date_range=DateRange(start=start, end=end) if start or end else None,
    )
    if limit is None:
        settings = getattr(request.app.state, "settings", None)
        limit = getattr(settings, "page_size", None)

    try:
        return build_request(
            entity,
            filters,
            order_by=order_by,
            descending=descending,
            limit=limit,
            offset=offset,
        )
    except UnknownEntityError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except PermanentQueryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


async def _fetch_rows(report: ReportRequest) -> list[dict]:
    fetcher = ReportFetcher(get_data_api())
    with _data_errors():
        return await fetcher.fetch_once(report)


@router.get("/entities")
async def list_report_entities() -> dict:
    items = [
        {
            "kind": definition.kind.value,
            "display_name": definition.display_name,
            "icon": definition.icon,
            "fields": len(definition.fields),
        }
        for definition in list_entities()
    ]
    return {"items": items}


@router.get("/entities/{entity}")
async def get_report_entity(entity: str) -> dict:
    try:
        definition = get_entity(entity)
    except UnknownEntityError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return definition.model_dump(mode="json")


@router.post("/builder/sql")
async def builder_sql(config: ReportConfig) -> dict:
    try:
        report = build_config_request(config)
    except PermanentQueryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"entity": report.entity.value, "sql": describe_sql(report)}


@router.post("/builder/preview")
async def builder_preview(
    request: Request,
    config: ReportConfig,
    limit: int | None = Query(default=None, ge=1, le=5000),
) -> dict:
    if limit is None:
        limit = getattr(getattr(request.app.state, "settings", None), "page_size", None)
    with _data_errors():
        preview = await preview_report(get_data_api(), config, limit=limit)
    return {
        "entity": preview.request.entity.value,
        "sql": preview.sql,
        "items": preview.rows,
        "groups": [group.model_dump(mode="json") for group in preview.groups],
        "request": preview.request.model_dump(mode="json"),
    }


@router.get("/{entity}")
async def get_report(report: ReportRequest = Depends(report_request)) -> dict:
    rows = await _fetch_rows(report)
    with _data_errors():
        total = await get_data_api().count(report.table, to_query(report))
    summary = summarise_rows(report.entity, rows)
    return {
        "entity": report.entity.value,
        "items": rows,
        "total": total,
        "summary": summary.model_dump(mode="json"),
        "request": report.model_dump(mode="json"),
    }


@router.get("/{entity}/sql")
async def get_report_sql(report: ReportRequest = Depends(report_request)) -> dict:
    return {"entity": report.entity.value, "sql": describe_sql(report)}


@router.get("/{entity}/export.csv")
async def export_report(report: ReportRequest = Depends(report_request)) -> Response:
    rows = await _fetch_rows(report)
    filename = f"{report.entity.value}-report.csv"
    return PlainTextResponse(
        render_report_csv(report.entity, rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
