"""Custom report layouts edited field by field."""
from __future__ import annotations

from itertools import count
from typing import Any

from reporting.application.fetcher import ReportFetcher
from reporting.core.aggregation import group_rows
from reporting.core.entities import coerce_kind, get_entity
from reporting.core.errors import PermanentQueryError
from reporting.core.query_builder import build_config_request, describe_sql
from reporting.core.schema import EntityDefinition, EntityKind, FilterDefinition, ReportConfig, ReportRequest
from reporting.domain import ReportPreview
from reporting.infrastructure import DataAPI


class ReportBuilder:
    """Owns a :class:`ReportConfig` and applies designer edits to it.

    Every edit replaces the config with a new validated snapshot.  Removing
    a chosen field also clears the grouping or sorting that referred to it,
    and switching entity starts from an empty layout.
    """

    def __init__(self, config: ReportConfig | None = None) -> None:
        self._config = config or ReportConfig()
        self._filter_ids = count(len(self._config.filters) + 1)

    @property
    def config(self) -> ReportConfig:
        return self._config

    @property
    def definition(self) -> EntityDefinition:
        return get_entity(self._config.entity)

    def _replace(self, **changes: Any) -> ReportConfig:
        data = self._config.model_dump()
        data.update(changes)
        self._config = ReportConfig.model_validate(data)
        return self._config

    def _require_field(self, name: str) -> str:
        if self.definition.field(name) is None:
            raise PermanentQueryError(f"{self._config.entity.value} has no field {name!r}")
        return name

    # ------------------------------------------------------------------
    # layout
    # ------------------------------------------------------------------
    def change_entity(self, entity: EntityKind | str) -> ReportConfig:
        kind = coerce_kind(entity)
        if kind is self._config.entity:
            return self._config
        return self._replace(entity=kind, selected_fields=(), filters=(), group_by=None, sort_by=None)

    def add_field(self, name: str) -> ReportConfig:
        self._require_field(name)
        if name in self._config.selected_fields:
            return self._config
        return self._replace(selected_fields=(*self._config.selected_fields, name))

    def remove_field(self, name: str) -> ReportConfig:
        if name not in self._config.selected_fields:
            return self._config
        return self._replace(
            selected_fields=tuple(item for item in self._config.selected_fields if item != name),
            group_by=None if self._config.group_by == name else self._config.group_by,
            sort_by=None if self._config.sort_by == name else self._config.sort_by,
        )

    def reorder_fields(self, names: list[str] | tuple[str, ...]) -> ReportConfig:
        if sorted(names) != sorted(self._config.selected_fields):
            raise ValueError("reordered fields must match the selected fields")
        return self._replace(selected_fields=tuple(names))

    def move_field(self, old_index: int, new_index: int) -> ReportConfig:
        fields = list(self._config.selected_fields)
        fields.insert(new_index, fields.pop(old_index))
        return self._replace(selected_fields=tuple(fields))

    # ------------------------------------------------------------------
    # conditions
    # ------------------------------------------------------------------
    def add_filter(self, field: str, operator: str = "equals", value: Any = "") -> FilterDefinition:
        self._require_field(field)
        item = FilterDefinition(id=f"filter-{next(self._filter_ids)}", field=field, operator=operator, value=value)
        self._replace(filters=(*self._config.filters, item))
        return item

    def remove_filter(self, filter_id: str) -> ReportConfig:
        return self._replace(filters=tuple(item for item in self._config.filters if item.id != filter_id))

    # ------------------------------------------------------------------
    # grouping, sorting, labels
    # ------------------------------------------------------------------
    def set_group_by(self, name: str | None) -> ReportConfig:
        return self._replace(group_by=None if name is None else self._require_field(name))

    def set_sort(self, name: str | None, direction: str | None = None) -> ReportConfig:
        changes: dict[str, Any] = {"sort_by": None if name is None else self._require_field(name)}
        if direction is not None:
            changes["sort_direction"] = direction
        return self._replace(**changes)

    def set_sort_direction(self, direction: str) -> ReportConfig:
        return self._replace(sort_direction=direction)

    def rename(self, name: str, description: str | None = None) -> ReportConfig:
        changes: dict[str, Any] = {"name": name}
        if description is not None:
            changes["description"] = description
        return self._replace(**changes)

    def set_chart_type(self, chart_type: str) -> ReportConfig:
        return self._replace(chart_type=chart_type)

    # ------------------------------------------------------------------
    # output
    # ------------------------------------------------------------------
    def request(self, *, limit: int | None = None, offset: int = 0) -> ReportRequest:
        return build_config_request(self._config, limit=limit, offset=offset)

    def sql(self) -> str:
        return describe_sql(self.request())

    async def preview(self, data_api: DataAPI, *, limit: int | None = None) -> ReportPreview:
        """Fetch the report rows, grouped when a group field is set."""

        return await preview_report(data_api, self._config, limit=limit)


async def preview_report(data_api: DataAPI, config: ReportConfig, *, limit: int | None = None) -> ReportPreview:
    request = build_config_request(config, limit=limit)
    rows = await ReportFetcher(data_api).fetch_once(request)
    groups = group_rows(request.entity, rows, config.group_by) if config.group_by else []
    return ReportPreview(request=request, sql=describe_sql(request), rows=rows, groups=groups)


__all__ = ["ReportBuilder", "preview_report"]
