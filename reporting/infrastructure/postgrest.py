"""Client for a PostgREST / Supabase REST endpoint."""
from __future__ import annotations

from typing import Any

import httpx

from reporting.core.errors import PermanentQueryError, TransientDataError
from reporting.core.schema import Predicate, PredicateValue, QuerySpec, SearchPredicate

_RESERVED = set(',()"\\')


def _literal(value: PredicateValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(value: str) -> str:
    """Quote values that would otherwise break PostgREST's filter grammar."""

    if not any(char in _RESERVED for char in value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _render_predicate(predicate: Predicate) -> tuple[str, str]:
    if predicate.op == "in":
        options = predicate.value if isinstance(predicate.value, tuple) else (predicate.value,)
        return predicate.column, "in.(" + ",".join(_quote(_literal(option)) for option in options) + ")"
    if predicate.op == "ilike":
        return predicate.column, "ilike." + _literal(predicate.value).replace("%", "*")
    return predicate.column, f"{predicate.op}.{_literal(predicate.value)}"


def _render_search(predicate: SearchPredicate) -> tuple[str, str]:
    pattern = _quote(f"*{predicate.term}*")
    clauses = [f"{column}.ilike.{pattern}" for column in predicate.columns]
    return "or", "(" + ",".join(clauses) + ")"


def render_params(spec: QuerySpec, *, paged: bool = True) -> list[tuple[str, str]]:
    """Translate ``spec`` into PostgREST query parameters."""

    params: list[tuple[str, str]] = [("select", ",".join(spec.select))]
    for predicate in spec.filters:
        if isinstance(predicate, SearchPredicate):
            params.append(_render_search(predicate))
        else:
            params.append(_render_predicate(predicate))
    if spec.order is not None:
        column, descending = spec.order
        params.append(("order", f"{column}.{'desc' if descending else 'asc'}"))
    if paged:
        if spec.limit is not None:
            params.append(("limit", str(spec.limit)))
        if spec.offset:
            params.append(("offset", str(spec.offset)))
    return params


class PostgrestDataAPI:
    """Row queries against ``{base_url}/rest/v1/{table}``."""

    RETRYABLE_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        schema: str | None = None,
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must include scheme and host")

        self._rest_url = base_url.rstrip("/") + "/rest/v1"
        self._api_key = api_key
        self._access_token = access_token or api_key
        self._schema = schema
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _headers(self, *, count: bool = False) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }
        if self._schema:
            headers["Accept-Profile"] = self._schema
        if count:
            headers["Prefer"] = "count=exact"
        return headers

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error") or payload.get("hint")
            if message:
                return str(message)
        return response.text.strip() or response.reason_phrase

    async def _send(self, method: str, table: str, params: list[tuple[str, str]], *, count: bool = False) -> httpx.Response:
        url = f"{self._rest_url}/{table}"
        try:
            response = await self._client.request(method, url, params=params, headers=self._headers(count=count))
        except httpx.TimeoutException as exc:
            raise TransientDataError(f"timed out querying {table}") from exc
        except httpx.TransportError as exc:
            raise TransientDataError(f"could not reach data API for {table}: {exc}") from exc

        if response.status_code in self.RETRYABLE_STATUS:
            raise TransientDataError(self._error_message(response), status_code=response.status_code)
        if response.is_error:
            raise PermanentQueryError(self._error_message(response), status_code=response.status_code)
        return response

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def query(self, table: str, spec: QuerySpec) -> list[dict[str, Any]]:
        response = await self._send("GET", table, render_params(spec))
        try:
            payload = response.json()
        except ValueError as exc:
            raise PermanentQueryError(f"data API returned invalid JSON for {table}") from exc
        if not isinstance(payload, list):
            raise PermanentQueryError(f"data API returned {type(payload).__name__} instead of rows for {table}")
        return [row for row in payload if isinstance(row, dict)]

    async def count(self, table: str, spec: QuerySpec) -> int:
        response = await self._send("HEAD", table, render_params(spec, paged=False), count=True)
        content_range = response.headers.get("content-range", "")
        _, _, total = content_range.partition("/")
        try:
            return int(total)
        except ValueError as exc:
            raise PermanentQueryError(f"data API did not report a row count for {table}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["PostgrestDataAPI", "render_params"]
