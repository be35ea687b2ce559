import asyncio

from reporting.core.schema import Predicate, QuerySpec
from reporting.infrastructure import InMemoryDataAPI

ROWS = [
    {"code": "A1_X", "name": "Oak"},
    {"code": "A12X", "name": "Pine"},
    {"code": "B1_X", "name": "Elm"},
]


def _codes(pattern: str) -> list[str]:
    api = InMemoryDataAPI({"items": ROWS})
    spec = QuerySpec(filters=(Predicate(column="code", op="ilike", value=pattern),))
    return [row["code"] for row in asyncio.run(api.query("items", spec))]


def test_ilike_underscore_matches_exactly_one_character():
    assert _codes("a1_x") == ["A1_X", "A12X"]
    assert _codes("a_x") == []


def test_ilike_percent_and_star_match_any_run():
    assert _codes("a%") == ["A1_X", "A12X"]
    assert _codes("*1*") == ["A1_X", "A12X", "B1_X"]


def test_ilike_escapes_regex_characters():
    api = InMemoryDataAPI({"items": [{"code": "a.b"}, {"code": "axb"}]})
    spec = QuerySpec(filters=(Predicate(column="code", op="ilike", value="a.b"),))
    assert asyncio.run(api.query("items", spec)) == [{"code": "a.b"}]
