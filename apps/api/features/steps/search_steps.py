# features/steps/search_steps.py
import ast
import json
import parse
from typing import Any, Dict
from behave import given, register_type, when, then
from sqlalchemy import and_, select

from archsearch.db.schema import building_reviews


def _parse_literal(s: str):
    s = s.strip()
    if s == "" or s.lower() == "null":
        return None
    # accept JSON or Python literal
    try:
        return json.loads(s)
    except ValueError:
        try:
            return ast.literal_eval(s)
        except (ValueError, SyntaxError):
            return s


@parse.with_pattern(r'"[^"]*"(?:\s*,\s*"[^"]*")*')
def _parse_names(s: str):
    """Convert a comma separated list of quoted names to a list of strings."""
    return [part.strip().strip('"') for part in s.split('",')]

register_type(Names=_parse_names)


def _build_payload_from_table(table) -> Dict[str, Any]:
    q: str = ""
    filters: Dict[str, Any] = {}
    page: Dict[str, Any] = {}
    for row in table:
        key = row["key"].strip()
        val_parsed = _parse_literal(row["value"])

        if key == "q":
            q = val_parsed or ""
        elif key.startswith("page."):
            page[key.split(".", 1)[1]] = val_parsed
        else:
            # FilterState field passthrough
            filters[key] = val_parsed
    payload: Dict[str, Any] = {"filters": filters}
    if q:
        payload["q"] = q
    if page:
        payload["page"] = page
    return payload


def _items(ctx):
    return ctx.last_response.json()["hits"]["items"]


# ---------------- Background ----------------
@given('an architecture catalogue with buildings, reviews and accessibility tags loaded') # type: ignore[no-untyped-def]
def step_seeded(ctx):
    # environment.py already seeded the in-memory DB
    assert ctx.client is not None

@given('the search endpoint is available at "{path}"') # type: ignore[no-untyped-def]
def step_endpoint(ctx, path):
    ctx.search_url = path

# ---------------- Happy paths ----------------
@when('I search with') # type: ignore[no-untyped-def]
def step_search_with(ctx):
    payload = _build_payload_from_table(ctx.table)
    ctx.last_payload = payload
    ctx.last_response = ctx.client.post(ctx.search_url, json=payload)
    assert ctx.last_response.status_code in (200, 400, 422)

@when('I open the search link "{query_string}"') # type: ignore[no-untyped-def]
def step_open_link(ctx, query_string):
    ctx.last_response = ctx.client.get(f"{ctx.search_url}{query_string}")
    assert ctx.last_response.status_code == 200

@then('I receive {count:d} hits out of {total:d}') # type: ignore[no-untyped-def]
def step_hits_and_total(ctx, count, total):
    data = ctx.last_response.json()
    assert len(data["hits"]["items"]) == count
    assert data["hits"]["total"] == total

@then('hits are sorted by rating desc then name') # type: ignore[no-untyped-def]
def step_sorted_rating(ctx):
    keys = [(it["rating"] is None, -(it["rating"] or 0), it["name"]) for it in _items(ctx)]
    assert keys == sorted(keys), "hits not sorted by rating desc then name"

@then('the hit names are {names:Names}') # type: ignore[no-untyped-def]
def step_hit_names(ctx, names):
    assert [it["name"] for it in _items(ctx)] == names

@then('every hit has accessibility tags {tags}') # type: ignore[no-untyped-def]
def step_every_hit_tags(ctx, tags):
    required = set(_parse_literal(tags))
    items = _items(ctx)
    assert items, "expected at least one hit"
    for it in items:
        assert required <= set(it["accessibility"]), f"{it['id']} lacks {required}"

@then('no hit is "{building_id}"') # type: ignore[no-untyped-def]
def step_no_hit(ctx, building_id):
    assert building_id not in {it["id"] for it in _items(ctx)}

@then('the hits are exactly the buildings with an audio guide') # type: ignore[no-untyped-def]
def step_audio_hits(ctx):
    r = building_reviews.c
    with ctx.Session() as S:
        expected = set(S.execute(
            select(r.building_id).where(and_(r.audio_url.isnot(None), r.audio_url != "")).distinct()
        ).scalars())
    assert {it["id"] for it in _items(ctx)} == expected
