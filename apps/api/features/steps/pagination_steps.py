# features/steps/pagination_steps.py
from behave import when, then


@when('I request pages {first:d} to {last:d} with page size {size:d} sorted by "{sort}"')
def step_request_pages(ctx, first, last, size, sort):
    """Request consecutive pages for the same search."""
    ctx.pages = []
    for number in range(first, last + 1):
        payload = {
            "filters": {"sort_by": sort},
            "page": {"number": number, "size": size},
        }
        response = ctx.client.post(ctx.search_url, json=payload)
        assert response.status_code == 200
        ctx.pages.append(response.json()["hits"])


@then('the page sizes are {sizes}')
def step_page_sizes(ctx, sizes):
    """Verify the number of items on each page."""
    expected = [int(s) for s in sizes.split(",")]
    assert [len(p["items"]) for p in ctx.pages] == expected


@then('has_more is {flags}')
def step_has_more(ctx, flags):
    """Verify has_more for each page."""
    expected = [f.strip() == "true" for f in flags.split(",")]
    assert [p["has_more"] for p in ctx.pages] == expected


@then('no building appears on two pages')
def step_disjoint_pages(ctx):
    """Verify pages do not share building IDs."""
    seen = set()
    for page in ctx.pages:
        ids = {item["id"] for item in page["items"]}
        assert seen.isdisjoint(ids), "Pages should not share building IDs"
        seen |= ids


@then('all {total:d} buildings were returned')
def step_all_returned(ctx, total):
    """Verify paging covered the whole result set."""
    ids = {item["id"] for page in ctx.pages for item in page["items"]}
    assert len(ids) == total
    assert all(page["total"] == total for page in ctx.pages)
