# features/steps/session_steps.py
import asyncio

import httpx
from behave import given, when, then

from archsearch.core.geo import FixedLocationProvider
from archsearch.main import app
from archsearch.services.api_backend import ApiSearchBackend
from archsearch.services.orchestrator import SearchOrchestrator


def _run_session(ctx, scenario):
    """Run `scenario(orchestrator)` against the in-process API and keep the orchestrator."""
    async def main():
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
            async with SearchOrchestrator(ApiSearchBackend(http), search_delay=0.01,
                                          suggest_delay=0.005) as orch:
                await scenario(orch)
                return orch
    ctx.session = asyncio.run(main())


@given('a search session located at {lat:g}, {lon:g} with a {radius:g} km radius')
def step_located_session(ctx, lat, lon, radius):
    async def prepare(orch):
        assert await orch.locate(FixedLocationProvider(lat, lon))
        orch.update_filters(max_distance_km=radius)
    ctx.prepare = prepare


@given('a search session with an empty query')
def step_empty_session(ctx):
    async def prepare(orch):
        orch.update_query("")
    ctx.prepare = prepare


@when('the session settles')
def step_settle(ctx):
    async def scenario(orch):
        await ctx.prepare(orch)
        await orch.wait_idle()
    _run_session(ctx, scenario)


@when('the session settles and I load more {times:d} times')
def step_settle_and_load(ctx, times):
    ctx.buffer_sizes = []

    async def scenario(orch):
        await ctx.prepare(orch)
        await orch.wait_idle()
        ctx.buffer_sizes.append(len(orch.results))
        for _ in range(times):
            assert await orch.load_more()
            ctx.buffer_sizes.append(len(orch.results))
    _run_session(ctx, scenario)


@then('"{name}" is among the session results')
def step_in_results(ctx, name):
    assert name in [r.name for r in ctx.session.results]


@then('"{name}" is not among the session results')
def step_not_in_results(ctx, name):
    assert name not in [r.name for r in ctx.session.results]


@then('the session buffer grew {sizes}')
def step_buffer_sizes(ctx, sizes):
    assert ctx.buffer_sizes == [int(s) for s in sizes.split(",")]


@then('the session has no more results')
def step_no_more(ctx):
    assert ctx.session.has_more is False
