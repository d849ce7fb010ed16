from __future__ import annotations

import pytest

from stepflow import ExecutionContext, ScenarioExecutor, ScenarioStatus, scenario


def test_store_written_in_one_step_is_visible_in_the_next() -> None:
    seen: list[object] = []

    def first(ctx: ExecutionContext) -> None:
        ctx.store["token"] = "abc"

    def second(ctx: ExecutionContext) -> None:
        seen.append(ctx.store.get("token"))

    definition = scenario("store").step("write", first).step("read", second).build()
    result = ScenarioExecutor().execute(definition)

    assert result.status is ScenarioStatus.PASSED
    assert seen == ["abc"]


def test_each_run_gets_a_fresh_context() -> None:
    seen: list[dict] = []

    def action(ctx: ExecutionContext) -> None:
        seen.append(dict(ctx.store))
        ctx.store["runs"] = ctx.store.get("runs", 0) + 1

    definition = scenario("fresh").step("count", action).build()
    executor = ScenarioExecutor()
    executor.execute(definition)
    executor.execute(definition)

    assert seen == [{}, {}]


def test_previous_results_follow_step_order() -> None:
    observed: list[tuple[int, int, object]] = []

    def record(value: object):
        def action(ctx: ExecutionContext) -> object:
            observed.append((ctx.index, len(ctx.results), ctx.previous))
            return value

        return action

    definition = (
        scenario("chain")
        .step("one", record(1))
        .step("two", record("two"))
        .step("three", record(None))
        .build()
    )
    ScenarioExecutor().execute(definition)

    assert observed == [(0, 0, None), (1, 1, 1), (2, 2, "two")]


def test_previous_as_checks_type() -> None:
    ctx = ExecutionContext(scenario="typed", results=[{"id": 1}])

    assert ctx.previous_as(dict) == {"id": 1}
    with pytest.raises(TypeError, match="expected list"):
        ctx.previous_as(list)


def test_unknown_resource_lookup_raises() -> None:
    ctx = ExecutionContext(scenario="r", resources={"db": object()})

    assert ctx.resource("db") is ctx.resources["db"]
    with pytest.raises(KeyError, match="Unknown resource: cache"):
        ctx.resource("cache")
