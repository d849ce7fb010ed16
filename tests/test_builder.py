from __future__ import annotations

import jsonschema
import pytest

from stepflow import RetryPolicy, ScenarioDefinition, scenario
from stepflow.dsl.model import DEFAULT_TIMEOUT


def test_builder_is_immutable() -> None:
    base = scenario("base").step("one", lambda ctx: None)
    extended = base.step("two", lambda ctx: None)

    assert [s.name for s in base.build().steps] == ["one"]
    assert [s.name for s in extended.build().steps] == ["one", "two"]


def test_library_defaults_apply() -> None:
    definition = scenario("defaults").step("only", lambda ctx: None).build()

    options = definition.steps[0].options
    assert options.timeout == DEFAULT_TIMEOUT
    assert options.retry == RetryPolicy(max_attempts=1, backoff="linear", delay=1.0)


def test_step_options_override_scenario_defaults() -> None:
    definition = (
        scenario("layers")
        .step_options(timeout=5.0, retry={"max_attempts": 3, "backoff": "exponential"})
        .step("inherits", lambda ctx: None)
        .step("overrides", lambda ctx: None, timeout=1.0, retry=RetryPolicy(max_attempts=2))
        .build()
    )

    inherits, overrides = definition.steps
    assert inherits.options.timeout == 5.0
    assert inherits.options.retry.max_attempts == 3
    assert inherits.options.retry.backoff == "exponential"
    assert overrides.options.timeout == 1.0
    assert overrides.options.retry == RetryPolicy(max_attempts=2)


def test_retry_mapping_merges_over_scenario_retry() -> None:
    definition = (
        scenario("merged")
        .step_options(retry={"max_attempts": 3, "backoff": "exponential", "delay": 0.5})
        .step("partial", lambda ctx: None, retry={"max_attempts": 5})
        .step("capped", lambda ctx: None, retry={"max_delay": 2})
        .build()
    )

    partial, capped = definition.steps
    assert partial.options.retry == RetryPolicy(
        max_attempts=5, backoff="exponential", delay=0.5
    )
    assert capped.options.retry == RetryPolicy(
        max_attempts=3, backoff="exponential", delay=0.5, max_delay=2.0
    )


def test_scenario_retry_mapping_merges_over_library_defaults() -> None:
    definition = (
        scenario("layered")
        .step_options(retry={"backoff": "none"})
        .step_options(retry={"max_attempts": 4})
        .step("s", lambda ctx: None)
        .build()
    )

    assert definition.steps[0].options.retry == RetryPolicy(
        max_attempts=4, backoff="none", delay=1.0
    )


def test_step_options_apply_to_steps_declared_before_them() -> None:
    definition = (
        scenario("late-defaults")
        .step("early", lambda ctx: None)
        .step_options(timeout=2.0)
        .build()
    )

    assert definition.steps[0].options.timeout == 2.0


def test_definition_carries_metadata() -> None:
    teardown = lambda ctx: None  # noqa: E731
    definition = (
        scenario("meta", tags=["api"])
        .tags("smoke")
        .describe("checks the health endpoint")
        .resource("client", lambda ctx: object())
        .teardown(teardown)
        .continue_on_failure()
        .build()
    )

    assert isinstance(definition, ScenarioDefinition)
    assert definition.tags == frozenset({"api", "smoke"})
    assert definition.description == "checks the health endpoint"
    assert [r.name for r in definition.resources] == ["client"]
    assert definition.teardown == (teardown,)
    assert definition.continue_on_failure


def test_invalid_retry_mapping_raises_validation_error() -> None:
    with pytest.raises(jsonschema.ValidationError):
        scenario("bad").step("s", lambda ctx: None, retry={"max_attempts": 0})
    with pytest.raises(jsonschema.ValidationError):
        scenario("bad").step("s", lambda ctx: None, retry={"attempts": 3})


def test_non_positive_timeout_rejected() -> None:
    with pytest.raises(jsonschema.ValidationError):
        scenario("bad").step("s", lambda ctx: None, timeout=0)


def test_duplicate_resource_name_rejected() -> None:
    builder = scenario("dup").resource("db", lambda ctx: 1)
    with pytest.raises(ValueError, match="Duplicate resource"):
        builder.resource("db", lambda ctx: 2)


def test_empty_name_rejected() -> None:
    with pytest.raises(ValueError):
        scenario("").build()
