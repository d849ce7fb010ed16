from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping

from .model import (
    ResourceDefinition,
    ResourceFactory,
    RetryPolicy,
    ScenarioDefinition,
    SetupHook,
    SkipCondition,
    StepAction,
    StepDefinition,
    StepOptions,
    TeardownHook,
)
from .schema import validate_step_options

_UNSET: Any = object()


@dataclass(frozen=True, slots=True)
class _PendingStep:
    name: str
    action: StepAction
    timeout: Any
    retry: RetryPolicy | dict[str, Any] | None


@dataclass(frozen=True, slots=True)
class ScenarioBuilder:
    """Immutable fluent builder; every call returns a new builder."""

    name: str
    _tags: frozenset[str] = frozenset()
    _skip: SkipCondition = None
    _step_options: StepOptions = StepOptions()
    _resources: tuple[ResourceDefinition, ...] = ()
    _setup: tuple[SetupHook, ...] = ()
    _steps: tuple[_PendingStep, ...] = ()
    _teardown: tuple[TeardownHook, ...] = ()
    _continue_on_failure: bool = False
    _description: str | None = None

    def tags(self, *tags: str) -> ScenarioBuilder:
        return replace(self, _tags=self._tags | frozenset(tags))

    def describe(self, description: str) -> ScenarioBuilder:
        return replace(self, _description=description)

    def skip(self, condition: SkipCondition = True) -> ScenarioBuilder:
        return replace(self, _skip=condition)

    def step_options(
        self,
        *,
        timeout: Any = _UNSET,
        retry: RetryPolicy | Mapping[str, Any] | None = None,
    ) -> ScenarioBuilder:
        current = self._step_options
        options = StepOptions(
            timeout=current.timeout if timeout is _UNSET else timeout,
            retry=_merge_retry(current.retry, retry),
        )
        return replace(self, _step_options=options)

    def resource(self, name: str, factory: ResourceFactory) -> ScenarioBuilder:
        if any(existing.name == name for existing in self._resources):
            msg = f"Duplicate resource name: {name}"
            raise ValueError(msg)
        return replace(
            self, _resources=self._resources + (ResourceDefinition(name, factory),)
        )

    def setup(self, hook: SetupHook) -> ScenarioBuilder:
        return replace(self, _setup=self._setup + (hook,))

    def step(
        self,
        name: str,
        action: StepAction,
        *,
        timeout: Any = _UNSET,
        retry: RetryPolicy | Mapping[str, Any] | None = None,
    ) -> ScenarioBuilder:
        if timeout is not _UNSET:
            validate_step_options({"timeout": timeout})
        if retry is not None and not isinstance(retry, RetryPolicy):
            retry = dict(retry)
            validate_step_options({"retry": retry})
        pending = _PendingStep(name=name, action=action, timeout=timeout, retry=retry)
        return replace(self, _steps=self._steps + (pending,))

    def teardown(self, hook: TeardownHook) -> ScenarioBuilder:
        return replace(self, _teardown=self._teardown + (hook,))

    def continue_on_failure(self, enabled: bool = True) -> ScenarioBuilder:
        return replace(self, _continue_on_failure=enabled)

    def build(self) -> ScenarioDefinition:
        defaults = self._step_options
        steps = tuple(
            StepDefinition(
                name=pending.name,
                action=pending.action,
                options=StepOptions(
                    timeout=defaults.timeout if pending.timeout is _UNSET else pending.timeout,
                    retry=_merge_retry(defaults.retry, pending.retry),
                ),
            )
            for pending in self._steps
        )
        return ScenarioDefinition(
            name=self.name,
            steps=steps,
            tags=self._tags,
            skip=self._skip,
            step_options=defaults,
            resources=self._resources,
            setup=self._setup,
            teardown=self._teardown,
            continue_on_failure=self._continue_on_failure,
            description=self._description,
        )


def scenario(
    name: str,
    *,
    tags: Iterable[str] = (),
    skip: SkipCondition = None,
) -> ScenarioBuilder:
    builder = ScenarioBuilder(name=name)
    if tags:
        builder = builder.tags(*tags)
    if skip is not None:
        builder = builder.skip(skip)
    return builder


def _merge_retry(
    base: RetryPolicy, retry: RetryPolicy | Mapping[str, Any] | None
) -> RetryPolicy:
    """A full policy replaces ``base``; a mapping overrides only its own keys."""

    if retry is None:
        return base
    if isinstance(retry, RetryPolicy):
        return retry
    return base.merged(retry)
