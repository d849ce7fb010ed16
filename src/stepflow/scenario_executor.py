from __future__ import annotations

import logging
import time
from enum import Enum

from .cancellation import CancellationToken
from .context import ExecutionContext
from .dsl.model import ScenarioDefinition, SkipCondition, StepDefinition
from .errors import (
    ResourceSetupError,
    ResourceTeardownError,
    ScenarioCancelledError,
    SkipSignal,
)
from .events import EventBus, ScenarioEnd, ScenarioStart, StepEnd, StepStart
from .resources import ResourceManager, unwrap_cleanup
from .results import ScenarioResult, ScenarioStatus, StepResult, StepStatus
from .step_executor import StepExecutor

logger = logging.getLogger(__name__)


class ScenarioState(str, Enum):
    PENDING = "pending"
    SETUP = "setup"
    RUNNING = "running"
    TEARDOWN = "teardown"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[ScenarioState, frozenset[ScenarioState]] = {
    ScenarioState.PENDING: frozenset(
        {
            ScenarioState.SETUP,
            ScenarioState.SKIPPED,
            ScenarioState.FAILED,
            ScenarioState.CANCELLED,
        }
    ),
    ScenarioState.SETUP: frozenset({ScenarioState.RUNNING, ScenarioState.TEARDOWN}),
    ScenarioState.RUNNING: frozenset({ScenarioState.TEARDOWN}),
    ScenarioState.TEARDOWN: frozenset(
        {
            ScenarioState.PASSED,
            ScenarioState.FAILED,
            ScenarioState.SKIPPED,
            ScenarioState.CANCELLED,
        }
    ),
}


class TeardownPolicy(str, Enum):
    """Whether teardown errors can flip an otherwise passed scenario."""

    REPORT = "report"
    FAIL = "fail"


class _Lifecycle:
    def __init__(self, scenario: str) -> None:
        self.scenario = scenario
        self.state = ScenarioState.PENDING

    def advance(self, target: ScenarioState) -> None:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if target not in allowed:
            msg = f"Illegal transition {self.state.value} -> {target.value}"
            raise RuntimeError(msg)
        logger.debug("Scenario %s: %s -> %s", self.scenario, self.state.value, target.value)
        self.state = target


def evaluate_skip(condition: SkipCondition) -> str | None:
    """Return the skip reason, or None when the scenario should run."""

    if condition is None or condition is False:
        return None
    if condition is True:
        return "Scenario marked as skipped"
    if isinstance(condition, str):
        return condition
    try:
        outcome = condition()
    except SkipSignal as signal:
        return signal.reason
    if outcome is None or outcome is False:
        return None
    if outcome is True:
        return "Scenario marked as skipped"
    return str(outcome)


class ScenarioExecutor:
    """Drive one scenario through setup, steps and teardown."""

    def __init__(
        self,
        events: EventBus | None = None,
        *,
        step_executor: StepExecutor | None = None,
        teardown_policy: TeardownPolicy = TeardownPolicy.REPORT,
    ) -> None:
        self._events = events
        self._steps = step_executor or StepExecutor(events)
        self._teardown_policy = teardown_policy

    def execute(
        self,
        definition: ScenarioDefinition,
        token: CancellationToken | None = None,
    ) -> ScenarioResult:
        token = token or CancellationToken()
        started = time.monotonic()
        self._emit(ScenarioStart(name=definition.name, tags=definition.tags))
        try:
            return self._execute(definition, token, started)
        except BaseException as exc:
            logger.error("Scenario %s aborted: %r", definition.name, exc)
            self._emit(
                ScenarioEnd(
                    name=definition.name,
                    status=ScenarioStatus.FAILED,
                    duration=time.monotonic() - started,
                    error=exc,
                )
            )
            raise

    def _execute(
        self,
        definition: ScenarioDefinition,
        token: CancellationToken,
        started: float,
    ) -> ScenarioResult:
        lifecycle = _Lifecycle(definition.name)
        try:
            reason = evaluate_skip(definition.skip)
        except Exception as exc:
            lifecycle.advance(ScenarioState.FAILED)
            return self._finish(
                definition,
                ScenarioResult(
                    name=definition.name,
                    status=ScenarioStatus.FAILED,
                    tags=definition.tags,
                    error=exc,
                ),
                started,
            )
        if reason is not None:
            lifecycle.advance(ScenarioState.SKIPPED)
            logger.info("Scenario %s skipped: %s", definition.name, reason)
            return self._finish(
                definition,
                ScenarioResult(
                    name=definition.name,
                    status=ScenarioStatus.SKIPPED,
                    tags=definition.tags,
                    skip_reason=reason,
                ),
                started,
            )
        if token.cancelled:
            lifecycle.advance(ScenarioState.CANCELLED)
            return self._finish(
                definition,
                cancelled_result(definition, token.reason),
                started,
            )

        context = ExecutionContext(scenario=definition.name, token=token)
        resources = ResourceManager()
        setup_error: BaseException | None = None
        skip_reason: str | None = None
        steps: list[StepResult] = []

        lifecycle.advance(ScenarioState.SETUP)
        try:
            try:
                self._setup(definition, context, resources)
            except SkipSignal as signal:
                skip_reason = signal.reason
            except (ResourceSetupError, ScenarioCancelledError) as exc:
                setup_error = exc

            if setup_error is None and skip_reason is None:
                lifecycle.advance(ScenarioState.RUNNING)
                steps = self._run_steps(definition, context)
            else:
                not_run = (
                    StepStatus.CANCELLED
                    if isinstance(setup_error, ScenarioCancelledError)
                    else StepStatus.SKIPPED
                )
                steps = [
                    self._not_started(definition, step, not_run, None)
                    for step in definition.steps
                ]
        finally:
            lifecycle.advance(ScenarioState.TEARDOWN)
            teardown_errors = self._teardown(definition, context, resources)

        status, error = self._resolve_status(steps, setup_error, skip_reason)
        if status is ScenarioStatus.SKIPPED and skip_reason is None:
            skip_reason = next(
                (s.error.reason for s in steps if isinstance(s.error, SkipSignal)),
                None,
            )
        if (
            status is ScenarioStatus.PASSED
            and teardown_errors
            and self._teardown_policy is TeardownPolicy.FAIL
        ):
            status, error = ScenarioStatus.FAILED, teardown_errors[0]
        lifecycle.advance(ScenarioState(status.value))

        if status is ScenarioStatus.FAILED:
            logger.info("Scenario %s failed: %s", definition.name, error)
        result = ScenarioResult(
            name=definition.name,
            status=status,
            tags=definition.tags,
            steps=steps,
            error=error,
            teardown_errors=teardown_errors,
            skip_reason=skip_reason
            or (token.reason if status is ScenarioStatus.CANCELLED else None),
        )
        return self._finish(definition, result, started)

    def _setup(
        self,
        definition: ScenarioDefinition,
        context: ExecutionContext,
        resources: ResourceManager,
    ) -> None:
        for resource in definition.resources:
            context.token.raise_if_cancelled()
            context.resources[resource.name] = resources.acquire(
                resource.name, resource.factory, context
            )
        for position, hook in enumerate(definition.setup, start=1):
            context.token.raise_if_cancelled()
            label = f"setup#{position}"
            try:
                produced = hook(context)
                _, cleanup = unwrap_cleanup(produced)
            except SkipSignal:
                raise
            except Exception as exc:
                raise ResourceSetupError(label, exc) from exc
            if cleanup is None and callable(produced):
                cleanup = produced
            if cleanup is not None:
                resources.register(label, cleanup)

    def _run_steps(
        self, definition: ScenarioDefinition, context: ExecutionContext
    ) -> list[StepResult]:
        results: list[StepResult] = []
        halted: StepStatus | None = None
        halt_reason: BaseException | None = None

        for index, step in enumerate(definition.steps):
            if halted is None and context.token.cancelled:
                halted = StepStatus.CANCELLED
                halt_reason = ScenarioCancelledError(context.token.reason or "cancelled")
            if halted is not None:
                results.append(self._not_started(definition, step, halted, halt_reason))
                continue

            context.index = index
            self._emit(StepStart(scenario=definition.name, step_name=step.name, index=index))
            result = self._steps.execute(step, context)
            context.results.append(result.value if result.passed else None)
            results.append(result)
            self._emit(
                StepEnd(
                    scenario=definition.name,
                    step_name=step.name,
                    status=result.status,
                    attempts=result.attempts,
                    duration=result.duration,
                    error=result.error,
                )
            )

            if result.status is StepStatus.CANCELLED:
                halted, halt_reason = StepStatus.CANCELLED, result.error
            elif result.status is StepStatus.SKIPPED:
                halted, halt_reason = StepStatus.SKIPPED, None
            elif result.status is StepStatus.FAILED and not definition.continue_on_failure:
                halted, halt_reason = StepStatus.SKIPPED, None
        return results

    def _teardown(
        self,
        definition: ScenarioDefinition,
        context: ExecutionContext,
        resources: ResourceManager,
    ) -> list[BaseException]:
        errors: list[BaseException] = []
        try:
            for position, hook in enumerate(definition.teardown, start=1):
                try:
                    hook(context)
                except Exception as exc:
                    logger.warning(
                        "Teardown hook %d of %s failed: %s", position, definition.name, exc
                    )
                    errors.append(ResourceTeardownError(f"teardown#{position}", exc))
        finally:
            errors.extend(resources.release_all())
        return errors

    @staticmethod
    def _resolve_status(
        steps: list[StepResult],
        setup_error: BaseException | None,
        skip_reason: str | None,
    ) -> tuple[ScenarioStatus, BaseException | None]:
        if isinstance(setup_error, ScenarioCancelledError):
            return ScenarioStatus.CANCELLED, setup_error
        if setup_error is not None:
            return ScenarioStatus.FAILED, setup_error
        failed = next((s for s in steps if s.status is StepStatus.FAILED), None)
        if failed is not None:
            return ScenarioStatus.FAILED, failed.error
        cancelled = next((s for s in steps if s.status is StepStatus.CANCELLED), None)
        if cancelled is not None:
            return ScenarioStatus.CANCELLED, cancelled.error
        if skip_reason is not None:
            return ScenarioStatus.SKIPPED, None
        skipped = next(
            (s for s in steps if s.status is StepStatus.SKIPPED and s.error is not None),
            None,
        )
        if skipped is not None:
            return ScenarioStatus.SKIPPED, None
        return ScenarioStatus.PASSED, None

    def _not_started(
        self,
        definition: ScenarioDefinition,
        step: StepDefinition,
        status: StepStatus,
        error: BaseException | None,
    ) -> StepResult:
        result = StepResult(name=step.name, status=status, error=error)
        self._emit(
            StepEnd(
                scenario=definition.name,
                step_name=step.name,
                status=status,
                attempts=0,
                duration=0.0,
                error=error,
            )
        )
        return result

    def _finish(
        self, definition: ScenarioDefinition, result: ScenarioResult, started: float
    ) -> ScenarioResult:
        result.duration = time.monotonic() - started
        self._emit(
            ScenarioEnd(
                name=definition.name,
                status=result.status,
                duration=result.duration,
                error=result.error,
                reason=result.skip_reason,
            )
        )
        return result

    def _emit(self, event) -> None:
        if self._events is not None:
            self._events.emit(event)


def cancelled_result(definition: ScenarioDefinition, reason: str | None) -> ScenarioResult:
    return ScenarioResult(
        name=definition.name,
        status=ScenarioStatus.CANCELLED,
        tags=definition.tags,
        steps=[StepResult(name=step.name, status=StepStatus.CANCELLED) for step in definition.steps],
        error=ScenarioCancelledError(reason or "cancelled"),
        skip_reason=reason or "cancelled",
    )
