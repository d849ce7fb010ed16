from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from .context import ExecutionContext
from .dsl.model import StepAction, StepDefinition
from .errors import (
    ScenarioCancelledError,
    SkipSignal,
    StepExecutionError,
    StepTimeoutError,
)
from .events import EventBus, StepRetry
from .results import StepResult, StepStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Outcome:
    value: Any = None
    error: BaseException | None = None


class AttemptThread(threading.Thread):
    """Run a single step attempt so the caller can stop waiting on it."""

    def __init__(
        self,
        action: StepAction,
        context: ExecutionContext,
        wake: threading.Event,
        *,
        name: str,
    ) -> None:
        super().__init__(daemon=True, name=name)
        self._action = action
        self._context = context
        self._wake = wake
        self.value: Any = None
        self.error: BaseException | None = None
        self.finished = False

    def run(self) -> None:
        try:
            self.value = self._action(self._context)
        except BaseException as exc:
            self.error = exc
        finally:
            self.finished = True
            self._wake.set()


class StepExecutor:
    """Execute one step with per-attempt timeout and retry/backoff."""

    def __init__(self, events: EventBus | None = None) -> None:
        self._events = events

    def execute(self, step: StepDefinition, context: ExecutionContext) -> StepResult:
        policy = step.options.retry
        token = context.token
        started = time.monotonic()
        last_error: BaseException | None = None
        attempts = 0

        for attempt in range(1, policy.max_attempts + 1):
            if token.cancelled:
                return self._cancelled(step, attempts, started, token.reason)
            attempts = attempt
            outcome = self._run_attempt(step, context, attempt)
            if outcome.error is None:
                return StepResult(
                    name=step.name,
                    status=StepStatus.PASSED,
                    attempts=attempt,
                    duration=time.monotonic() - started,
                    value=outcome.value,
                )
            last_error = outcome.error
            if isinstance(last_error, SkipSignal):
                return StepResult(
                    name=step.name,
                    status=StepStatus.SKIPPED,
                    attempts=attempt,
                    duration=time.monotonic() - started,
                    error=last_error,
                )
            if isinstance(last_error, ScenarioCancelledError):
                return self._cancelled(step, attempt, started, last_error.reason)
            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.warning(
                    "Step %s attempt %d/%d failed, retrying in %.3fs: %s",
                    step.name,
                    attempt,
                    policy.max_attempts,
                    delay,
                    last_error,
                )
                if self._events is not None:
                    self._events.emit(
                        StepRetry(
                            scenario=context.scenario,
                            step_name=step.name,
                            attempt=attempt,
                            delay=delay,
                            error=last_error,
                        )
                    )
                if token.wait(delay):
                    return self._cancelled(step, attempt, started, token.reason)

        return StepResult(
            name=step.name,
            status=StepStatus.FAILED,
            attempts=attempts,
            duration=time.monotonic() - started,
            error=last_error,
        )

    def _run_attempt(
        self, step: StepDefinition, context: ExecutionContext, attempt: int
    ) -> _Outcome:
        token = context.token
        timeout = step.options.timeout
        wake = threading.Event()
        handle = token.add_callback(wake.set)
        runner = AttemptThread(
            step.action,
            context,
            wake,
            name=f"{context.scenario}:{step.name}#{attempt}",
        )
        expires = time.monotonic() + timeout if timeout is not None else None
        timed_out = False
        try:
            runner.start()
            while not runner.finished and not token.cancelled:
                limit = expires - time.monotonic() if expires is not None else None
                if limit is not None and limit <= 0:
                    timed_out = True
                    break
                remaining = token.remaining()
                if remaining is not None and (limit is None or remaining < limit):
                    limit = remaining
                wake.wait(timeout=limit)
        finally:
            token.remove_callback(handle)

        if runner.finished:
            error = runner.error
            if error is None:
                return _Outcome(value=runner.value)
            if isinstance(error, (SkipSignal, ScenarioCancelledError)):
                return _Outcome(error=error)
            wrapped = StepExecutionError(step.name, attempt, error)
            wrapped.__cause__ = error
            return _Outcome(error=wrapped)

        # The attempt thread is abandoned; its eventual result is discarded.
        if timed_out and timeout is not None:
            logger.debug("Step %s attempt %d timed out after %.3fs", step.name, attempt, timeout)
            return _Outcome(error=StepTimeoutError(step.name, timeout, attempt))
        return _Outcome(error=ScenarioCancelledError(token.reason or "cancelled"))

    @staticmethod
    def _cancelled(
        step: StepDefinition, attempts: int, started: float, reason: str | None
    ) -> StepResult:
        return StepResult(
            name=step.name,
            status=StepStatus.CANCELLED,
            attempts=attempts,
            duration=time.monotonic() - started,
            error=ScenarioCancelledError(reason or "cancelled"),
        )
