from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Sequence

from .cancellation import CancellationToken
from .dsl.model import ScenarioDefinition
from .errors import RunnerFailureThresholdReached
from .events import EventBus, RunEnd, RunStart, ScenarioEnd, ScenarioStart
from .results import RunResult, ScenarioResult, ScenarioStatus, StepResult, StepStatus, Summary
from .scenario_executor import ScenarioExecutor, TeardownPolicy, cancelled_result

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunOptions:
    max_concurrency: int = 1
    max_failures: int = 0
    timeout: float | None = None
    cancellation: CancellationToken | None = None
    grace_period: float | None = None
    teardown_policy: TeardownPolicy = TeardownPolicy.REPORT

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            msg = f"max_concurrency must be >= 1, got {self.max_concurrency}"
            raise ValueError(msg)
        if self.max_failures < 0:
            msg = f"max_failures must be >= 0, got {self.max_failures}"
            raise ValueError(msg)


class Runner:
    """Run many scenarios with bounded concurrency and failure short-circuiting.

    The queue, in-flight count, failure count and result slots are only touched
    while holding ``self._condition``. Worker threads report completion through
    ``complete``; only the thread calling :meth:`run` dequeues. Events for
    scenarios drained from the queue are emitted after the lock is released.
    """

    def __init__(self, events: EventBus | None = None) -> None:
        self._events = events or EventBus()
        self._condition = threading.Condition()

    @property
    def events(self) -> EventBus:
        return self._events

    def run(
        self,
        definitions: Sequence[ScenarioDefinition],
        options: RunOptions | None = None,
    ) -> RunResult:
        options = options or RunOptions()
        started = time.monotonic()
        token = CancellationToken.with_timeout(options.timeout, parent=options.cancellation)
        executor = ScenarioExecutor(self._events, teardown_policy=options.teardown_policy)

        queue: deque[int] = deque(range(len(definitions)))
        slots: list[ScenarioResult | None] = [None] * len(definitions)
        in_flight: set[int] = set()
        failures = 0

        def complete(index: int, result: ScenarioResult) -> None:
            nonlocal failures
            with self._condition:
                in_flight.discard(index)
                if slots[index] is not None:
                    # Already recorded as cancelled after the grace period.
                    return
                slots[index] = result
                if result.status is ScenarioStatus.FAILED:
                    failures += 1
                self._condition.notify_all()

        def worker(index: int) -> None:
            definition = definitions[index]
            result = ScenarioResult(
                name=definition.name, status=ScenarioStatus.FAILED, tags=definition.tags
            )
            try:
                result = executor.execute(definition, token)
            except BaseException as exc:
                logger.exception("Scenario %s crashed", definition.name)
                result.error = exc
            finally:
                complete(index, result)

        def wake() -> None:
            with self._condition:
                self._condition.notify_all()

        self._events.emit(RunStart(scenario_count=len(definitions)))
        handle = token.add_callback(wake)
        cancelled_at: float | None = None
        try:
            while True:
                not_started: list[tuple[ScenarioDefinition, ScenarioResult]] = []
                finished = False
                with self._condition:
                    if token.cancelled:
                        if cancelled_at is None:
                            cancelled_at = time.monotonic()
                            logger.info("Run cancelled: %s", token.reason)
                        while queue:
                            index = queue.popleft()
                            result = cancelled_result(definitions[index], token.reason)
                            slots[index] = result
                            not_started.append((definitions[index], result))
                    elif options.max_failures and failures >= options.max_failures:
                        if queue:
                            logger.info(
                                "Failure threshold %d reached, skipping %d queued scenarios",
                                options.max_failures,
                                len(queue),
                            )
                        while queue:
                            index = queue.popleft()
                            result = threshold_result(definitions[index], options.max_failures)
                            slots[index] = result
                            not_started.append((definitions[index], result))
                    else:
                        while queue and len(in_flight) < options.max_concurrency:
                            index = queue.popleft()
                            in_flight.add(index)
                            threading.Thread(
                                target=worker,
                                args=(index,),
                                daemon=True,
                                name=f"scenario-{index}",
                            ).start()

                    if not queue and not in_flight:
                        finished = True
                    elif not not_started:
                        if cancelled_at is None:
                            self._condition.wait(timeout=token.remaining())
                        elif options.grace_period is None:
                            self._condition.wait()
                        else:
                            remaining = options.grace_period - (time.monotonic() - cancelled_at)
                            if remaining <= 0:
                                self._abandon(definitions, slots, in_flight, token.reason)
                                finished = True
                            else:
                                self._condition.wait(timeout=remaining)

                for definition, result in not_started:
                    self._announce(definition, result)
                if finished:
                    break
        finally:
            token.remove_callback(handle)
            token.detach()

        results = [slot for slot in slots if slot is not None]
        summary = Summary.from_results(results, time.monotonic() - started)
        self._events.emit(RunEnd(summary=summary))
        return RunResult(summary=summary, scenarios=results)

    def _announce(self, definition: ScenarioDefinition, result: ScenarioResult) -> None:
        self._events.emit(ScenarioStart(name=definition.name, tags=definition.tags))
        self._events.emit(
            ScenarioEnd(
                name=definition.name,
                status=result.status,
                duration=0.0,
                error=result.error,
                reason=result.skip_reason,
            )
        )

    def _abandon(
        self,
        definitions: Sequence[ScenarioDefinition],
        slots: list[ScenarioResult | None],
        in_flight: set[int],
        reason: str | None,
    ) -> None:
        for index in sorted(in_flight):
            logger.warning(
                "Scenario %s still running after grace period, abandoning",
                definitions[index].name,
            )
            slots[index] = cancelled_result(definitions[index], reason)
        in_flight.clear()


def threshold_result(definition: ScenarioDefinition, max_failures: int) -> ScenarioResult:
    error = RunnerFailureThresholdReached(max_failures)
    return ScenarioResult(
        name=definition.name,
        status=ScenarioStatus.SKIPPED,
        tags=definition.tags,
        steps=[StepResult(name=step.name, status=StepStatus.SKIPPED) for step in definition.steps],
        error=error,
        skip_reason=str(error),
    )
