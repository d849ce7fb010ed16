from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import ClassVar, Iterable, Protocol

from .results import ScenarioStatus, StepStatus, Summary

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunStart:
    kind: ClassVar[str] = "run_start"
    scenario_count: int


@dataclass(frozen=True, slots=True)
class ScenarioStart:
    kind: ClassVar[str] = "scenario_start"
    name: str
    tags: frozenset[str]


@dataclass(frozen=True, slots=True)
class StepStart:
    kind: ClassVar[str] = "step_start"
    scenario: str
    step_name: str
    index: int


@dataclass(frozen=True, slots=True)
class StepRetry:
    kind: ClassVar[str] = "step_retry"
    scenario: str
    step_name: str
    attempt: int
    delay: float
    error: BaseException


@dataclass(frozen=True, slots=True)
class StepEnd:
    kind: ClassVar[str] = "step_end"
    scenario: str
    step_name: str
    status: StepStatus
    attempts: int
    duration: float
    error: BaseException | None = None


@dataclass(frozen=True, slots=True)
class ScenarioEnd:
    kind: ClassVar[str] = "scenario_end"
    name: str
    status: ScenarioStatus
    duration: float
    error: BaseException | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class RunEnd:
    kind: ClassVar[str] = "run_end"
    summary: Summary


Event = RunStart | ScenarioStart | StepStart | StepRetry | StepEnd | ScenarioEnd | RunEnd


class EventSink(Protocol):
    def handle(self, event: Event) -> None: ...

    def close(self) -> None: ...


class EventBus:
    """Fan events out to sinks; calls into sinks never overlap."""

    def __init__(self, sinks: Iterable[EventSink] = ()) -> None:
        self._sinks = list(sinks)
        self._lock = threading.Lock()

    def subscribe(self, sink: EventSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def emit(self, event: Event) -> None:
        with self._lock:
            for sink in self._sinks:
                try:
                    sink.handle(event)
                except Exception:
                    logger.exception("Reporter %r failed on %s", sink, event.kind)

    def close(self) -> None:
        with self._lock:
            for sink in self._sinks:
                sink.close()


class QueuedReporter(threading.Thread):
    """Background thread that drains queued events into a slow sink."""

    def __init__(
        self,
        sink: EventSink,
        *,
        maxsize: int = 10_000,
        put_timeout: float = 0.1,
    ) -> None:
        super().__init__(daemon=True, name="stepflow-reporter")
        self._sink = sink
        self._queue: queue.Queue[Event | None] = queue.Queue(maxsize=maxsize)
        self._put_timeout = put_timeout
        self._dropped = 0
        self.start()

    @property
    def dropped(self) -> int:
        return self._dropped

    def handle(self, event: Event) -> None:
        try:
            self._queue.put(event, timeout=self._put_timeout)
        except queue.Full:
            self._dropped += 1
            logger.warning("Reporter queue full, dropped %s event", event.kind)

    def run(self) -> None:
        while True:
            event = self._queue.get()
            if event is None:
                break
            try:
                self._sink.handle(event)
            except Exception:
                logger.exception("Reporter %r failed on %s", self._sink, event.kind)

    def close(self) -> None:
        self._queue.put(None)
        self.join()
        self._sink.close()
