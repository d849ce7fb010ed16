from __future__ import annotations

import threading

import pytest

from stepflow import EventBus


class RecordingSink:
    """Collects every emitted event in arrival order."""

    def __init__(self) -> None:
        self.events: list = []
        self.closed = False
        self._lock = threading.Lock()

    def handle(self, event) -> None:
        with self._lock:
            self.events.append(event)

    def close(self) -> None:
        self.closed = True

    def kinds(self, scenario: str | None = None) -> list[str]:
        return [
            event.kind
            for event in self.events
            if scenario is None or _scenario_of(event) == scenario
        ]

    def of_kind(self, kind: str) -> list:
        return [event for event in self.events if event.kind == kind]


def _scenario_of(event) -> str | None:
    if hasattr(event, "scenario"):
        return event.scenario
    if event.kind in ("scenario_start", "scenario_end"):
        return event.name
    return None


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def bus(sink: RecordingSink) -> EventBus:
    return EventBus([sink])
