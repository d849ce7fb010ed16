from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Callable, TextIO

from ..events import (
    Event,
    RunEnd,
    RunStart,
    ScenarioEnd,
    ScenarioStart,
    StepEnd,
    StepRetry,
    StepStart,
)

_RESET = "\x1b[0m"


def _ansi(code: str) -> Callable[[str], str]:
    def paint(text: str) -> str:
        return f"\x1b[{code}m{text}{_RESET}"

    return paint


def _plain(text: str) -> str:
    return text


@dataclass(frozen=True, slots=True)
class Theme:
    success: Callable[[str], str]
    failure: Callable[[str], str]
    skip: Callable[[str], str]
    dim: Callable[[str], str]
    title: Callable[[str], str]
    info: Callable[[str], str]
    warning: Callable[[str], str]


DEFAULT_THEME = Theme(
    success=_ansi("32"),
    failure=_ansi("31"),
    skip=_ansi("33"),
    dim=_ansi("90"),
    title=_ansi("1"),
    info=_ansi("36"),
    warning=_ansi("33"),
)

NO_COLOR_THEME = Theme(
    success=_plain,
    failure=_plain,
    skip=_plain,
    dim=_plain,
    title=_plain,
    info=_plain,
    warning=_plain,
)


def format_error(error: BaseException | None) -> str:
    if error is None:
        return ""
    return f"{type(error).__name__}: {error}"


class Reporter:
    """Consume lifecycle events and render them to a text stream.

    Subclasses override the ``on_*`` hooks they care about.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        no_color: bool | None = None,
        theme: Theme | None = None,
    ) -> None:
        self._stream = stream if stream is not None else sys.stderr
        if no_color is None:
            no_color = "NO_COLOR" in os.environ
        self.theme = theme or (NO_COLOR_THEME if no_color else DEFAULT_THEME)
        self._handlers: dict[str, Callable[..., None]] = {
            RunStart.kind: self.on_run_start,
            ScenarioStart.kind: self.on_scenario_start,
            StepStart.kind: self.on_step_start,
            StepRetry.kind: self.on_step_retry,
            StepEnd.kind: self.on_step_end,
            ScenarioEnd.kind: self.on_scenario_end,
            RunEnd.kind: self.on_run_end,
        }

    def handle(self, event: Event) -> None:
        self._handlers[event.kind](event)

    def write(self, text: str) -> None:
        self._stream.write(text)

    def close(self) -> None:
        self._stream.flush()

    def on_run_start(self, event: RunStart) -> None:
        pass

    def on_scenario_start(self, event: ScenarioStart) -> None:
        pass

    def on_step_start(self, event: StepStart) -> None:
        pass

    def on_step_retry(self, event: StepRetry) -> None:
        pass

    def on_step_end(self, event: StepEnd) -> None:
        pass

    def on_scenario_end(self, event: ScenarioEnd) -> None:
        pass

    def on_run_end(self, event: RunEnd) -> None:
        pass
