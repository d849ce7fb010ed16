from __future__ import annotations

from ..events import RunEnd, RunStart, ScenarioEnd, StepEnd
from ..results import ScenarioStatus, StepStatus
from .base import Reporter


class TapReporter(Reporter):
    """Test Anything Protocol (version 14) output, one test point per scenario."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._counter = 0
        self._failed_step: dict[str, StepEnd] = {}

    def on_run_start(self, event: RunStart) -> None:
        self.write("TAP version 14\n")
        self.write(f"1..{event.scenario_count}\n")

    def on_step_end(self, event: StepEnd) -> None:
        if event.status is StepStatus.FAILED and event.scenario not in self._failed_step:
            self._failed_step[event.scenario] = event

    def on_scenario_end(self, event: ScenarioEnd) -> None:
        self._counter += 1
        number = self._counter
        if event.status is ScenarioStatus.PASSED:
            self.write(f"ok {number} - {event.name}\n")
            return
        if event.status in (ScenarioStatus.SKIPPED, ScenarioStatus.CANCELLED):
            reason = event.reason or event.status.value
            self.write(f"ok {number} - {event.name} # SKIP {reason}\n")
            return

        self.write(f"not ok {number} - {event.name}\n")
        self.write("  ---\n")
        step = self._failed_step.get(event.name)
        if step is not None:
            self.write(f"  step: {_yaml_str(step.step_name)}\n")
            self.write(f"  attempts: {step.attempts}\n")
            self.write(f"  duration: {step.duration:.3f}\n")
            error = step.error
        else:
            self.write(f"  duration: {event.duration:.3f}\n")
            error = event.error
        if error is not None:
            self.write(f"  error: {type(error).__name__}\n")
            self.write(f"  message: {_yaml_str(str(error))}\n")
        self.write("  ...\n")

    def on_run_end(self, event: RunEnd) -> None:
        summary = event.summary
        self.write(
            f"# pass {summary.passed}\n# fail {summary.failed}\n# skip {summary.skipped}\n"
        )


def _yaml_str(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'
