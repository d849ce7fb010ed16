from __future__ import annotations

from collections import defaultdict

from ..events import RunEnd, ScenarioEnd, StepEnd, StepRetry
from ..results import ScenarioStatus, StepStatus
from .base import Reporter, format_error


class ListReporter(Reporter):
    """One block per scenario listing each step with attempts and duration.

    Step lines are buffered per scenario so concurrent scenarios do not
    interleave in the output.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._pending: dict[str, list[str]] = defaultdict(list)
        self._with_step_failure: set[str] = set()

    def _icon(self, status: StepStatus | ScenarioStatus) -> str:
        if status.value == "passed":
            return self.theme.success("✓")
        if status.value == "failed":
            return self.theme.failure("✗")
        return self.theme.skip("⊝")

    def on_step_retry(self, event: StepRetry) -> None:
        self._pending[event.scenario].append(
            "    "
            + self.theme.warning(
                f"↻ {event.step_name} attempt {event.attempt} failed, "
                f"retrying in {event.delay:.3f}s"
            )
        )

    def on_step_end(self, event: StepEnd) -> None:
        lines = self._pending[event.scenario]
        if event.status in (StepStatus.PASSED, StepStatus.FAILED):
            noun = "attempt" if event.attempts == 1 else "attempts"
            detail = self.theme.dim(f"[{event.attempts} {noun}] ({event.duration:.3f}s)")
        else:
            detail = self.theme.dim(f"({event.status.value})")
        lines.append(f"  {self._icon(event.status)} {event.step_name} {detail}")
        if event.status is StepStatus.FAILED:
            self._with_step_failure.add(event.scenario)
            lines.append("      " + self.theme.failure(format_error(event.error)))

    def on_scenario_end(self, event: ScenarioEnd) -> None:
        lines = self._pending.pop(event.name, [])
        header = f"{self._icon(event.status)} {event.name} {self.theme.dim(f'({event.duration:.3f}s)')}"
        if event.reason and event.status in (ScenarioStatus.SKIPPED, ScenarioStatus.CANCELLED):
            header += " " + self.theme.dim(f"# {event.reason}")
        self.write(header + "\n")
        for line in lines:
            self.write(line + "\n")
        failed_in_step = event.name in self._with_step_failure
        self._with_step_failure.discard(event.name)
        if event.status is ScenarioStatus.FAILED and event.error is not None and not failed_in_step:
            self.write("      " + self.theme.failure(format_error(event.error)) + "\n")

    def on_run_end(self, event: RunEnd) -> None:
        summary = event.summary
        self.write(
            "\n"
            + self.theme.title(
                f"{summary.passed} passed, {summary.failed} failed, "
                f"{summary.skipped} skipped ({summary.duration:.3f}s)"
            )
            + "\n"
        )
