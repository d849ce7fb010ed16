from __future__ import annotations

from ..events import RunEnd, ScenarioEnd, StepEnd
from ..results import ScenarioStatus, StepStatus
from .base import Reporter, format_error


class DotReporter(Reporter):
    """One character per scenario: ``.`` passed, ``F`` failed, ``S`` skipped."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._failed_steps: dict[str, list[StepEnd]] = {}
        self._failed: list[ScenarioEnd] = []
        self._skipped: list[ScenarioEnd] = []

    def on_step_end(self, event: StepEnd) -> None:
        if event.status is StepStatus.FAILED:
            self._failed_steps.setdefault(event.scenario, []).append(event)

    def on_scenario_end(self, event: ScenarioEnd) -> None:
        if event.status is ScenarioStatus.PASSED:
            self.write(self.theme.success("."))
        elif event.status is ScenarioStatus.FAILED:
            self._failed.append(event)
            self.write(self.theme.failure("F"))
        else:
            self._skipped.append(event)
            self.write(self.theme.skip("S"))

    def on_run_end(self, event: RunEnd) -> None:
        summary = event.summary
        self.write("\n\n")
        self.write(
            f"{summary.passed} scenarios passed, {summary.failed} scenarios failed, "
            f"{summary.skipped} scenarios skipped ({summary.duration:.3f}s)\n"
        )
        if self._failed:
            self.write("\n" + self.theme.title("Failed Tests") + "\n")
            for scenario in self._failed:
                steps = self._failed_steps.get(scenario.name, [])
                if not steps:
                    self.write(
                        f"  {self.theme.failure('✗')} {scenario.name} "
                        f"{self.theme.dim(format_error(scenario.error))}\n"
                    )
                for step in steps:
                    self.write(
                        f"  {self.theme.failure('✗')} {scenario.name} "
                        f"{self.theme.dim('>')} {step.step_name}\n"
                    )
        if self._skipped:
            self.write("\n" + self.theme.title("Skipped Tests") + "\n")
            for scenario in self._skipped:
                reason = scenario.reason or "Scenario marked as skipped"
                self.write(
                    f"  {self.theme.skip('⊝')} {scenario.name} {self.theme.dim(f'# {reason}')}\n"
                )
