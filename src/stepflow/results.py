from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence


class StepStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class ScenarioStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class StepResult:
    name: str
    status: StepStatus
    attempts: int = 0
    duration: float = 0.0
    value: Any = None
    error: BaseException | None = None

    @property
    def passed(self) -> bool:
        return self.status is StepStatus.PASSED


@dataclass(slots=True)
class ScenarioResult:
    name: str
    status: ScenarioStatus
    tags: frozenset[str] = frozenset()
    steps: list[StepResult] = field(default_factory=list)
    duration: float = 0.0
    error: BaseException | None = None
    teardown_errors: list[BaseException] = field(default_factory=list)
    skip_reason: str | None = None


@dataclass(frozen=True, slots=True)
class Summary:
    total: int
    passed: int
    failed: int
    skipped: int
    duration: float
    cancelled: int = 0

    @classmethod
    def from_results(cls, results: Sequence[ScenarioResult], duration: float) -> Summary:
        passed = sum(1 for r in results if r.status is ScenarioStatus.PASSED)
        failed = sum(1 for r in results if r.status is ScenarioStatus.FAILED)
        cancelled = sum(1 for r in results if r.status is ScenarioStatus.CANCELLED)
        total = len(results)
        # Cancelled scenarios are reported inside ``skipped``.
        return cls(
            total=total,
            passed=passed,
            failed=failed,
            skipped=total - passed - failed,
            duration=duration,
            cancelled=cancelled,
        )


@dataclass(slots=True)
class RunResult:
    summary: Summary
    scenarios: list[ScenarioResult]

    @property
    def ok(self) -> bool:
        return self.summary.failed == 0
