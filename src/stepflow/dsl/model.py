from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Literal, Mapping, Union

from .schema import validate_step_options

if TYPE_CHECKING:
    from ..context import ExecutionContext

Backoff = Literal["none", "linear", "exponential"]

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_DELAY = 1.0

StepAction = Callable[["ExecutionContext"], Any]
ResourceFactory = Callable[["ExecutionContext"], Any]
SetupHook = Callable[["ExecutionContext"], Any]
TeardownHook = Callable[["ExecutionContext"], Any]
SkipCondition = Union[bool, str, Callable[[], Union[bool, str, None]], None]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 1
    backoff: Backoff = "linear"
    delay: float = DEFAULT_RETRY_DELAY
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {self.max_attempts}"
            raise ValueError(msg)
        if self.backoff not in ("none", "linear", "exponential"):
            msg = f"Unsupported backoff kind: {self.backoff}"
            raise ValueError(msg)
        if self.delay < 0:
            msg = "delay must not be negative"
            raise ValueError(msg)

    def delay_for(self, attempt: int) -> float:
        """Delay to apply after failed ``attempt`` (1-based) before the next one."""

        if self.backoff == "none":
            value = 0.0
        elif self.backoff == "linear":
            value = self.delay * attempt
        else:
            value = self.delay * 2 ** (attempt - 1)
        if self.max_delay is not None:
            value = min(value, self.max_delay)
        return value

    def merged(self, payload: Mapping[str, Any]) -> RetryPolicy:
        """Copy of this policy with only the keys present in ``payload`` replaced."""

        validate_step_options({"retry": dict(payload)})
        changes = dict(payload)
        if "delay" in changes:
            changes["delay"] = float(changes["delay"])
        if changes.get("max_delay") is not None:
            changes["max_delay"] = float(changes["max_delay"])
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class StepOptions:
    timeout: float | None = DEFAULT_TIMEOUT
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            msg = f"timeout must be positive, got {self.timeout}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class StepDefinition:
    name: str
    action: StepAction
    options: StepOptions = field(default_factory=StepOptions)


@dataclass(frozen=True, slots=True)
class ResourceDefinition:
    name: str
    factory: ResourceFactory


@dataclass(frozen=True, slots=True)
class ScenarioDefinition:
    """Immutable description of one scenario, as produced by the builder."""

    name: str
    steps: tuple[StepDefinition, ...] = ()
    tags: frozenset[str] = frozenset()
    skip: SkipCondition = None
    step_options: StepOptions = field(default_factory=StepOptions)
    resources: tuple[ResourceDefinition, ...] = ()
    setup: tuple[SetupHook, ...] = ()
    teardown: tuple[TeardownHook, ...] = ()
    continue_on_failure: bool = False
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            msg = "Scenario name must not be empty"
            raise ValueError(msg)
