"""Scenario execution engine: retried, time-bounded steps with resource lifecycles."""

from .cancellation import CancellationToken
from .config import RunConfig, find_config_file, load_config
from .context import ExecutionContext
from .dsl import (
    ResourceDefinition,
    RetryPolicy,
    ScenarioBuilder,
    ScenarioDefinition,
    StepDefinition,
    StepOptions,
    scenario,
)
from .errors import (
    ResourceSetupError,
    ResourceTeardownError,
    RunnerFailureThresholdReached,
    ScenarioCancelledError,
    SkipSignal,
    StepExecutionError,
    StepflowError,
    StepTimeoutError,
)
from .events import (
    EventBus,
    QueuedReporter,
    RunEnd,
    RunStart,
    ScenarioEnd,
    ScenarioStart,
    StepEnd,
    StepRetry,
    StepStart,
)
from .log import configure_logging
from .reporters import (
    DotReporter,
    JsonReporter,
    ListReporter,
    Reporter,
    TapReporter,
    create_reporter,
)
from .resources import Acquired, ResourceManager
from .results import (
    RunResult,
    ScenarioResult,
    ScenarioStatus,
    StepResult,
    StepStatus,
    Summary,
)
from .scenario_executor import ScenarioExecutor, ScenarioState, TeardownPolicy
from .scheduler import RunOptions, Runner
from .selector import Selector, apply_selectors, parse_selector
from .step_executor import StepExecutor

__all__ = [
    "Acquired",
    "CancellationToken",
    "DotReporter",
    "EventBus",
    "ExecutionContext",
    "JsonReporter",
    "ListReporter",
    "QueuedReporter",
    "Reporter",
    "ResourceDefinition",
    "ResourceManager",
    "ResourceSetupError",
    "ResourceTeardownError",
    "RetryPolicy",
    "RunConfig",
    "RunEnd",
    "RunOptions",
    "RunResult",
    "RunStart",
    "Runner",
    "RunnerFailureThresholdReached",
    "ScenarioBuilder",
    "ScenarioCancelledError",
    "ScenarioDefinition",
    "ScenarioEnd",
    "ScenarioExecutor",
    "ScenarioResult",
    "ScenarioStart",
    "ScenarioState",
    "ScenarioStatus",
    "Selector",
    "SkipSignal",
    "StepDefinition",
    "StepEnd",
    "StepExecutionError",
    "StepExecutor",
    "StepOptions",
    "StepResult",
    "StepRetry",
    "StepStart",
    "StepStatus",
    "StepTimeoutError",
    "StepflowError",
    "Summary",
    "TapReporter",
    "TeardownPolicy",
    "apply_selectors",
    "configure_logging",
    "create_reporter",
    "find_config_file",
    "load_config",
    "parse_selector",
    "scenario",
]
