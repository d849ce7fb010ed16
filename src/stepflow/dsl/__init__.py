from __future__ import annotations

from .builder import ScenarioBuilder, scenario
from .model import (
    ResourceDefinition,
    RetryPolicy,
    ScenarioDefinition,
    StepDefinition,
    StepOptions,
)
from .schema import (
    RUN_CONFIG_SCHEMA,
    STEP_OPTIONS_SCHEMA,
    validate_run_config,
    validate_step_options,
)

__all__ = [
    "ResourceDefinition",
    "RetryPolicy",
    "RUN_CONFIG_SCHEMA",
    "STEP_OPTIONS_SCHEMA",
    "ScenarioBuilder",
    "ScenarioDefinition",
    "StepDefinition",
    "StepOptions",
    "scenario",
    "validate_run_config",
    "validate_step_options",
]
