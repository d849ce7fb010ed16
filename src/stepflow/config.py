from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence, TextIO

from .cancellation import CancellationToken
from .dsl.model import ScenarioDefinition
from .dsl.schema import validate_run_config
from .log import configure_logging
from .reporters import Reporter, create_reporter
from .scenario_executor import TeardownPolicy
from .scheduler import RunOptions
from .selector import apply_selectors

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("stepflow.json", ".stepflow.json")


@dataclass(slots=True)
class RunConfig:
    reporter: str = "list"
    selectors: list[str] = field(default_factory=list)
    max_concurrency: int = 1
    max_failures: int = 0
    timeout: float | None = None
    grace_period: float | None = None
    teardown_policy: TeardownPolicy = TeardownPolicy.REPORT
    verbosity: str = "normal"
    no_color: bool | None = None
    source: Path | None = None

    def to_run_options(self, cancellation: CancellationToken | None = None) -> RunOptions:
        return RunOptions(
            max_concurrency=self.max_concurrency,
            max_failures=self.max_failures,
            timeout=self.timeout or None,
            cancellation=cancellation,
            grace_period=self.grace_period,
            teardown_policy=self.teardown_policy,
        )

    def create_reporter(self, stream: TextIO | None = None) -> Reporter:
        return create_reporter(self.reporter, stream, no_color=self.no_color)

    def select(self, definitions: Sequence[ScenarioDefinition]) -> list[ScenarioDefinition]:
        return apply_selectors(definitions, self.selectors)

    def configure_logging(self, handler: logging.Handler | None = None) -> logging.Logger:
        return configure_logging(self.verbosity, handler)


def find_config_file(start: Path, *, parent_lookup: bool = False) -> Path | None:
    current = start.resolve()
    while True:
        for file_name in CONFIG_FILE_NAMES:
            candidate = current / file_name
            if candidate.is_file():
                logger.debug("Found config file %s", candidate)
                return candidate
        if not parent_lookup or current.parent == current:
            return None
        current = current.parent


def load_config(source: Path | dict[str, Any]) -> RunConfig:
    if isinstance(source, Path):
        data = json.loads(source.read_text(encoding="utf-8"))
        path: Path | None = source
    else:
        data = source
        path = None
    validate_run_config(data)

    timeout = data.get("timeout")
    grace = data.get("gracePeriod")
    return RunConfig(
        reporter=data.get("reporter", "list"),
        selectors=list(data.get("selectors", [])),
        max_concurrency=int(data.get("maxConcurrency", 1)),
        max_failures=int(data.get("maxFailures", 0)),
        timeout=float(timeout) if timeout is not None else None,
        grace_period=float(grace) if grace is not None else None,
        teardown_policy=TeardownPolicy(data.get("teardownPolicy", "report")),
        verbosity=data.get("verbosity", "normal"),
        no_color=data.get("noColor"),
        source=path,
    )
