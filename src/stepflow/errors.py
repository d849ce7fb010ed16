from __future__ import annotations


class StepflowError(Exception):
    """Base class for errors raised by the execution engine."""


class SkipSignal(Exception):
    """Raised by a skip predicate, setup hook or step to request skipping.

    Skipping is intentional non-execution and never counts as a failure.
    """

    def __init__(self, reason: str = "Scenario marked as skipped") -> None:
        super().__init__(reason)
        self.reason = reason


class StepTimeoutError(StepflowError):
    def __init__(self, step_name: str, timeout: float, attempt: int) -> None:
        super().__init__(
            f'Step "{step_name}" exceeded timeout of {timeout:g}s (attempt {attempt})'
        )
        self.step_name = step_name
        self.timeout = timeout
        self.attempt = attempt


class StepExecutionError(StepflowError):
    def __init__(self, step_name: str, attempt: int, cause: BaseException) -> None:
        super().__init__(f'Step "{step_name}" failed on attempt {attempt}: {cause}')
        self.step_name = step_name
        self.attempt = attempt
        self.cause = cause


class ResourceSetupError(StepflowError):
    """A resource factory or setup hook failed."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(f'Setup of "{name}" failed: {cause}')
        self.name = name
        self.cause = cause


class ResourceTeardownError(StepflowError):
    """A cleanup callback or teardown hook failed. Always collected, never dropped."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(f'Teardown of "{name}" failed: {cause}')
        self.name = name
        self.cause = cause


class ScenarioCancelledError(StepflowError):
    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(f"Scenario cancelled: {reason}")
        self.reason = reason


class RunnerFailureThresholdReached(StepflowError):
    def __init__(self, max_failures: int) -> None:
        super().__init__(f"failure threshold reached ({max_failures})")
        self.max_failures = max_failures
