from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypeVar

from .cancellation import CancellationToken

T = TypeVar("T")


@dataclass(slots=True)
class ExecutionContext:
    """Mutable state of a single scenario run.

    Created fresh for every run and discarded afterwards. ``results`` holds one
    entry per finished step, in step order: the step's value when it passed,
    ``None`` otherwise. While step ``index`` runs, ``len(results) == index``.
    """

    scenario: str
    token: CancellationToken = field(default_factory=CancellationToken)
    store: dict[str, Any] = field(default_factory=dict)
    results: list[Any] = field(default_factory=list)
    resources: dict[str, Any] = field(default_factory=dict)
    index: int = 0

    @property
    def previous(self) -> Any:
        return self.results[-1] if self.results else None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def previous_as(self, expected: type[T]) -> T:
        """Return ``previous`` after checking it is an instance of ``expected``.

        Step N declares the type it expects; it must match the output type of
        step N-1.
        """

        value = self.previous
        if not isinstance(value, expected):
            msg = (
                f"Previous step produced {type(value).__name__}, "
                f"expected {expected.__name__}"
            )
            raise TypeError(msg)
        return value

    def resource(self, name: str) -> Any:
        try:
            return self.resources[name]
        except KeyError:
            msg = f"Unknown resource: {name}"
            raise KeyError(msg) from None
