from __future__ import annotations

import inspect
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from .errors import ResourceSetupError, ResourceTeardownError, SkipSignal

logger = logging.getLogger(__name__)

Cleanup = Callable[[], Any]


@dataclass(slots=True)
class Acquired:
    """Factory return value pairing a resource with its cleanup callback."""

    value: Any
    cleanup: Cleanup | None = None


@dataclass(slots=True)
class _Registration:
    name: str
    cleanup: Cleanup


class ResourceManager:
    """Track acquired resources and release them in reverse acquisition order."""

    def __init__(self) -> None:
        self._stack: list[_Registration] = []
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def __len__(self) -> int:
        return len(self._stack)

    def acquire(self, name: str, factory: Callable[..., Any], *args: Any) -> Any:
        """Invoke ``factory`` and register its cleanup; return the resource.

        Raises :class:`ResourceSetupError` when the factory fails. Resources
        acquired before the failure stay registered for :meth:`release_all`.
        """

        if self._released:
            msg = "ResourceManager already released"
            raise RuntimeError(msg)
        try:
            produced = factory(*args)
            value, cleanup = unwrap_cleanup(produced)
        except SkipSignal:
            raise
        except Exception as exc:
            raise ResourceSetupError(name, exc) from exc
        if cleanup is not None:
            self.register(name, cleanup)
        logger.debug("Acquired resource %s", name)
        return value

    def register(self, name: str, cleanup: Cleanup) -> None:
        with self._lock:
            self._stack.append(_Registration(name=name, cleanup=cleanup))

    def release_all(self) -> list[ResourceTeardownError]:
        """Run every cleanup, newest first, collecting failures.

        A second call is a no-op and returns an empty list.
        """

        with self._lock:
            if self._released:
                return []
            self._released = True
            stack, self._stack = self._stack, []

        errors: list[ResourceTeardownError] = []
        while stack:
            registration = stack.pop()
            try:
                registration.cleanup()
            except Exception as exc:
                logger.warning("Cleanup of %s failed: %s", registration.name, exc)
                errors.append(ResourceTeardownError(registration.name, exc))
            else:
                logger.debug("Released resource %s", registration.name)
        return errors


def unwrap_cleanup(produced: Any) -> tuple[Any, Cleanup | None]:
    if isinstance(produced, Acquired):
        return produced.value, produced.cleanup
    if inspect.isgenerator(produced):
        value = next(produced)
        return value, lambda: _finish_generator(produced)
    if hasattr(produced, "__enter__") and hasattr(produced, "__exit__"):
        value = produced.__enter__()
        return value, lambda: produced.__exit__(None, None, None)
    return produced, None


def _finish_generator(generator: Any) -> None:
    try:
        next(generator)
    except StopIteration:
        return
    generator.close()
    msg = "Resource generator yielded more than once"
    raise RuntimeError(msg)
