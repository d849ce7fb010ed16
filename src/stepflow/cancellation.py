from __future__ import annotations

import itertools
import threading
import time
from typing import Callable

from .errors import ScenarioCancelledError


class CancellationToken:
    """Thread-safe cancellation flag with an optional deadline.

    Child tokens are cancelled together with their parent. Callbacks are used
    by waiters that block on something other than the token itself (an attempt
    thread, the scheduler condition) so they can be woken on cancellation.
    """

    def __init__(
        self,
        *,
        deadline: float | None = None,
        parent: CancellationToken | None = None,
    ) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._deadline = deadline
        self._reason: str | None = None
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._ids = itertools.count()
        self._parent = parent
        self._parent_handle: int | None = None
        if parent is not None:
            if parent._deadline is not None:
                self._deadline = (
                    parent._deadline
                    if self._deadline is None
                    else min(self._deadline, parent._deadline)
                )
            self._parent_handle = parent.add_callback(
                lambda: self.cancel(parent.reason or "cancelled")
            )

    @classmethod
    def with_timeout(
        cls, seconds: float | None, parent: CancellationToken | None = None
    ) -> CancellationToken:
        deadline = time.monotonic() + seconds if seconds is not None else None
        return cls(deadline=deadline, parent=parent)

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is none."""

        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> int:
        """Register ``callback`` to run once on cancellation.

        Runs immediately when the token is already cancelled. Returns a handle
        for :meth:`remove_callback`.
        """

        with self._lock:
            handle = next(self._ids)
            if not self._event.is_set():
                self._callbacks[handle] = callback
                return handle
        callback()
        return handle

    def remove_callback(self, handle: int) -> None:
        with self._lock:
            self._callbacks.pop(handle, None)

    def detach(self) -> None:
        """Stop following the parent token; cancellation state is kept."""

        if self._parent is not None and self._parent_handle is not None:
            self._parent.remove_callback(self._parent_handle)
        self._parent = None
        self._parent_handle = None

    def wait(self, timeout: float | None) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled meanwhile."""

        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            if self._event.wait(timeout=remaining):
                return True
            return self.cancelled
        return self._event.wait(timeout=timeout) or self.cancelled

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise ScenarioCancelledError(self._reason or "cancelled")
