from __future__ import annotations

import threading
import time

import pytest

from stepflow import CancellationToken, ScenarioCancelledError


def test_cancel_runs_callbacks_once() -> None:
    token = CancellationToken()
    calls: list[str] = []
    token.add_callback(lambda: calls.append("a"))

    token.cancel("first")
    token.cancel("second")

    assert calls == ["a"]
    assert token.reason == "first"


def test_callback_added_after_cancel_runs_immediately() -> None:
    token = CancellationToken()
    token.cancel()
    calls: list[int] = []

    token.add_callback(lambda: calls.append(1))

    assert calls == [1]


def test_removed_callback_is_not_called() -> None:
    token = CancellationToken()
    calls: list[int] = []
    handle = token.add_callback(lambda: calls.append(1))

    token.remove_callback(handle)
    token.cancel()

    assert calls == []


def test_child_follows_parent() -> None:
    parent = CancellationToken()
    child = CancellationToken(parent=parent)

    parent.cancel("shutdown")

    assert child.cancelled
    assert child.reason == "shutdown"


def test_deadline_expires() -> None:
    token = CancellationToken.with_timeout(0.05)

    assert not token.cancelled
    assert token.remaining() is not None
    time.sleep(0.07)
    assert token.cancelled
    assert token.reason == "deadline exceeded"
    with pytest.raises(ScenarioCancelledError):
        token.raise_if_cancelled()


def test_child_inherits_earlier_parent_deadline() -> None:
    parent = CancellationToken.with_timeout(0.05)
    child = CancellationToken.with_timeout(10.0, parent=parent)

    assert child.remaining() <= 0.05


def test_wait_returns_early_on_cancel() -> None:
    token = CancellationToken()
    threading.Timer(0.05, token.cancel).start()

    started = time.monotonic()
    assert token.wait(5.0)
    assert time.monotonic() - started < 1.0


def test_wait_times_out_without_cancel() -> None:
    assert CancellationToken().wait(0.01) is False
