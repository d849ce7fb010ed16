from __future__ import annotations

import io
import json

import pytest

from stepflow import (
    DotReporter,
    EventBus,
    JsonReporter,
    ListReporter,
    QueuedReporter,
    RetryPolicy,
    Runner,
    TapReporter,
    create_reporter,
    scenario,
)


def _fail(ctx) -> None:
    raise AssertionError("expected 200, got 500")


def _definitions():
    return [
        scenario("login").step("open", lambda ctx: None).step("submit", lambda ctx: "ok").build(),
        scenario("checkout").step("pay", _fail).step("confirm", lambda ctx: None).build(),
        scenario("legacy", skip="not supported").step("noop", lambda ctx: None).build(),
    ]


def _render(reporter_cls) -> str:
    stream = io.StringIO()
    reporter = reporter_cls(stream, no_color=True)
    bus = EventBus([reporter])
    Runner(bus).run(_definitions())
    bus.close()
    return stream.getvalue()


def test_list_reporter_output() -> None:
    output = _render(ListReporter)

    assert "✓ login" in output
    assert "  ✓ submit [1 attempt]" in output
    assert "✗ checkout" in output
    assert "  ✗ pay [1 attempt]" in output
    assert "expected 200, got 500" in output
    assert "  ⊝ confirm (skipped)" in output
    assert "⊝ legacy" in output and "# not supported" in output
    assert "1 passed, 1 failed, 1 skipped" in output
    assert "\x1b[" not in output


def test_list_reporter_shows_retries() -> None:
    calls: list[int] = []

    def flaky(ctx) -> None:
        calls.append(1)
        if len(calls) == 1:
            raise ConnectionError("reset")

    stream = io.StringIO()
    bus = EventBus([ListReporter(stream, no_color=True)])
    definition = (
        scenario("flaky")
        .step("call", flaky, retry=RetryPolicy(max_attempts=2, backoff="none"))
        .build()
    )
    Runner(bus).run([definition])

    output = stream.getvalue()
    assert "↻ call attempt 1 failed" in output
    assert "✓ call [2 attempts]" in output


def test_dot_reporter_output() -> None:
    output = _render(DotReporter)

    assert output.startswith(".FS")
    assert "1 scenarios passed, 1 scenarios failed, 1 scenarios skipped" in output
    assert "Failed Tests" in output
    assert "✗ checkout > pay" in output
    assert "Skipped Tests" in output
    assert "⊝ legacy # not supported" in output


def test_tap_reporter_output() -> None:
    lines = _render(TapReporter).splitlines()

    assert lines[:2] == ["TAP version 14", "1..3"]
    assert "ok 1 - login" in lines
    assert "not ok 2 - checkout" in lines
    assert '  step: "pay"' in lines
    assert "  error: StepExecutionError" in lines
    assert "ok 3 - legacy # SKIP not supported" in lines
    assert lines[-3:] == ["# pass 1", "# fail 1", "# skip 1"]


def test_json_reporter_emits_one_object_per_event() -> None:
    records = [json.loads(line) for line in _render(JsonReporter).splitlines()]

    assert records[0] == {"type": "run_start", "scenario_count": 3}
    assert records[-1]["type"] == "run_end"
    assert records[-1]["summary"]["failed"] == 1
    failed_step = next(
        r for r in records if r["type"] == "step_end" and r["status"] == "failed"
    )
    assert failed_step["step_name"] == "pay"
    assert failed_step["error"]["type"] == "StepExecutionError"
    skipped = next(r for r in records if r["type"] == "scenario_end" and r["name"] == "legacy")
    assert skipped["reason"] == "not supported"


def test_colored_output_uses_ansi() -> None:
    stream = io.StringIO()
    bus = EventBus([DotReporter(stream, no_color=False)])
    Runner(bus).run([scenario("a").step("s", lambda ctx: None).build()])

    assert "\x1b[32m.\x1b[0m" in stream.getvalue()


def test_no_color_env_disables_ansi(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    stream = io.StringIO()
    bus = EventBus([DotReporter(stream)])
    Runner(bus).run([scenario("a").step("s", lambda ctx: None).build()])

    assert "\x1b[" not in stream.getvalue()


def test_queued_reporter_delivers_all_events(sink) -> None:
    queued = QueuedReporter(sink)
    bus = EventBus([queued])
    Runner(bus).run(_definitions())
    bus.close()

    assert sink.closed
    assert queued.dropped == 0
    assert sink.kinds()[0] == "run_start"
    assert sink.kinds()[-1] == "run_end"


def test_broken_sink_does_not_affect_outcome(sink) -> None:
    class Broken:
        def handle(self, event) -> None:
            raise RuntimeError("reporter bug")

        def close(self) -> None:
            pass

    result = Runner(EventBus([Broken(), sink])).run(_definitions())

    assert result.summary.passed == 1
    assert sink.kinds()[-1] == "run_end"


def test_create_reporter_by_name() -> None:
    assert isinstance(create_reporter("tap", io.StringIO()), TapReporter)
    with pytest.raises(ValueError, match="Unknown reporter"):
        create_reporter("junit")
