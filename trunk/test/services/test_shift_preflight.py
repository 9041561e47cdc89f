from __future__ import annotations

import threading

import pytest

from trunk.core.result import Err, Ok, Result
from trunk.output.console import MockConsole
from trunk.services.shift.errors import ShiftError
from trunk.services.shift.preflight import PreflightTask, failed, run_preflight


def _ok() -> Result[None, ShiftError]:
    return Ok(None)


def _fail() -> Result[None, ShiftError]:
    return Err(ShiftError(kind="build_not_passing", message="build is red", stderr="details"))


def test_empty_task_list() -> None:
    console = MockConsole()
    assert run_preflight([], console=console) == []
    assert console.outputs == []


def test_every_task_reported_once() -> None:
    console = MockConsole()
    tasks = [
        PreflightTask(name="sync", run=_ok),
        PreflightTask(name="build", run=_fail),
        PreflightTask(name="milestone", run=_ok),
    ]

    results = run_preflight(tasks, console=console)

    assert sorted(r.name for r in results) == ["build", "milestone", "sync"]
    assert [r.name for r in failed(results)] == ["build"]
    assert console.markers("GO") == ["sync", "build", "milestone"]
    assert sorted(console.markers("OK")) == ["milestone", "sync"]
    assert console.markers("FAIL") == ["build: build is red"]
    assert "details" in console.messages


def test_failure_keeps_stderr() -> None:
    results = run_preflight([PreflightTask(name="build", run=_fail)], console=MockConsole())

    assert results[0].ok is False
    assert results[0].stderr == "details"


def test_tasks_run_concurrently() -> None:
    barrier = threading.Barrier(3, timeout=5)

    def wait() -> Result[None, ShiftError]:
        barrier.wait()
        return Ok(None)

    tasks = [PreflightTask(name=f"t{i}", run=wait) for i in range(3)]

    results = run_preflight(tasks, console=MockConsole())

    assert all(r.ok for r in results)


def test_results_in_completion_order() -> None:
    first_done = threading.Event()

    def slow() -> Result[None, ShiftError]:
        first_done.wait(timeout=5)
        return Ok(None)

    def fast() -> Result[None, ShiftError]:
        first_done.set()
        return Ok(None)

    results = run_preflight(
        [PreflightTask(name="slow", run=slow), PreflightTask(name="fast", run=fast)],
        console=MockConsole(),
    )

    assert [r.name for r in results] == ["fast", "slow"]


def test_task_exception_propagates() -> None:
    def boom() -> Result[None, ShiftError]:
        raise RuntimeError("unexpected")

    with pytest.raises(RuntimeError, match="unexpected"):
        run_preflight([PreflightTask(name="boom", run=boom)], console=MockConsole())


def test_task_exception_does_not_hide_other_results() -> None:
    console = MockConsole()

    def boom() -> Result[None, ShiftError]:
        raise RuntimeError("unexpected")

    tasks = [
        PreflightTask(name="boom", run=boom),
        PreflightTask(name="sync", run=_ok),
        PreflightTask(name="build", run=_fail),
    ]

    with pytest.raises(RuntimeError, match="unexpected"):
        run_preflight(tasks, console=console)

    assert console.markers("OK") == ["sync"]
    assert sorted(console.markers("FAIL")) == [
        "boom: RuntimeError: unexpected",
        "build: build is red",
    ]
