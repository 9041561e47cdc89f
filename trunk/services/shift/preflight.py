"""Concurrent read-only checks that gate a shift.

Tasks are submitted together and joined before anything is mutated. All
console output happens on the calling thread: a ``[GO]`` line when a task
is launched and an ``[OK]`` or ``[FAIL]`` line as each one completes.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from trunk.core.result import Err, Result
from trunk.output.console import ConsoleProtocol
from trunk.services.shift.errors import ShiftError

MAX_PREFLIGHT_WORKERS = 3


@dataclass(frozen=True, slots=True)
class PreflightTask:
    name: str
    run: Callable[[], Result[None, ShiftError]]


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of one task."""

    name: str
    error: ShiftError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def stderr(self) -> str:
        return self.error.stderr if self.error is not None else ""


def run_preflight(
    tasks: Sequence[PreflightTask],
    *,
    console: ConsoleProtocol,
    max_workers: int = MAX_PREFLIGHT_WORKERS,
) -> list[StepResult]:
    """Run all tasks and return their results in completion order.

    A task that raises is logged as failed like any other; once every task
    has been observed, the first such exception is raised again.
    """
    if not tasks:
        return []

    results: list[StepResult] = []
    raised: BaseException | None = None
    workers = max(1, min(max_workers, len(tasks)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="preflight") as pool:
        futures: dict[Future[Result[None, ShiftError]], PreflightTask] = {}
        for task in tasks:
            console.go(task.name)
            futures[pool.submit(task.run)] = task

        for future in as_completed(futures):
            task = futures[future]
            exc = future.exception()
            if exc is not None:
                console.fail(f"{task.name}: {type(exc).__name__}: {exc}")
                if raised is None:
                    raised = exc
                continue

            outcome = future.result()
            if isinstance(outcome, Err):
                e = outcome.error
                console.fail(f"{task.name}: {e.message}")
                if e.stderr:
                    console.detail(e.stderr)
                results.append(StepResult(name=task.name, error=e))
            else:
                console.ok(task.name)
                results.append(StepResult(name=task.name))

    if raised is not None:
        raise raised
    return results


def failed(results: Sequence[StepResult]) -> list[StepResult]:
    return [r for r in results if not r.ok]
