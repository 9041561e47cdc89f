from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from trunk.core.result import Err, Result
from trunk.output.console import ConsoleProtocol
from trunk.services.shift.errors import ShiftError


@dataclass(frozen=True, slots=True)
class Compensation:
    name: str
    action: Callable[[], Result[None, ShiftError]]


class CompensationStack:
    """Undo actions for the mutations performed so far.

    An entry is pushed once its forward action succeeded (or, for branch
    resets, once the hash to restore is known). ``unwind`` runs the entries
    newest first; a failing entry is logged and the unwind goes on.
    """

    def __init__(self) -> None:
        self._entries: list[Compensation] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self._entries]

    def push(self, name: str, action: Callable[[], Result[None, ShiftError]]) -> None:
        self._entries.append(Compensation(name=name, action=action))

    def unwind(self, console: ConsoleProtocol) -> list[ShiftError]:
        """Run every compensation in reverse order and empty the stack."""
        failures: list[ShiftError] = []
        while self._entries:
            entry = self._entries.pop()
            console.run(f"rollback: {entry.name}")
            result = entry.action()
            if isinstance(result, Err):
                e = result.error
                console.fail(f"rollback: {entry.name}: {e.message}")
                if e.stderr:
                    console.detail(e.stderr)
                failures.append(e)
            else:
                console.ok(f"rollback: {entry.name}")
        return failures
