"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn, TypeVar

import typer

from trunk.core.result import Err, Result
from trunk.output.console import ConsoleProtocol
from trunk.output.errors import print_shift_error, shift_error_exit_code
from trunk.services.shift.errors import ShiftError

T = TypeVar("T")

VERBOSE_OPTION_HELP = "Show the commands being run and their error output."


def exit_on_error(result: Result[T, ShiftError], console: ConsoleProtocol) -> T:
    """Return the value of an Ok result, or report the error and exit.

    The exit code depends on the error kind, see ``shift_error_exit_code``.
    """
    if isinstance(result, Err):
        print_shift_error(result.error, console)
        exit_with_code(shift_error_exit_code(result.error))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
