"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from trunk.core.errors import ErrorCode
from trunk.output.console import Style
from trunk.services.shift.errors import ShiftError

if TYPE_CHECKING:
    from trunk.output.console import ConsoleProtocol

__all__ = ["print_shift_error", "shift_error_exit_code"]


def print_shift_error(error: ShiftError, console: ConsoleProtocol) -> None:
    """Print the message, then the hint and any captured stderr."""
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)
    if error.stderr:
        # Captured stderr can be long; only shown in verbose mode.
        console.detail(error.stderr.rstrip())


def shift_error_exit_code(error: ShiftError) -> int:
    match error.kind:
        case (
            "invalid_version_string"
            | "config_invalid"
            | "token_missing"
            | "token_invalid"
            | "remote_invalid"
        ):
            return int(ErrorCode.USER_ERROR)
        case "dirty_repository" | "refs_diverged" | "actions_failed" | "check_failed":
            return int(ErrorCode.ENV_ERROR)
        case (
            "no_build_found"
            | "build_not_passing"
            | "milestone_not_found"
            | "milestone_not_closable"
            | "service_failed"
        ):
            return int(ErrorCode.SERVICE_ERROR)
        case "manifest_invalid" | "version_string_not_found":
            return int(ErrorCode.IO_ERROR)
        case "git_failed":
            return int(ErrorCode.GIT_ERROR)
