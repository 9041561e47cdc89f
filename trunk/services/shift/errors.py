from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from trunk.git.repository import GitError

ShiftErrorKind = Literal[
    "invalid_version_string",
    "dirty_repository",
    "refs_diverged",
    "git_failed",
    "config_invalid",
    "token_missing",
    "token_invalid",
    "remote_invalid",
    "no_build_found",
    "build_not_passing",
    "milestone_not_found",
    "milestone_not_closable",
    "service_failed",
    "manifest_invalid",
    "version_string_not_found",
    "actions_failed",
    "check_failed",
]


@dataclass(frozen=True, slots=True)
class ShiftError:
    kind: ShiftErrorKind
    message: str
    hint: str | None = None
    stderr: str = ""


def from_git_error(error: GitError, *, message: str | None = None) -> ShiftError:
    match error.kind:
        case "dirty_repository":
            return ShiftError(
                kind="dirty_repository",
                message=message or error.message,
                hint="Commit or stash your changes, then retry.",
                stderr=error.stdout,
            )
        case "refs_diverged":
            return ShiftError(
                kind="refs_diverged",
                message=message or error.message,
                hint="Pull or push the branch so it matches its remote counterpart.",
            )
        case _:
            return ShiftError(
                kind="git_failed",
                message=message or error.message,
                hint=f"git {error.command}",
                stderr=error.stderr,
            )
