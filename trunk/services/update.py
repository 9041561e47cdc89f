from __future__ import annotations

from trunk.core.config import BranchesConfig
from trunk.core.result import Err, Ok, Result
from trunk.git.repository import GitError, Repository
from trunk.output.console import ConsoleProtocol
from trunk.services.shift.errors import ShiftError, from_git_error


class UpdateService:
    """Fast-forward the local trunk branch from an upstream remote.

    The branch checked out beforehand is checked out again afterwards,
    whether or not the fast-forward succeeded.
    """

    def __init__(
        self,
        *,
        repo: Repository,
        branches: BranchesConfig,
        console: ConsoleProtocol,
        upstream: str = "upstream",
    ) -> None:
        self._repo = repo
        self._branches = branches
        self._console = console
        self._upstream = upstream

    def run(self) -> Result[None, ShiftError]:
        current = self._repo.current_branch()
        if isinstance(current, Err):
            return Err(from_git_error(current.error))
        original = current.value
        if original is None:
            sha = self._repo.hexsha("HEAD")
            if isinstance(sha, Err):
                return Err(from_git_error(sha.error))
            original = sha.value

        outcome: Result[None, ShiftError]
        try:
            outcome = self._fast_forward()
        finally:
            restored = self._repo.checkout(original)

        if isinstance(restored, Err):
            self._console.fail(f"checkout {original}: {restored.error.message}")
            if isinstance(outcome, Ok):
                return Err(from_git_error(restored.error))
        return outcome

    def _fast_forward(self) -> Result[None, ShiftError]:
        trunk = self._branches.trunk
        upstream_ref = f"{self._upstream}/{trunk}"

        self._console.run(f"fetch {self._upstream}")
        fetched = self._repo.fetch(self._upstream)
        if isinstance(fetched, Err):
            return self._failed(f"fetch {self._upstream}", fetched.error)

        self._console.run(f"checkout {trunk}")
        checked_out = self._repo.checkout(trunk)
        if isinstance(checked_out, Err):
            return self._failed(f"checkout {trunk}", checked_out.error)

        self._console.run(f"merge --ff-only {upstream_ref}")
        merged = self._repo.merge_ff_only(upstream_ref)
        if isinstance(merged, Err):
            return self._failed(f"merge --ff-only {upstream_ref}", merged.error)

        self._console.ok(f"{trunk} is up to date with {upstream_ref}")
        return Ok(None)

    def _failed(self, step: str, error: GitError) -> Result[None, ShiftError]:
        self._console.fail(f"{step}: {error.message}")
        return Err(from_git_error(error))
