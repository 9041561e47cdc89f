"""Git command gateway.

Every method issues one literal ``git`` invocation (two for
``reset_hard`` and ``ensure_branches_equal``) in the repository directory
and returns a Result. Failures carry the captured standard error so callers
can surface diagnostics without re-running the command. Nothing here
retries.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.ensure_branches_equal("develop", "origin/develop"):
        case Ok(_):
            print("in sync")
        case Err(e):
            print(f"{e.message}\\n{e.stderr}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from trunk.core.result import Err, Ok, Result
from trunk.platform.process import ProcessError
from trunk.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

__all__ = [
    "GitError",
    "GitErrorKind",
    "Repository",
]

GitErrorKind = Literal["command_failed", "dirty_repository", "refs_diverged"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed (without the ``git`` prefix)
        message: Error message
        stderr: Captured standard error of the failing command
        stdout: Captured standard output, when it explains the failure
        returncode: Process return code (0 for logical failures)
        kind: What went wrong
    """

    command: str
    message: str
    stderr: str = ""
    stdout: str = ""
    returncode: int = 1
    kind: GitErrorKind = "command_failed"


class Repository:
    """A local git repository.

    Attributes:
        path: Directory the git commands run in
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def repository_root(self) -> Result[Path, GitError]:
        """Absolute path of the top-level working tree directory."""
        result = self._git(["rev-parse", "--show-toplevel"])
        if isinstance(result, Err):
            return result
        return Ok(Path(result.value.strip()))

    def current_branch(self) -> Result[str | None, GitError]:
        """Name of the checked-out branch, None on a detached HEAD."""
        result = self._git(["rev-parse", "--abbrev-ref", "HEAD"])
        if isinstance(result, Err):
            return result
        branch = result.value.strip()
        return Ok(None if branch == "HEAD" else branch)

    def hexsha(self, ref: str) -> Result[str, GitError]:
        """Resolve a ref to the hash of the commit it points to."""
        result = self._git(["rev-parse", "--verify", f"{ref}^{{commit}}"])
        if isinstance(result, Err):
            e = result.error
            return Err(
                GitError(
                    command=e.command,
                    message=f"unknown revision: {ref}",
                    stderr=e.stderr,
                    returncode=e.returncode,
                )
            )
        return Ok(result.value.strip())

    def fetch(self, remote: str) -> Result[None, GitError]:
        result = self._git(["fetch", remote], network=True)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def checkout(self, branch: str) -> Result[None, GitError]:
        result = self._git(["checkout", branch])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def reset_hard(self, branch: str, ref: str) -> Result[None, GitError]:
        """Point ``branch`` at ``ref``, leaving ``branch`` checked out."""
        checkout = self.checkout(branch)
        if isinstance(checkout, Err):
            return checkout
        result = self._git(["reset", "--hard", ref])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def tag(self, name: str) -> Result[None, GitError]:
        """Tag the checked-out commit."""
        result = self._git(["tag", name])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def delete_tag(self, name: str) -> Result[None, GitError]:
        result = self._git(["tag", "-d", name])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def ensure_clean_working_tree(self) -> Result[None, GitError]:
        """Fail with ``dirty_repository`` on any staged, unstaged or untracked entry."""
        result = self._git(["status", "--porcelain"])
        if isinstance(result, Err):
            return result
        if result.value.strip():
            return Err(
                GitError(
                    command="status --porcelain",
                    message="the repository is dirty",
                    stdout=result.value,
                    returncode=0,
                    kind="dirty_repository",
                )
            )
        return Ok(None)

    def ensure_branches_equal(self, b1: str, b2: str) -> Result[None, GitError]:
        """Fail with ``refs_diverged`` unless both refs resolve to the same commit."""
        sha1 = self.hexsha(b1)
        if isinstance(sha1, Err):
            return sha1
        sha2 = self.hexsha(b2)
        if isinstance(sha2, Err):
            return sha2

        if sha1.value != sha2.value:
            return Err(
                GitError(
                    command=f"rev-parse {b1} {b2}",
                    message=f"branches {b1} and {b2} need merging",
                    returncode=0,
                    kind="refs_diverged",
                )
            )
        return Ok(None)

    def show_file_at_branch(self, branch: str, path: str) -> Result[str, GitError]:
        """Content of ``path`` (relative to the root) at the tip of ``branch``."""
        return self._git(["show", f"{branch}:{path}"])

    def add(self, path: Path) -> Result[None, GitError]:
        result = self._git(["add", "--", str(path)])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def commit(self, message: str) -> Result[None, GitError]:
        result = self._git(["commit", "-m", message])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def push(self, remote: str, refs: list[str]) -> Result[None, GitError]:
        result = self._git(["push", remote, *refs], network=True)
        if isinstance(result, Err):
            return result
        return Ok(None)

    def remote_url(self, remote: str) -> Result[str, GitError]:
        result = self._git(["config", "--get", f"remote.{remote}.url"])
        if isinstance(result, Err):
            e = result.error
            return Err(
                GitError(
                    command=e.command,
                    message=f"remote not configured: {remote}",
                    stderr=e.stderr,
                    returncode=e.returncode,
                )
            )
        return Ok(result.value.strip())

    def merge_ff_only(self, ref: str) -> Result[None, GitError]:
        result = self._git(["merge", "--ff-only", ref])
        if isinstance(result, Err):
            return result
        return Ok(None)

    def _git(self, args: list[str], *, network: bool = False) -> Result[str, GitError]:
        timeout = _GIT_NETWORK_TIMEOUT_SECONDS if network else _GIT_TIMEOUT_SECONDS
        result = run_process(["git", *args], cwd=self.path, timeout=timeout)
        if isinstance(result, Err):
            return Err(_from_process_error(args, result.error))
        return Ok(result.value)


def _from_process_error(args: list[str], error: ProcessError) -> GitError:
    command = " ".join(args)
    return GitError(
        command=command,
        message=f"git {command} failed (exit {error.returncode})",
        stderr=error.stderr.strip(),
        stdout=error.stdout.strip(),
        returncode=error.returncode,
    )
