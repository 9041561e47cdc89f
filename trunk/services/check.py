from __future__ import annotations

from dataclasses import dataclass
from functools import partial

from trunk.core.config import Config
from trunk.core.result import Err, Ok, Result
from trunk.git.repository import Repository
from trunk.output.console import ConsoleProtocol
from trunk.services.shift.errors import ShiftError, from_git_error
from trunk.services.shift.manifest import read_version_at_branch
from trunk.services.shift.preflight import PreflightTask, StepResult, failed, run_preflight
from trunk.services.shift.remote import resolve_remote_slug
from trunk.services.shift.semver import Variant, parse_version


@dataclass(frozen=True, slots=True)
class CheckReport:
    results: list[StepResult]

    def failures(self) -> list[StepResult]:
        return failed(self.results)

    def has_errors(self) -> bool:
        return bool(self.failures())


class CheckService:
    """Verify a repository is laid out for shifting.

    Every branch must exist and carry the version manifest with a version of
    the variant that branch holds; with milestones or build checks enabled
    the remote must point to GitHub.
    """

    def __init__(
        self,
        *,
        repo: Repository,
        config: Config,
        console: ConsoleProtocol,
        remote: str = "origin",
    ) -> None:
        self._repo = repo
        self._config = config
        self._console = console
        self._remote = remote

    def run(self) -> CheckReport:
        b = self._config.branches
        variants: tuple[tuple[str, Variant], ...] = (
            (b.trunk, "dev"),
            (b.release, "release"),
            (b.production, "production"),
        )

        tasks = [
            PreflightTask(
                name=f"branch {branch}",
                run=partial(self._check_branch, branch, variant),
            )
            for branch, variant in variants
        ]
        plugins = self._config.plugins
        if plugins.build_status or plugins.milestones:
            tasks.append(PreflightTask(name=f"remote {self._remote}", run=self._check_remote))

        return CheckReport(results=run_preflight(tasks, console=self._console))

    def _check_branch(self, branch: str, variant: Variant) -> Result[None, ShiftError]:
        sha = self._repo.hexsha(branch)
        if isinstance(sha, Err):
            return Err(from_git_error(sha.error, message=f"branch not found: {branch}"))

        raw = read_version_at_branch(
            repo=self._repo,
            branch=branch,
            manifest=self._config.local.manifest,
        )
        if isinstance(raw, Err):
            return raw

        version = parse_version(raw.value, variant)
        if isinstance(version, Err):
            return version
        return Ok(None)

    def _check_remote(self) -> Result[None, ShiftError]:
        slug = resolve_remote_slug(repo=self._repo, remote=self._remote)
        if isinstance(slug, Err):
            return slug
        return Ok(None)
