"""Shift a repository from one release cycle to the next.

A shift moves the three long-lived branches forward by one cycle:

    production  <- release, version M.m.p, tagged vM.m.p
    release     <- trunk,   version M.(m+1).0-release
    trunk                   version M.(m+2).0-dev

It runs in phases, recorded in ``ShiftService.states``:

    IDLE -> PREFLIGHT_RUNNING -> PREFLIGHT_FAILED
                              -> PREFLIGHT_PASSED -> MUTATING -> MUTATION_FAILED
                                                              -> MUTATION_SUCCEEDED -> PUSHED
                                                                                    -> PUSH_FAILED

Preflight checks are read-only and run concurrently. Mutations run one at a
time with interrupts masked; every mutation registers an undo action, and
the undo actions run newest first when a later mutation fails. Once the
push starts nothing is undone.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from functools import partial
from pathlib import Path
from typing import TypeVar

from trunk.core.config import Config
from trunk.core.result import Err, Ok, Result
from trunk.git.repository import GitError, Repository
from trunk.output.console import ConsoleProtocol
from trunk.platform.http import HttpClient
from trunk.platform.interrupts import InterruptGuard
from trunk.services.shift.ci import check_build_status
from trunk.services.shift.compensation import CompensationStack
from trunk.services.shift.errors import ShiftError, from_git_error
from trunk.services.shift.manifest import commit_version, load_versions
from trunk.services.shift.milestones import (
    Milestone,
    check_milestone,
    close_milestone,
    create_milestone,
    delete_milestone,
    milestone_title,
    open_milestone,
)
from trunk.services.shift.preflight import PreflightTask, StepResult, failed, run_preflight
from trunk.services.shift.remote import RemoteSlug, resolve_remote_slug
from trunk.services.shift.semver import AUTO, Versions, next_versions

T = TypeVar("T")


class ShiftState(Enum):
    IDLE = auto()
    PREFLIGHT_RUNNING = auto()
    PREFLIGHT_FAILED = auto()
    PREFLIGHT_PASSED = auto()
    MUTATING = auto()
    MUTATION_FAILED = auto()
    MUTATION_SUCCEEDED = auto()
    PUSHED = auto()
    PUSH_FAILED = auto()


@dataclass(frozen=True, slots=True)
class ShiftOptions:
    remote: str = "origin"
    requested: str = AUTO
    skip_build_check: bool = False
    skip_milestone_check: bool = False


@dataclass(frozen=True, slots=True)
class ShiftPlan:
    """Everything decided before the first check runs."""

    slug: RemoteSlug | None
    current: Versions
    next: Versions

    @property
    def tag(self) -> str:
        return self.next.production.to_tag()


class ShiftService:
    """Shift trunk, release and production to the next release cycle.

    ``states`` records every state the shift itself enters. Checking out the
    original branch afterwards is not part of it: when that fails after a
    successful push, ``run()`` returns the checkout error and the last state
    stays ``PUSHED``.
    """

    def __init__(
        self,
        *,
        repo: Repository,
        repo_root: Path,
        config: Config,
        console: ConsoleProtocol,
        http: HttpClient,
        options: ShiftOptions | None = None,
    ) -> None:
        self._repo = repo
        self._root = repo_root
        self._config = config
        self._console = console
        self._http = http
        self._options = options or ShiftOptions()
        self.states: list[ShiftState] = [ShiftState.IDLE]
        self.preflight_results: list[StepResult] = []

    @property
    def state(self) -> ShiftState:
        return self.states[-1]

    def run(self) -> Result[Versions, ShiftError]:
        self._console.header("Preparing shift")
        prepared = self.prepare()
        if isinstance(prepared, Err):
            return prepared
        plan = prepared.value

        self._console.header("Running preflight checks")
        checked = self._preflight(plan)
        if isinstance(checked, Err):
            return checked

        original = self._checked_out_ref()
        if isinstance(original, Err):
            return original

        self._console.header(f"Shifting to {plan.tag}")
        with InterruptGuard(on_interrupt=self._on_interrupt) as guard:
            outcome: Result[Versions, ShiftError]
            try:
                outcome = self._mutate_and_push(plan)
            finally:
                restored = self._restore(original.value)
            if isinstance(outcome, Ok) and isinstance(restored, Err):
                outcome = restored

        if guard.interrupts:
            self._console.info(f"{guard.interrupts} interrupt(s) ignored during the shift")
        if isinstance(outcome, Ok):
            self._console.success(
                f"Released {plan.tag}; release is now {outcome.value.release}, "
                f"trunk is now {outcome.value.trunk}"
            )
        return outcome

    def prepare(self) -> Result[ShiftPlan, ShiftError]:
        """Resolve the remote, read the current versions and check the working tree."""
        slug: RemoteSlug | None = None
        if self._build_check_enabled or self._config.plugins.milestones:
            self._console.run(f"resolve GitHub repository of remote {self._options.remote}")
            resolved = resolve_remote_slug(repo=self._repo, remote=self._options.remote)
            if isinstance(resolved, Err):
                return resolved
            slug = resolved.value
            self._console.detail(f"repository: {slug}")

        self._console.run("read current versions")
        current = load_versions(
            repo=self._repo,
            branches=self._config.branches,
            manifest=self._config.local.manifest,
        )
        if isinstance(current, Err):
            return current

        nxt = next_versions(current.value, self._options.requested)
        if isinstance(nxt, Err):
            return nxt

        for role, cur, new in (
            ("production", current.value.production, nxt.value.production),
            ("release", current.value.release, nxt.value.release),
            ("trunk", current.value.trunk, nxt.value.trunk),
        ):
            self._console.detail(f"{role}: {cur} -> {new}")

        self._console.run("ensure the working tree is clean")
        clean = self._repo.ensure_clean_working_tree()
        if isinstance(clean, Err):
            return Err(from_git_error(clean.error))

        return Ok(ShiftPlan(slug=slug, current=current.value, next=nxt.value))

    @property
    def _build_check_enabled(self) -> bool:
        return self._config.plugins.build_status and not self._options.skip_build_check

    @property
    def _milestone_check_enabled(self) -> bool:
        return self._config.plugins.milestones and not self._options.skip_milestone_check

    def _enter(self, state: ShiftState) -> None:
        self.states.append(state)

    def _on_interrupt(self) -> None:
        self._console.warning("signal received but ignored")

    # Preflight

    def _preflight(self, plan: ShiftPlan) -> Result[None, ShiftError]:
        self._enter(ShiftState.PREFLIGHT_RUNNING)

        tasks = [
            PreflightTask(
                name=f"branches in sync with {self._options.remote}",
                run=self._check_sync,
            )
        ]

        release_branch = self._config.branches.release
        if self._build_check_enabled and plan.slug is not None:
            tasks.append(
                PreflightTask(
                    name=f"build status of {release_branch}",
                    run=partial(self._check_build, plan.slug),
                )
            )
        else:
            self._console.skip(f"build status of {release_branch}")

        title = milestone_title(plan.current.release.base_string())
        if self._milestone_check_enabled and plan.slug is not None:
            tasks.append(
                PreflightTask(
                    name=f"milestone {title}",
                    run=partial(self._check_milestone, plan.slug, title),
                )
            )
        else:
            self._console.skip(f"milestone {title}")

        results = run_preflight(tasks, console=self._console)
        self.preflight_results = results

        failures = failed(results)
        if failures:
            self._enter(ShiftState.PREFLIGHT_FAILED)
            return Err(
                ShiftError(
                    kind="actions_failed",
                    message="preflight checks failed: " + ", ".join(r.name for r in failures),
                    hint="; ".join(r.error.message for r in failures if r.error is not None),
                    stderr="\n".join(r.stderr for r in failures if r.stderr),
                )
            )

        self._enter(ShiftState.PREFLIGHT_PASSED)
        return Ok(None)

    def _check_sync(self) -> Result[None, ShiftError]:
        remote = self._options.remote
        fetched = self._repo.fetch(remote)
        if isinstance(fetched, Err):
            return Err(from_git_error(fetched.error))

        for branch in self._config.branches.all():
            equal = self._repo.ensure_branches_equal(branch, f"{remote}/{branch}")
            if isinstance(equal, Err):
                return Err(from_git_error(equal.error))
        return Ok(None)

    def _check_build(self, slug: RemoteSlug) -> Result[None, ShiftError]:
        return check_build_status(
            http=self._http,
            slug=slug,
            branch=self._config.branches.release,
            token=self._config.tokens.circleci,
        )

    def _check_milestone(self, slug: RemoteSlug, title: str) -> Result[None, ShiftError]:
        found = check_milestone(
            http=self._http,
            slug=slug,
            title=title,
            token=self._config.tokens.github,
        )
        if isinstance(found, Err):
            return found
        return Ok(None)

    # Mutation

    def _mutate_and_push(self, plan: ShiftPlan) -> Result[Versions, ShiftError]:
        self._enter(ShiftState.MUTATING)
        stack = CompensationStack()

        mutated = self._mutate(plan, stack)
        if isinstance(mutated, Err):
            self._console.header("Rolling back")
            stack.unwind(self._console)
            self._enter(ShiftState.MUTATION_FAILED)
            return mutated
        self._enter(ShiftState.MUTATION_SUCCEEDED)

        b = self._config.branches
        refs = [f"refs/tags/{plan.tag}", b.trunk, b.release, b.production]
        pushed = self._step(
            f"push {plan.tag} and branches to {self._options.remote}",
            lambda: self._git(self._repo.push(self._options.remote, refs)),
        )
        if isinstance(pushed, Err):
            self._enter(ShiftState.PUSH_FAILED)
            return pushed

        self._enter(ShiftState.PUSHED)
        return Ok(plan.next)

    def _mutate(self, plan: ShiftPlan, stack: CompensationStack) -> Result[None, ShiftError]:
        b = self._config.branches
        manifest = self._config.local.manifest

        # production <- release
        recorded = self._record_for_reset(b.production, stack)
        if isinstance(recorded, Err):
            return recorded
        reset = self._step(
            f"reset {b.production} to {b.release}",
            lambda: self._git(self._repo.reset_hard(b.production, b.release)),
        )
        if isinstance(reset, Err):
            return reset

        committed = self._step(
            f"bump {b.production} to {plan.next.production}",
            lambda: commit_version(
                repo=self._repo,
                repo_root=self._root,
                manifest=manifest,
                version=plan.next.production,
            ),
        )
        if isinstance(committed, Err):
            return committed

        tagged = self._step(f"tag {plan.tag}", lambda: self._git(self._repo.tag(plan.tag)))
        if isinstance(tagged, Err):
            return tagged
        stack.push(f"delete tag {plan.tag}", partial(self._delete_tag, plan.tag))

        if self._config.plugins.milestones and plan.slug is not None:
            closed = self._close_milestone(plan.slug, plan.current)
            if isinstance(closed, Err):
                return closed
            stack.push(
                f"re-open milestone {closed.value.title}",
                partial(self._reopen_milestone, plan.slug, closed.value),
            )

        # release <- trunk
        recorded = self._record_for_reset(b.release, stack)
        if isinstance(recorded, Err):
            return recorded
        reset = self._step(
            f"reset {b.release} to {b.trunk}",
            lambda: self._git(self._repo.reset_hard(b.release, b.trunk)),
        )
        if isinstance(reset, Err):
            return reset

        committed = self._step(
            f"bump {b.release} to {plan.next.release}",
            lambda: commit_version(
                repo=self._repo,
                repo_root=self._root,
                manifest=manifest,
                version=plan.next.release,
            ),
        )
        if isinstance(committed, Err):
            return committed

        # trunk
        recorded = self._record_for_reset(b.trunk, stack)
        if isinstance(recorded, Err):
            return recorded
        checked_out = self._step(
            f"checkout {b.trunk}",
            lambda: self._git(self._repo.checkout(b.trunk)),
        )
        if isinstance(checked_out, Err):
            return checked_out

        committed = self._step(
            f"bump {b.trunk} to {plan.next.trunk}",
            lambda: commit_version(
                repo=self._repo,
                repo_root=self._root,
                manifest=manifest,
                version=plan.next.trunk,
            ),
        )
        if isinstance(committed, Err):
            return committed

        if self._config.plugins.milestones and plan.slug is not None:
            created = self._create_milestone(plan.slug, plan.next)
            if isinstance(created, Err):
                return created
            stack.push(
                f"delete milestone {created.value.title}",
                partial(self._delete_milestone, plan.slug, created.value),
            )

        return Ok(None)

    def _record_for_reset(self, branch: str, stack: CompensationStack) -> Result[str, ShiftError]:
        sha = self._repo.hexsha(branch)
        if isinstance(sha, Err):
            return Err(from_git_error(sha.error))
        self._console.detail(f"{branch} is at {sha.value}")
        stack.push(f"reset {branch} to {sha.value[:7]}", partial(self._reset, branch, sha.value))
        return sha

    def _close_milestone(
        self, slug: RemoteSlug, current: Versions
    ) -> Result[Milestone, ShiftError]:
        title = milestone_title(current.release.base_string())
        self._console.run(f"close milestone {title}")
        closed = close_milestone(
            http=self._http,
            slug=slug,
            title=title,
            token=self._config.tokens.github,
        )
        if isinstance(closed, Err):
            self._console.fail(f"close milestone {title}: {closed.error.message}")
        return closed

    def _create_milestone(self, slug: RemoteSlug, nxt: Versions) -> Result[Milestone, ShiftError]:
        """Open the milestone of the next release cycle, titled for the new release version."""
        title = milestone_title(nxt.release.base_string())
        self._console.run(f"create milestone {title}")
        created = create_milestone(
            http=self._http,
            slug=slug,
            title=title,
            token=self._config.tokens.github,
        )
        if isinstance(created, Err):
            self._console.fail(f"create milestone {title}: {created.error.message}")
        return created

    # Compensations

    def _reset(self, branch: str, sha: str) -> Result[None, ShiftError]:
        return self._git(self._repo.reset_hard(branch, sha))

    def _delete_tag(self, name: str) -> Result[None, ShiftError]:
        return self._git(self._repo.delete_tag(name))

    def _reopen_milestone(self, slug: RemoteSlug, milestone: Milestone) -> Result[None, ShiftError]:
        return open_milestone(
            http=self._http,
            slug=slug,
            milestone=milestone,
            token=self._config.tokens.github,
        )

    def _delete_milestone(self, slug: RemoteSlug, milestone: Milestone) -> Result[None, ShiftError]:
        return delete_milestone(
            http=self._http,
            slug=slug,
            milestone=milestone,
            token=self._config.tokens.github,
        )

    # Helpers

    def _step(
        self,
        description: str,
        action: Callable[[], Result[T, ShiftError]],
    ) -> Result[T, ShiftError]:
        self._console.run(description)
        result = action()
        if isinstance(result, Err):
            self._console.fail(f"{description}: {result.error.message}")
            if result.error.stderr:
                self._console.detail(result.error.stderr)
        return result

    @staticmethod
    def _git(result: Result[T, GitError]) -> Result[T, ShiftError]:
        if isinstance(result, Err):
            return Err(from_git_error(result.error))
        return result

    def _checked_out_ref(self) -> Result[str, ShiftError]:
        """The branch to come back to, or the commit if HEAD is detached."""
        branch = self._repo.current_branch()
        if isinstance(branch, Err):
            return Err(from_git_error(branch.error))
        if branch.value is not None:
            return Ok(branch.value)

        sha = self._repo.hexsha("HEAD")
        if isinstance(sha, Err):
            return Err(from_git_error(sha.error))
        return Ok(sha.value)

    def _restore(self, ref: str) -> Result[None, ShiftError]:
        restored = self._git(self._repo.checkout(ref))
        if isinstance(restored, Err):
            self._console.fail(f"checkout {ref}: {restored.error.message}")
        else:
            self._console.detail(f"back on {ref}")
        return restored
