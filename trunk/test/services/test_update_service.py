from __future__ import annotations

import pytest

from trunk.core.config import BranchesConfig
from trunk.core.result import Err, Ok, Result
from trunk.git.repository import Repository
from trunk.output.console import MockConsole
from trunk.services.shift.errors import ShiftError
from trunk.services.update import UpdateService
from trunk.test.conftest import GitRepo, git, write_manifest


@pytest.fixture
def upstream_repo(git_repo: GitRepo) -> GitRepo:
    """``git_repo`` with an ``upstream`` remote one commit ahead on develop."""
    other = git_repo.root.parent / "other"
    git(git_repo.root.parent, "clone", "-q", "-b", "develop", str(git_repo.remote), str(other))
    git(other, "config", "user.name", "Upstream Dev")
    git(other, "config", "user.email", "upstream@example.com")
    git(other, "config", "commit.gpgsign", "false")
    write_manifest(other, "2.4.1-dev")
    git(other, "commit", "-am", "Upstream change")
    git(other, "push", "-q", "origin", "develop")

    git_repo.git("remote", "add", "upstream", str(git_repo.remote))
    return git_repo


def _update(repo: GitRepo, console: MockConsole | None = None) -> Result[None, ShiftError]:
    return UpdateService(
        repo=Repository(repo.root),
        branches=BranchesConfig(),
        console=console or MockConsole(),
    ).run()


class TestUpdate:
    def test_fast_forwards_trunk(self, upstream_repo: GitRepo) -> None:
        console = MockConsole()

        result = _update(upstream_repo, console)

        assert result == Ok(None)
        assert upstream_repo.sha("develop") == upstream_repo.remote_sha("develop")
        assert upstream_repo.version_at("develop") == "2.4.1-dev"
        assert console.markers("OK") == ["develop is up to date with upstream/develop"]

    def test_returns_to_original_branch(self, upstream_repo: GitRepo) -> None:
        upstream_repo.git("checkout", "release")

        assert _update(upstream_repo) == Ok(None)

        assert upstream_repo.branch() == "release"
        assert upstream_repo.sha("develop") == upstream_repo.remote_sha("develop")

    def test_diverged_trunk_is_left_alone(self, upstream_repo: GitRepo) -> None:
        upstream_repo.commit_version("develop", "2.4.2-dev")
        before = upstream_repo.sha("develop")
        upstream_repo.git("checkout", "master")

        result = _update(upstream_repo)

        assert isinstance(result, Err)
        assert result.error.kind == "git_failed"
        assert upstream_repo.sha("develop") == before
        assert upstream_repo.branch() == "master"

    def test_missing_upstream(self, git_repo: GitRepo) -> None:
        console = MockConsole()

        result = _update(git_repo, console)

        assert isinstance(result, Err)
        assert console.markers("FAIL")[0].startswith("fetch upstream: ")
        assert git_repo.branch() == "develop"
