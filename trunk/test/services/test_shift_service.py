from __future__ import annotations

import os
import signal
import stat
from dataclasses import dataclass

import pytest

from trunk.core.config import Config, GlobalConfig, LocalConfig, PluginsConfig, TokensConfig
from trunk.core.result import Err, Ok, Result
from trunk.git.repository import Repository
from trunk.output.console import MockConsole
from trunk.platform.http import HttpError, MockHttpClient
from trunk.services.shift.errors import ShiftError
from trunk.services.shift.service import ShiftOptions, ShiftService, ShiftState
from trunk.test.conftest import GitRepo

CIRCLE_TOKEN = "c" * 40
GITHUB_TOKEN = "a" * 40

CI_URL = "https://circleci.com/api/v1.1/project/github/acme/widget/tree/release?limit=1"
MILESTONES = "https://api.github.com/repos/acme/widget/milestones"
MILESTONES_LIST = f"{MILESTONES}?state=open&per_page=100"

SUCCESS_STATES = [
    ShiftState.IDLE,
    ShiftState.PREFLIGHT_RUNNING,
    ShiftState.PREFLIGHT_PASSED,
    ShiftState.MUTATING,
    ShiftState.MUTATION_SUCCEEDED,
    ShiftState.PUSHED,
]


def _config(*, build_status: bool = True, milestones: bool = True) -> Config:
    return Config(
        local=LocalConfig(plugins=PluginsConfig(build_status=build_status, milestones=milestones)),
        global_=GlobalConfig(tokens=TokensConfig(github=GITHUB_TOKEN, circleci=CIRCLE_TOKEN)),
    )


def _http(*, build_status: str = "success") -> MockHttpClient:
    http = MockHttpClient()
    http.set_json("GET", CI_URL, [{"status": build_status, "build_num": 12}])
    http.set_json(
        "GET",
        MILESTONES_LIST,
        [{"number": 4, "title": "Release 2.4.0", "open_issues": 0}],
    )
    http.set_json("PATCH", f"{MILESTONES}/4", {"number": 4})
    http.set_json("POST", MILESTONES, {"number": 5, "title": "Release 2.5.0", "open_issues": 0})
    return http


@dataclass
class Snapshot:
    master: str
    release: str
    develop: str

    @classmethod
    def local(cls, repo: GitRepo) -> Snapshot:
        return cls(repo.sha("master"), repo.sha("release"), repo.sha("develop"))

    @classmethod
    def remote(cls, repo: GitRepo) -> Snapshot:
        return cls(*(repo.remote_sha(b) for b in ("master", "release", "develop")))


def _service(
    git_repo: GitRepo,
    http: MockHttpClient,
    *,
    config: Config | None = None,
    options: ShiftOptions | None = None,
    console: MockConsole | None = None,
) -> ShiftService:
    return ShiftService(
        repo=Repository(git_repo.root),
        repo_root=git_repo.root,
        config=config or _config(),
        console=console or MockConsole(),
        http=http,
        options=options,
    )


class TestSuccessfulShift:
    def test_versions_tag_and_push(self, git_repo: GitRepo) -> None:
        before = Snapshot.local(git_repo)
        http = _http()
        service = _service(git_repo, http)

        result = service.run()

        assert isinstance(result, Ok)
        assert str(result.value.production) == "2.4.0"
        assert str(result.value.release) == "2.5.0-release"
        assert str(result.value.trunk) == "2.6.0-dev"

        assert git_repo.version_at("master") == "2.4.0"
        assert git_repo.version_at("release") == "2.5.0-release"
        assert git_repo.version_at("develop") == "2.6.0-dev"

        # production is the old release plus one bump commit, and so on
        assert git_repo.sha("master~1") == before.release
        assert git_repo.sha("release~1") == before.develop
        assert git_repo.sha("develop~1") == before.develop

        assert "v2.4.0" in git_repo.tags()
        assert git_repo.sha("v2.4.0") == git_repo.sha("master")
        assert Snapshot.remote(git_repo) == Snapshot.local(git_repo)
        assert git_repo.remote_sha("refs/tags/v2.4.0") == git_repo.sha("master")

        assert service.states == SUCCESS_STATES
        assert git_repo.branch() == "develop"

    def test_milestones_closed_and_created(self, git_repo: GitRepo) -> None:
        http = _http()

        assert isinstance(_service(git_repo, http).run(), Ok)

        patches = http.calls_to("PATCH")
        assert [c.body for c in patches] == [{"state": "closed"}]
        posts = http.calls_to("POST")
        assert [c.body for c in posts] == [{"title": "Release 2.5.0"}]
        assert http.calls_to("DELETE") == []

    def test_requested_version(self, git_repo: GitRepo) -> None:
        http = _http()
        http.set_json("POST", MILESTONES, {"number": 6, "title": "Release 3.1.0"})

        result = _service(git_repo, http, options=ShiftOptions(requested="3.0.0")).run()

        assert isinstance(result, Ok)
        assert git_repo.version_at("master") == "3.0.0"
        assert git_repo.version_at("release") == "3.1.0-release"
        assert git_repo.version_at("develop") == "3.2.0-dev"
        assert "v3.0.0" in git_repo.tags()
        assert http.calls_to("POST")[0].body == {"title": "Release 3.1.0"}

    def test_restores_original_branch(self, git_repo: GitRepo) -> None:
        git_repo.git("checkout", "release")

        assert isinstance(_service(git_repo, _http()).run(), Ok)

        assert git_repo.branch() == "release"

    def test_restores_detached_head(self, git_repo: GitRepo) -> None:
        original = git_repo.sha("develop")
        git_repo.git("checkout", "--detach", "develop")

        assert isinstance(_service(git_repo, _http()).run(), Ok)

        assert git_repo.branch() == "HEAD"
        assert git_repo.sha("HEAD") == original

    def test_plugins_disabled_make_no_requests(self, git_repo: GitRepo) -> None:
        http = MockHttpClient()
        console = MockConsole()
        config = _config(build_status=False, milestones=False)

        result = _service(git_repo, http, config=config, console=console).run()

        assert isinstance(result, Ok)
        assert http.calls == []
        assert console.markers("SKIP") == ["build status of release", "milestone Release 2.4.0"]

    def test_skip_flags_skip_checks_only(self, git_repo: GitRepo) -> None:
        http = _http(build_status="failed")
        console = MockConsole()
        options = ShiftOptions(skip_build_check=True, skip_milestone_check=True)

        result = _service(git_repo, http, options=options, console=console).run()

        assert isinstance(result, Ok)
        assert [c.url for c in http.calls_to("GET")] == [MILESTONES_LIST]
        assert len(http.calls_to("PATCH")) == 1
        assert len(http.calls_to("POST")) == 1
        assert len(console.markers("SKIP")) == 2

    def test_logs_preflight_markers(self, git_repo: GitRepo) -> None:
        console = MockConsole()

        _service(git_repo, _http(), console=console).run()

        assert sorted(console.markers("GO")) == [
            "branches in sync with origin",
            "build status of release",
            "milestone Release 2.4.0",
        ]
        assert set(console.markers("GO")) <= set(console.markers("OK"))

    def test_interrupts_are_counted_not_raised(self, git_repo: GitRepo) -> None:
        class InterruptingHttp(MockHttpClient):
            def request_json(
                self,
                method: str,
                url: str,
                *,
                headers: dict[str, str] | None = None,
                body: object | None = None,
            ) -> Result[object, HttpError]:
                if method == "POST":
                    signal.raise_signal(signal.SIGINT)
                return super().request_json(method, url, headers=headers, body=body)

        http = InterruptingHttp()
        http.responses.update(_http().responses)
        console = MockConsole()
        handler = signal.getsignal(signal.SIGINT)

        result = _service(git_repo, http, console=console).run()

        assert isinstance(result, Ok)
        assert "warning: signal received but ignored" in console.messages
        assert "info: 1 interrupt(s) ignored during the shift" in console.messages
        assert signal.getsignal(signal.SIGINT) is handler


class TestPreflightFailures:
    def test_failing_build_aborts_without_mutation(self, git_repo: GitRepo) -> None:
        before = Snapshot.local(git_repo)
        http = _http(build_status="failed")
        service = _service(git_repo, http)

        result = service.run()

        assert isinstance(result, Err)
        assert result.error.kind == "actions_failed"
        assert "build status of release" in result.error.message
        assert Snapshot.local(git_repo) == before
        assert Snapshot.remote(git_repo) == before
        assert git_repo.tags() == []
        assert http.calls_to("PATCH") == []
        assert service.states == [
            ShiftState.IDLE,
            ShiftState.PREFLIGHT_RUNNING,
            ShiftState.PREFLIGHT_FAILED,
        ]
        failed = [r.name for r in service.preflight_results if not r.ok]
        assert failed == ["build status of release"]

    def test_all_failures_are_reported(self, git_repo: GitRepo) -> None:
        http = _http(build_status="failed")
        http.set_json(
            "GET",
            MILESTONES_LIST,
            [{"number": 4, "title": "Release 2.4.0", "open_issues": 1}],
        )
        service = _service(git_repo, http)

        result = service.run()

        assert isinstance(result, Err)
        assert len([r for r in service.preflight_results if not r.ok]) == 2

    def test_unpushed_commit_is_out_of_sync(self, git_repo: GitRepo) -> None:
        git_repo.commit_version("develop", "2.4.1-dev")

        result = _service(git_repo, _http()).run()

        assert isinstance(result, Err)
        assert result.error.kind == "actions_failed"
        assert "branches develop and origin/develop need merging" in (result.error.hint or "")

    def test_missing_token(self, git_repo: GitRepo) -> None:
        config = Config(global_=GlobalConfig(tokens=TokensConfig(circleci=CIRCLE_TOKEN)))
        http = _http()

        result = _service(git_repo, http, config=config).run()

        assert isinstance(result, Err)
        assert "github: token is not set" in (result.error.hint or "")
        assert all("api.github.com" not in c.url for c in http.calls)


class TestBeforePreflight:
    def test_dirty_working_tree(self, git_repo: GitRepo) -> None:
        (git_repo.root / "notes.txt").write_text("wip", encoding="utf-8")
        http = _http()
        service = _service(git_repo, http)

        result = service.run()

        assert isinstance(result, Err)
        assert result.error.kind == "dirty_repository"
        assert service.states == [ShiftState.IDLE]
        assert http.calls == []

    @pytest.mark.parametrize("requested", ["3.0", "3.0.0\n"])
    def test_invalid_requested_version(self, git_repo: GitRepo, requested: str) -> None:
        before = Snapshot.local(git_repo)
        options = ShiftOptions(requested=requested)

        result = _service(git_repo, _http(), options=options).run()

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_version_string"
        assert Snapshot.local(git_repo) == before

    def test_remote_not_on_github(self, git_repo: GitRepo) -> None:
        git_repo.git("remote", "set-url", "origin", str(git_repo.remote))

        result = _service(git_repo, _http()).run()

        assert isinstance(result, Err)
        assert result.error.kind == "remote_invalid"


class TestRollback:
    def test_milestone_close_failure_rolls_back_production(self, git_repo: GitRepo) -> None:
        before = Snapshot.local(git_repo)
        http = _http()
        del http.responses[("PATCH", f"{MILESTONES}/4")]
        console = MockConsole()
        service = _service(git_repo, http, console=console)

        result = service.run()

        assert isinstance(result, Err)
        assert result.error.kind == "service_failed"
        assert Snapshot.local(git_repo) == before
        assert Snapshot.remote(git_repo) == before
        assert git_repo.tags() == []
        # only the failed close, never a re-open
        assert [c.body for c in http.calls_to("PATCH")] == [{"state": "closed"}]
        assert service.states[-1] == ShiftState.MUTATION_FAILED
        assert ShiftState.PUSHED not in service.states
        assert git_repo.branch() == "develop"
        assert console.markers("OK")[-2:] == [
            "rollback: delete tag v2.4.0",
            f"rollback: reset master to {before.master[:7]}",
        ]

    def test_milestone_create_failure_unwinds_everything(self, git_repo: GitRepo) -> None:
        before = Snapshot.local(git_repo)
        http = _http()
        http.set_json("POST", MILESTONES, HttpError(url=MILESTONES, status=422, message="exists"))
        console = MockConsole()

        result = _service(git_repo, http, console=console).run()

        assert isinstance(result, Err)
        assert Snapshot.local(git_repo) == before
        assert git_repo.tags() == []
        assert [c.body for c in http.calls_to("PATCH")] == [
            {"state": "closed"},
            {"state": "open"},
        ]
        rollbacks = [m for m in console.markers("RUN") if m.startswith("rollback: ")]
        assert rollbacks == [
            f"rollback: reset develop to {before.develop[:7]}",
            f"rollback: reset release to {before.release[:7]}",
            "rollback: re-open milestone Release 2.4.0",
            "rollback: delete tag v2.4.0",
            f"rollback: reset master to {before.master[:7]}",
        ]
        assert git_repo.branch() == "develop"

    def test_manifest_without_version_rolls_back(self, git_repo: GitRepo) -> None:
        config = Config(
            local=LocalConfig(
                plugins=PluginsConfig(build_status=False, milestones=False),
                manifest="package.json",
            )
        )
        # the key is escaped, so the rewrite pattern cannot find it
        git_repo.git("checkout", "release")
        (git_repo.root / "package.json").write_text(
            '{"vers\\u0069on": "2.4.0-release"}\n',
            encoding="utf-8",
        )
        git_repo.git("commit", "-am", "Reformat manifest")
        git_repo.git("push", "origin", "release")
        git_repo.git("checkout", "develop")
        before = Snapshot.local(git_repo)

        result = _service(git_repo, MockHttpClient(), config=config).run()

        assert isinstance(result, Err)
        assert result.error.kind == "version_string_not_found"
        assert Snapshot.local(git_repo) == before
        assert git_repo.branch() == "develop"


class TestRestoreFailure:
    def test_checkout_failure_after_push(
        self, git_repo: GitRepo, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        service = _service(git_repo, _http())

        def restore(ref: str) -> Result[None, ShiftError]:
            return Err(ShiftError(kind="git_failed", message=f"checkout {ref} failed"))

        monkeypatch.setattr(service, "_restore", restore)

        result = service.run()

        assert isinstance(result, Err)
        assert result.error.message == "checkout develop failed"
        assert service.states == SUCCESS_STATES
        assert git_repo.remote_sha("master") == git_repo.sha("master")


@pytest.mark.skipif(os.name == "nt", reason="shell hooks")
class TestPushFailure:
    def test_push_failure_is_not_compensated(self, git_repo: GitRepo) -> None:
        hook = git_repo.remote / "hooks" / "pre-receive"
        hook.write_text("#!/bin/sh\necho 'push rejected by policy' >&2\nexit 1\n", encoding="utf-8")
        hook.chmod(hook.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        before = Snapshot.local(git_repo)
        service = _service(git_repo, _http())

        result = service.run()

        assert isinstance(result, Err)
        assert result.error.kind == "git_failed"
        assert "push rejected by policy" in result.error.stderr
        assert service.states[-1] == ShiftState.PUSH_FAILED
        assert git_repo.sha("master") != before.master
        assert "v2.4.0" in git_repo.tags()
        assert Snapshot.remote(git_repo) == before
        assert git_repo.branch() == "develop"
