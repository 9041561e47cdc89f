"""Shared fixtures: a working repository with trunk, release and production
branches, cloned from a local bare remote.

The remote is registered under a GitHub URL and rewritten to the bare
repository with ``url.<path>.insteadOf``, so owner/repo resolution sees
``acme/widget`` while fetch and push stay on disk.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

GITHUB_URL = "git@github.com:acme/widget.git"

PRODUCTION_VERSION = "2.3.0"
RELEASE_VERSION = "2.4.0-release"
TRUNK_VERSION = "2.4.0-dev"


def git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout


def write_manifest(root: Path, version: str, name: str = "package.json") -> None:
    data = {"name": "widget", "version": version, "private": True}
    (root / name).write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


@dataclass
class GitRepo:
    root: Path
    remote: Path

    def git(self, *args: str) -> str:
        return git(self.root, *args)

    def sha(self, ref: str) -> str:
        return self.git("rev-parse", f"{ref}^{{commit}}").strip()

    def remote_sha(self, ref: str) -> str:
        return git(self.remote, "rev-parse", f"{ref}^{{commit}}").strip()

    def version_at(self, branch: str, manifest: str = "package.json") -> str:
        data = json.loads(self.git("show", f"{branch}:{manifest}"))
        return str(data["version"])

    def branch(self) -> str:
        return self.git("rev-parse", "--abbrev-ref", "HEAD").strip()

    def tags(self) -> list[str]:
        return self.git("tag", "--list").split()

    def commit_version(self, branch: str, version: str) -> None:
        self.git("checkout", branch)
        write_manifest(self.root, version)
        self.git("commit", "-am", f"Set version {version}")


def _init_repo(tmp_path: Path) -> GitRepo:
    remote = tmp_path / "remote.git"
    root = tmp_path / "work"
    root.mkdir()

    git(tmp_path, "init", "--bare", str(remote))
    git(root, "init")
    git(root, "symbolic-ref", "HEAD", "refs/heads/master")
    git(root, "config", "user.name", "Release Bot")
    git(root, "config", "user.email", "release-bot@example.com")
    git(root, "config", "commit.gpgsign", "false")
    git(root, "config", "tag.gpgsign", "false")

    write_manifest(root, PRODUCTION_VERSION)
    git(root, "add", "package.json")
    git(root, "commit", "-m", "Initial commit")

    git(root, "checkout", "-b", "release")
    write_manifest(root, RELEASE_VERSION)
    git(root, "commit", "-am", f"Set version {RELEASE_VERSION}")

    git(root, "checkout", "-b", "develop")
    write_manifest(root, TRUNK_VERSION)
    git(root, "commit", "-am", f"Set version {TRUNK_VERSION}")

    git(root, "remote", "add", "origin", GITHUB_URL)
    git(root, "config", f"url.{remote}.insteadOf", GITHUB_URL)
    git(root, "push", "origin", "master", "release", "develop")
    git(root, "fetch", "origin")

    return GitRepo(root=root, remote=remote)


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    """Working copy on ``develop``, in sync with ``origin``."""
    if shutil.which("git") is None:
        pytest.skip("git not available")
    return _init_repo(tmp_path)
