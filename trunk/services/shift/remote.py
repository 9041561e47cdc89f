from __future__ import annotations

import re
from dataclasses import dataclass

from trunk.core.result import Err, Ok, Result
from trunk.git.repository import Repository
from trunk.services.shift.errors import ShiftError, from_git_error

# git@github.com:owner/repo.git, https://github.com/owner/repo,
# ssh://git@github.com/owner/repo.git
_GITHUB_REMOTE_RE = re.compile(
    r"^(?:git@github\.com:|https://(?:[^@/]+@)?github\.com/|ssh://git@github\.com/)"
    r"(?P<owner>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+?)(?:\.git)?/?$"
)


@dataclass(frozen=True, slots=True)
class RemoteSlug:
    owner: str
    repo: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_github_remote(url: str) -> Result[RemoteSlug, ShiftError]:
    m = _GITHUB_REMOTE_RE.match(url.strip())
    if m is None:
        return Err(
            ShiftError(
                kind="remote_invalid",
                message=f"not a GitHub remote: {url!r}",
                hint="Expected git@github.com:OWNER/REPO.git or https://github.com/OWNER/REPO",
            )
        )
    return Ok(RemoteSlug(owner=m.group("owner"), repo=m.group("repo")))


def resolve_remote_slug(*, repo: Repository, remote: str) -> Result[RemoteSlug, ShiftError]:
    url = repo.remote_url(remote)
    if isinstance(url, Err):
        return Err(from_git_error(url.error))
    return parse_github_remote(url.value)
