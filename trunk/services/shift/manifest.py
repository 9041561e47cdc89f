from __future__ import annotations

import json
import re
from pathlib import Path

from trunk.core.config import BranchesConfig
from trunk.core.result import Err, Ok, Result
from trunk.core.structured import as_str_dict, get_str
from trunk.git.repository import Repository
from trunk.platform.files import atomic_write_text
from trunk.services.shift.errors import ShiftError, from_git_error
from trunk.services.shift.semver import (
    ANY_VERSION_PATTERN,
    Version,
    Versions,
    parse_production_version,
    parse_release_version,
    parse_trunk_version,
)

_VERSION_FIELD_RE = re.compile(rf'("version"\s*:\s*"){ANY_VERSION_PATTERN}(")')


def read_version_at_branch(
    *,
    repo: Repository,
    branch: str,
    manifest: str,
) -> Result[str, ShiftError]:
    shown = repo.show_file_at_branch(branch, manifest)
    if isinstance(shown, Err):
        return Err(
            from_git_error(shown.error, message=f"branch {branch}: failed to read {manifest}")
        )

    try:
        obj: object = json.loads(shown.value)
    except json.JSONDecodeError as e:
        return Err(
            ShiftError(
                kind="manifest_invalid",
                message=f"branch {branch}: invalid JSON in {manifest}: {e}",
            )
        )

    data = as_str_dict(obj)
    if data is None:
        return Err(
            ShiftError(
                kind="manifest_invalid",
                message=f"branch {branch}: {manifest} root is not an object",
            )
        )

    version = get_str(data, "version")
    if version is None:
        return Err(
            ShiftError(
                kind="manifest_invalid",
                message=f"branch {branch}: missing version in {manifest}",
            )
        )
    return Ok(version)


def load_versions(
    *,
    repo: Repository,
    branches: BranchesConfig,
    manifest: str,
) -> Result[Versions, ShiftError]:
    """Read the version manifest at the tip of trunk, release and production."""
    parsed: list[Version] = []
    for branch, parse in (
        (branches.trunk, parse_trunk_version),
        (branches.release, parse_release_version),
        (branches.production, parse_production_version),
    ):
        raw = read_version_at_branch(repo=repo, branch=branch, manifest=manifest)
        if isinstance(raw, Err):
            return raw
        version = parse(raw.value)
        if isinstance(version, Err):
            e = version.error
            return Err(
                ShiftError(kind=e.kind, message=f"branch {branch}: {e.message}", hint=e.hint)
            )
        parsed.append(version.value)

    trunk, release, production = parsed
    return Ok(Versions(trunk=trunk, release=release, production=production))


def write_version(*, path: Path, version: Version) -> Result[None, ShiftError]:
    """Replace the version string in place, leaving every other byte alone."""
    try:
        text = path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Err(
            ShiftError(
                kind="manifest_invalid",
                message=f"failed to read {path.name}: {e}",
                hint=str(path),
            )
        )

    replaced, count = _VERSION_FIELD_RE.subn(
        lambda m: f"{m.group(1)}{version}{m.group(2)}", text, count=1
    )
    if count == 0:
        return Err(
            ShiftError(
                kind="version_string_not_found",
                message=f"{path.name}: failed to replace version string",
                hint=str(path),
            )
        )

    try:
        atomic_write_text(path, replaced)
    except OSError as e:
        return Err(
            ShiftError(
                kind="manifest_invalid",
                message=f"failed to write {path.name}: {e}",
                hint=str(path),
            )
        )
    return Ok(None)


def commit_version(
    *,
    repo: Repository,
    repo_root: Path,
    manifest: str,
    version: Version,
) -> Result[None, ShiftError]:
    """Write ``version`` into the manifest on the checked-out branch and commit it."""
    path = repo_root / manifest
    written = write_version(path=path, version=version)
    if isinstance(written, Err):
        return written

    added = repo.add(path)
    if isinstance(added, Err):
        return Err(from_git_error(added.error))

    committed = repo.commit(f"Bump version to {version}")
    if isinstance(committed, Err):
        return Err(from_git_error(committed.error))
    return Ok(None)
