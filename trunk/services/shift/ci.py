from __future__ import annotations

from urllib.parse import quote

from trunk.core.result import Err, Ok, Result
from trunk.core.structured import as_obj_list, as_str_dict, get_str
from trunk.platform.http import HttpClient
from trunk.services.shift.errors import ShiftError
from trunk.services.shift.remote import RemoteSlug
from trunk.services.shift.tokens import validate_token

CIRCLECI_API_URL = "https://circleci.com/api/v1.1"


def build_status_url(slug: RemoteSlug, branch: str) -> str:
    # Branch names may contain slashes; the API wants them encoded.
    b = quote(branch, safe="")
    return f"{CIRCLECI_API_URL}/project/github/{slug.owner}/{slug.repo}/tree/{b}?limit=1"


def check_build_status(
    *,
    http: HttpClient,
    slug: RemoteSlug,
    branch: str,
    token: str,
) -> Result[None, ShiftError]:
    """Require the most recent CircleCI build of ``branch`` to be green."""
    valid = validate_token(token, service="circleci")
    if isinstance(valid, Err):
        return valid

    url = build_status_url(slug, branch)
    obj = http.request_json("GET", url, headers={"Circle-Token": valid.value})
    if isinstance(obj, Err):
        return Err(
            ShiftError(
                kind="service_failed",
                message=f"circleci: failed to fetch builds for {slug}@{branch}",
                hint=str(obj.error),
            )
        )

    builds = as_obj_list(obj.value)
    if builds is None:
        return Err(
            ShiftError(
                kind="service_failed",
                message=f"circleci: unexpected builds payload for {slug}@{branch}",
            )
        )

    if len(builds) != 1:
        return Err(
            ShiftError(
                kind="no_build_found",
                message=f"circleci: no build found for branch {branch}",
            )
        )

    build = as_str_dict(builds[0])
    status = get_str(build, "status") if build is not None else None
    if status != "success":
        return Err(
            ShiftError(
                kind="build_not_passing",
                message=f"circleci: build for branch {branch} is not passing (status: {status})",
            )
        )

    return Ok(None)
