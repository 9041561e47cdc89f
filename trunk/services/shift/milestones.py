"""GitHub milestones for release cycles.

Each release cycle has a milestone titled ``Release <M.m.p>``. A shift
requires the milestone of the outgoing release to exist with no open
issues, closes it, and opens the one for the next release.
"""

from __future__ import annotations

from dataclasses import dataclass

from trunk.core.result import Err, Ok, Result
from trunk.core.structured import as_obj_list, as_str_dict, get_int, get_str
from trunk.platform.http import HttpClient, HttpError
from trunk.services.shift.errors import ShiftError
from trunk.services.shift.remote import RemoteSlug
from trunk.services.shift.tokens import validate_token

GITHUB_API_URL = "https://api.github.com"

_TITLE_PREFIX = "Release "


@dataclass(frozen=True, slots=True)
class Milestone:
    number: int
    title: str
    open_issues: int


def milestone_title(base_version: str) -> str:
    return f"{_TITLE_PREFIX}{base_version}"


def milestones_url(slug: RemoteSlug) -> str:
    return f"{GITHUB_API_URL}/repos/{slug.owner}/{slug.repo}/milestones"


def find_milestone(
    *,
    http: HttpClient,
    slug: RemoteSlug,
    title: str,
    token: str,
) -> Result[Milestone, ShiftError]:
    """Look up an open milestone by its exact title."""
    headers = _auth_headers(token)
    if isinstance(headers, Err):
        return headers

    url = f"{milestones_url(slug)}?state=open&per_page=100"
    obj = http.request_json("GET", url, headers=headers.value)
    if isinstance(obj, Err):
        return Err(_service_failed(f"failed to list milestones for {slug}", obj.error))

    items = as_obj_list(obj.value)
    if items is None:
        return Err(
            ShiftError(
                kind="service_failed",
                message=f"github: unexpected milestones payload for {slug}",
            )
        )

    for item in items:
        milestone = _parse_milestone(item)
        if milestone is not None and milestone.title == title:
            return Ok(milestone)

    return Err(
        ShiftError(
            kind="milestone_not_found",
            message=f"github: milestone not found: {title}",
            hint=f"Create an open milestone named {title!r} in {slug}",
        )
    )


def check_milestone(
    *,
    http: HttpClient,
    slug: RemoteSlug,
    title: str,
    token: str,
) -> Result[Milestone, ShiftError]:
    """Require the milestone to exist and to have no open issues."""
    found = find_milestone(http=http, slug=slug, title=title, token=token)
    if isinstance(found, Err):
        return found

    milestone = found.value
    if milestone.open_issues != 0:
        return Err(
            ShiftError(
                kind="milestone_not_closable",
                message=(
                    f"github: milestone {title} cannot be closed "
                    f"({milestone.open_issues} open issues)"
                ),
            )
        )
    return Ok(milestone)


def close_milestone(
    *,
    http: HttpClient,
    slug: RemoteSlug,
    title: str,
    token: str,
) -> Result[Milestone, ShiftError]:
    found = find_milestone(http=http, slug=slug, title=title, token=token)
    if isinstance(found, Err):
        return found

    updated = _set_state(http=http, slug=slug, milestone=found.value, state="closed", token=token)
    if isinstance(updated, Err):
        return updated
    return Ok(found.value)


def open_milestone(
    *,
    http: HttpClient,
    slug: RemoteSlug,
    milestone: Milestone,
    token: str,
) -> Result[None, ShiftError]:
    return _set_state(http=http, slug=slug, milestone=milestone, state="open", token=token)


def create_milestone(
    *,
    http: HttpClient,
    slug: RemoteSlug,
    title: str,
    token: str,
) -> Result[Milestone, ShiftError]:
    headers = _auth_headers(token)
    if isinstance(headers, Err):
        return headers

    obj = http.request_json(
        "POST",
        milestones_url(slug),
        headers=headers.value,
        body={"title": title},
    )
    if isinstance(obj, Err):
        return Err(_service_failed(f"failed to create milestone {title}", obj.error))

    milestone = _parse_milestone(obj.value)
    if milestone is None:
        return Err(
            ShiftError(
                kind="service_failed",
                message=f"github: unexpected payload after creating milestone {title}",
            )
        )
    return Ok(milestone)


def delete_milestone(
    *,
    http: HttpClient,
    slug: RemoteSlug,
    milestone: Milestone,
    token: str,
) -> Result[None, ShiftError]:
    headers = _auth_headers(token)
    if isinstance(headers, Err):
        return headers

    url = f"{milestones_url(slug)}/{milestone.number}"
    obj = http.request_json("DELETE", url, headers=headers.value)
    if isinstance(obj, Err):
        return Err(_service_failed(f"failed to delete milestone {milestone.title}", obj.error))
    return Ok(None)


def _set_state(
    *,
    http: HttpClient,
    slug: RemoteSlug,
    milestone: Milestone,
    state: str,
    token: str,
) -> Result[None, ShiftError]:
    headers = _auth_headers(token)
    if isinstance(headers, Err):
        return headers

    url = f"{milestones_url(slug)}/{milestone.number}"
    obj = http.request_json("PATCH", url, headers=headers.value, body={"state": state})
    if isinstance(obj, Err):
        return Err(
            _service_failed(f"failed to set milestone {milestone.title} {state}", obj.error)
        )
    return Ok(None)


def _auth_headers(token: str) -> Result[dict[str, str], ShiftError]:
    valid = validate_token(token, service="github")
    if isinstance(valid, Err):
        return valid
    return Ok({"Authorization": f"token {valid.value}"})


def _parse_milestone(obj: object) -> Milestone | None:
    data = as_str_dict(obj)
    if data is None:
        return None
    number = get_int(data, "number")
    title = get_str(data, "title")
    if number is None or title is None:
        return None
    open_issues = get_int(data, "open_issues")
    return Milestone(number=number, title=title, open_issues=open_issues or 0)


def _service_failed(message: str, error: HttpError) -> ShiftError:
    return ShiftError(kind="service_failed", message=f"github: {message}", hint=str(error))
