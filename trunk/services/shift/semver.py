from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from trunk.core.result import Err, Ok, Result
from trunk.services.shift.errors import ShiftError

Variant = Literal["dev", "release", "production"]

AUTO = "auto"

_SUFFIXES: dict[Variant, str] = {
    "dev": "-dev",
    "release": "-release",
    "production": "",
}

_NUMBER = r"(0|[1-9][0-9]*)"
_BASE_PATTERN = rf"{_NUMBER}\.{_NUMBER}\.{_NUMBER}"
_PATTERNS: dict[Variant, re.Pattern[str]] = {
    variant: re.compile(rf"{_BASE_PATTERN}{re.escape(suffix)}")
    for variant, suffix in _SUFFIXES.items()
}

# Any variant, as embedded in a manifest file.
ANY_VERSION_PATTERN = r"[0-9]+\.[0-9]+\.[0-9]+(?:-release|-dev)?"

_MAX_COMPONENT = 2**64 - 1


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def bump_minor(self) -> SemVer:
        return SemVer(self.major, self.minor + 1, 0)


@dataclass(frozen=True, slots=True)
class Version:
    """A version string as it lives on one of the three branches."""

    base: SemVer
    variant: Variant

    def __str__(self) -> str:
        return f"{self.base}{_SUFFIXES[self.variant]}"

    def base_string(self) -> str:
        return str(self.base)

    def to_tag(self) -> str:
        return f"v{self.base}"

    @property
    def major(self) -> int:
        return self.base.major

    @property
    def minor(self) -> int:
        return self.base.minor

    @property
    def patch(self) -> int:
        return self.base.patch


@dataclass(frozen=True, slots=True)
class Versions:
    """The versions found on (or destined for) trunk, release and production."""

    trunk: Version
    release: Version
    production: Version


def parse_version(raw: str, variant: Variant) -> Result[Version, ShiftError]:
    m = _PATTERNS[variant].fullmatch(raw)
    if m is None:
        return Err(_invalid(raw, variant))

    parts = [int(m.group(i)) for i in (1, 2, 3)]
    if any(p > _MAX_COMPONENT for p in parts):
        return Err(_invalid(raw, variant))

    return Ok(Version(SemVer(*parts), variant))


def parse_trunk_version(raw: str) -> Result[Version, ShiftError]:
    return parse_version(raw, "dev")


def parse_release_version(raw: str) -> Result[Version, ShiftError]:
    return parse_version(raw, "release")


def parse_production_version(raw: str) -> Result[Version, ShiftError]:
    return parse_version(raw, "production")


def next_versions(current: Versions, requested: str) -> Result[Versions, ShiftError]:
    """Compute the versions a shift leaves behind.

    The new production version is either the current production version with
    its minor number bumped ("auto") or the requested bare version. Release
    then sits one minor version above production and trunk one above release.
    """
    if requested == AUTO:
        base = current.production.base.bump_minor()
    else:
        parsed = parse_production_version(requested)
        if isinstance(parsed, Err):
            return parsed
        base = parsed.value.base

    release = base.bump_minor()
    trunk = release.bump_minor()
    return Ok(
        Versions(
            trunk=Version(trunk, "dev"),
            release=Version(release, "release"),
            production=Version(base, "production"),
        )
    )


def _invalid(raw: str, variant: Variant) -> ShiftError:
    expected = f"MAJOR.MINOR.PATCH{_SUFFIXES[variant]}"
    return ShiftError(
        kind="invalid_version_string",
        message=f"invalid {variant} version string: {raw!r}",
        hint=f"Expected {expected}",
    )
