"""Release shift: versions, external status checks and the orchestrator."""

from trunk.services.shift.errors import ShiftError, ShiftErrorKind
from trunk.services.shift.semver import AUTO, Version, Versions, next_versions
from trunk.services.shift.service import ShiftOptions, ShiftPlan, ShiftService, ShiftState

__all__ = [
    "AUTO",
    "ShiftError",
    "ShiftErrorKind",
    "ShiftOptions",
    "ShiftPlan",
    "ShiftService",
    "ShiftState",
    "Version",
    "Versions",
    "next_versions",
]
