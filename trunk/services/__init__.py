"""Application services for git-trunk.

Services implement the commands, coordinating between the domain layer
(core/) and infrastructure (git/, platform/).
"""

from trunk.services.check import CheckReport, CheckService
from trunk.services.shift import ShiftOptions, ShiftService, ShiftState
from trunk.services.update import UpdateService

__all__ = [
    "CheckReport",
    "CheckService",
    "ShiftOptions",
    "ShiftService",
    "ShiftState",
    "UpdateService",
]
