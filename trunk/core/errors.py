"""Process exit codes.

The values are part of the command-line contract and must remain stable:
- 0: Success
- 1: User error (bad version string, invalid flags or config values)
- 2: Usage error (reserved, emitted by the argument parser)
- 3: Environment error (dirty tree, diverged branches, missing manifest)
- 4: Service error (CI or issue tracker refused or unreachable)
- 5: I/O error (manifest cannot be read or written)
- 6: Git error (a git subprocess failed)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    USAGE_ERROR = 2
    ENV_ERROR = 3
    SERVICE_ERROR = 4
    IO_ERROR = 5
    GIT_ERROR = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
