"""Git operations.

Usage:
    from trunk.git import Repository

    repo = Repository(Path("/path/to/repo"))
    match repo.current_branch():
        case Ok(branch):
            print(f"on {branch}")
        case Err(e):
            print(e.message)
"""

from trunk.git.repository import (
    GitError,
    GitErrorKind,
    Repository,
)

__all__ = [
    "GitError",
    "GitErrorKind",
    "Repository",
]
