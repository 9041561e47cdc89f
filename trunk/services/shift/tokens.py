from __future__ import annotations

import re

from trunk.core.result import Err, Ok, Result
from trunk.services.shift.errors import ShiftError

_TOKEN_RE = re.compile(r"[0-9a-f]{40}")


def validate_token(token: str, *, service: str) -> Result[str, ShiftError]:
    """Check the shape of an API token before it is sent anywhere."""
    if not token:
        return Err(
            ShiftError(
                kind="token_missing",
                message=f"{service}: token is not set",
                hint=f"Set tokens.{service} in ~/.trunk.yml",
            )
        )
    if _TOKEN_RE.fullmatch(token) is None:
        return Err(
            ShiftError(
                kind="token_invalid",
                message=f"{service}: invalid token",
                hint="Expected 40 lowercase hexadecimal characters",
            )
        )
    return Ok(token)
