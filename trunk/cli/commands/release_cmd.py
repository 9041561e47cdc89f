from __future__ import annotations

import typer

from trunk.cli.commands._helpers import VERBOSE_OPTION_HELP, exit_on_error
from trunk.cli.context import build_context
from trunk.services.shift import AUTO, ShiftOptions, ShiftService


def release(
    remote: str = typer.Option("origin", "--remote", help="Remote to sync with and push to"),
    next_version: str = typer.Option(
        AUTO,
        "--next",
        help="Production version to release (M.m.p), or 'auto' to bump the minor version",
    ),
    skip_build_check: bool = typer.Option(
        False, "--skip-build-check", help="Do not require a green CI build"
    ),
    skip_milestone_check: bool = typer.Option(
        False, "--skip-milestone-check", help="Do not require a closable milestone"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OPTION_HELP),
) -> None:
    """Shift trunk, release and production to the next release cycle."""
    ctx = build_context(verbose=verbose)

    service = ShiftService(
        repo=ctx.repo,
        repo_root=ctx.root,
        config=ctx.config,
        console=ctx.console,
        http=ctx.http,
        options=ShiftOptions(
            remote=remote,
            requested=next_version,
            skip_build_check=skip_build_check,
            skip_milestone_check=skip_milestone_check,
        ),
    )
    exit_on_error(service.run(), ctx.console)
