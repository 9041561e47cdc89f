from __future__ import annotations

import typer

from trunk.cli.commands._helpers import VERBOSE_OPTION_HELP, exit_on_error
from trunk.cli.context import build_context
from trunk.services.update import UpdateService


def update(
    upstream: str = typer.Option("upstream", "--upstream", help="Remote to fast-forward from"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OPTION_HELP),
) -> None:
    """Fast-forward the trunk branch from the upstream remote."""
    ctx = build_context(verbose=verbose)

    service = UpdateService(
        repo=ctx.repo,
        branches=ctx.config.branches,
        console=ctx.console,
        upstream=upstream,
    )
    exit_on_error(service.run(), ctx.console)
