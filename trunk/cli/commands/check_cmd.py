from __future__ import annotations

import typer

from trunk.cli.commands._helpers import VERBOSE_OPTION_HELP
from trunk.cli.context import build_context
from trunk.core.errors import ErrorCode
from trunk.output.console import Style
from trunk.services.check import CheckService


def check(
    remote: str = typer.Option("origin", "--remote", help="Remote holding the GitHub repository"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=VERBOSE_OPTION_HELP),
) -> None:
    """Check the repository is set up for release shifts."""
    ctx = build_context(verbose=verbose)

    b = ctx.config.branches
    ctx.console.print(f"repository: {ctx.root}", Style.DIM)
    ctx.console.print(
        f"branches: trunk={b.trunk} release={b.release} production={b.production}",
        Style.DIM,
    )
    ctx.console.print(f"manifest: {ctx.config.local.manifest}", Style.DIM)

    service = CheckService(repo=ctx.repo, config=ctx.config, console=ctx.console, remote=remote)
    report = service.run()

    failures = report.failures()
    if failures:
        ctx.console.newline()
        for r in failures:
            if r.error is not None and r.error.hint:
                ctx.console.print(f"{r.name}: hint: {r.error.hint}", Style.DIM)
        ctx.console.error(f"{len(failures)} check(s) failed")
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    ctx.console.success("all checks passed")
