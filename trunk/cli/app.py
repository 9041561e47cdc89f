from __future__ import annotations

import typer

from trunk import __version__
from trunk.cli.commands.check_cmd import check
from trunk.cli.commands.release_cmd import release
from trunk.cli.commands.update_cmd import update

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Release shifts for trunk-based git repositories.",
)


# Commands
app.command()(release)
app.command()(check)
app.command()(update)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    del version


def main() -> None:
    app()
