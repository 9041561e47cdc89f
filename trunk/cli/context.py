from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from trunk.core.config import Config, load_config
from trunk.core.errors import ErrorCode
from trunk.core.result import Err
from trunk.git.repository import Repository
from trunk.output.console import ConsoleProtocol, RichConsole
from trunk.platform.http import HttpClient, RealHttpClient


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo: Repository
    root: Path
    config: Config
    console: ConsoleProtocol
    http: HttpClient


def build_context(*, verbose: bool = False) -> CLIContext:
    root_result = Repository(Path.cwd()).repository_root()
    if isinstance(root_result, Err):
        typer.echo("error: not inside a git repository", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    root = root_result.value
    config_result = load_config(root)
    if isinstance(config_result, Err):
        e = config_result.error
        where = f" ({e.path})" if e.path is not None else ""
        typer.echo(f"error: {e.message}{where}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        repo=Repository(root),
        root=root,
        config=config_result.value,
        console=RichConsole(verbose=verbose),
        http=RealHttpClient(),
    )
