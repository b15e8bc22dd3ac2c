from __future__ import annotations

import os
from pathlib import Path

import typer

from autorel import __version__
from autorel.cli.commands.release_cmd import changelog, create_labels, release_notes, version
from autorel.cli.context import REPO_ENV, ROOT_ENV, VERBOSE_ENV, parse_repo_slug
from autorel.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(version)
app.command("release-notes")(release_notes)
app.command()(changelog)
app.command("create-labels")(create_labels)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    show_version: bool = typer.Option(False, "--version", help="Show version and exit."),
    repo: str | None = typer.Option(
        None,
        "--repo",
        help="GitHub repository as owner/name (default: from the origin remote)",
    ),
    root: Path | None = typer.Option(None, "--root", help="Repository root (default: cwd)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show lookup details."),
) -> None:
    if show_version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if repo is not None:
        if parse_repo_slug(repo) is None:
            typer.echo(f"error: invalid --repo '{repo}' (expected owner/name)", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        os.environ[REPO_ENV] = repo

    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        os.environ[ROOT_ENV] = str(resolved)

    if verbose:
        os.environ[VERBOSE_ENV] = "1"


def main() -> None:
    app()
