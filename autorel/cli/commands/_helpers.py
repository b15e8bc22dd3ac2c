"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from autorel.core.errors import ErrorCode
from autorel.core.result import Err, Result
from autorel.output.console import Style
from autorel.release.errors import ReleaseError

if TYPE_CHECKING:
    from autorel.cli.context import CLIContext


def release_error_code(error: ReleaseError) -> ErrorCode:
    match error.kind:
        case "changelog_failed":
            return ErrorCode.IO_ERROR
        case "git_failed":
            return ErrorCode.USER_ERROR
        case _:
            return ErrorCode.NETWORK_ERROR


def unwrap_or_exit[T](result: Result[T, ReleaseError], ctx: CLIContext) -> T:
    """Return the value of ``result`` or report the error and exit.

    The exit code follows the error kind (see ``release_error_code``).
    """
    if isinstance(result, Err):
        error = result.error
        ctx.console.error(error.message)
        if error.hint:
            ctx.console.print(f"hint: {error.hint}", Style.DIM)
        raise typer.Exit(code=int(release_error_code(error)))
    return result.value


def exit_with_code(code: ErrorCode) -> NoReturn:
    raise typer.Exit(code=int(code))


def resolve_from_ref(ctx: CLIContext, from_ref: str | None) -> str:
    """``from_ref``, else the latest tag, else the first commit."""
    if from_ref:
        return from_ref

    tag = ctx.repository.latest_tag()
    if not isinstance(tag, Err) and tag.value:
        return tag.value

    first = ctx.repository.first_commit()
    if isinstance(first, Err):
        ctx.console.error(first.error.message)
        ctx.console.print("hint: pass --from <ref>", Style.DIM)
        exit_with_code(ErrorCode.USER_ERROR)
    ctx.console.verbose(f"No tags found, starting from first commit {first.value[:8]}")
    return first.value
