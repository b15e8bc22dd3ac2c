from __future__ import annotations

import typer

from autorel.cli.commands._helpers import exit_with_code, resolve_from_ref, unwrap_or_exit
from autorel.cli.context import CLIContext, build_context
from autorel.core.errors import ErrorCode
from autorel.core.result import Err
from autorel.output.console import Style
from autorel.release.semver import next_version as bump_version
from autorel.release.semver import parse_version


def version(
    from_ref: str | None = typer.Option(None, "--from", help="Start ref (default: latest tag)"),
    to_ref: str = typer.Option("HEAD", "--to", help="End ref"),
) -> None:
    """Print the version bump (major/minor/patch) implied by merged pull requests."""
    ctx = build_context()
    start = resolve_from_ref(ctx, from_ref)
    bump = unwrap_or_exit(ctx.release.get_semver_bump(start, to_ref), ctx)
    typer.echo(bump)


def release_notes(
    from_ref: str | None = typer.Option(None, "--from", help="Start ref (default: latest tag)"),
    to_ref: str = typer.Option("HEAD", "--to", help="End ref"),
) -> None:
    """Print release notes for the commit range."""
    ctx = build_context()
    start = resolve_from_ref(ctx, from_ref)
    notes = unwrap_or_exit(ctx.release.generate_release_notes(start, to_ref), ctx)
    typer.echo(notes)


def _prerelease_id(ctx: CLIContext) -> str | None:
    """Prerelease id when a prerelease branch is checked out."""
    branch = ctx.repository.current_branch()
    if isinstance(branch, Err):
        ctx.console.verbose(f"cannot read the current branch: {branch.error.message}")
        return None

    name = branch.value
    if name in ctx.options.prerelease_branches:
        return name
    if name != ctx.options.base_branch:
        ctx.console.warning(
            f"{name} is neither {ctx.options.base_branch} nor a prerelease branch; releasing as latest"
        )
    return None


def changelog(
    from_ref: str | None = typer.Option(None, "--from", help="Start ref (default: latest tag)"),
    to_ref: str = typer.Option("HEAD", "--to", help="End ref"),
    next_version: str | None = typer.Option(
        None, "--version", help="Heading version (default: --from bumped by the computed bump)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be written"),
) -> None:
    """Prepend release notes for the commit range to the changelog."""
    ctx = build_context(dry_run=dry_run)
    console = ctx.console
    start = resolve_from_ref(ctx, from_ref)

    commits = unwrap_or_exit(ctx.release.get_commits_in_release(start, to_ref), ctx)
    notes = ctx.release.notes_for(commits)
    if not notes:
        console.info("No changes to add to the changelog")
        return

    if next_version is None:
        bump = ctx.release.bump_for(commits)
        if not bump:
            console.info("Nothing to release")
            return
        current = parse_version(start)
        if current is None:
            console.error(f"cannot compute the next version from {start}")
            console.print("hint: pass --version <tag>", Style.DIM)
            exit_with_code(ErrorCode.USER_ERROR)
        upcoming = bump_version(current, bump, prerelease_id=_prerelease_id(ctx))
        next_version = upcoming.to_tag(prefix=start.startswith("v"))

    if dry_run:
        console.header(next_version)
        console.print(notes)

    written = unwrap_or_exit(ctx.release.add_to_changelog(notes, next_version, next_version), ctx)
    if not dry_run:
        console.success(f"Added {written} to {ctx.options.changelog_path}")


def create_labels(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be created"),
) -> None:
    """Create or update the release labels on the repository."""
    ctx = build_context(dry_run=dry_run)
    unwrap_or_exit(ctx.release.add_labels_to_project(), ctx)
