from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import NoReturn

import typer

from autorel.core.config import CONFIG_FILE_NAME, load_config_or_default
from autorel.core.errors import ErrorCode
from autorel.core.result import Err
from autorel.git.repository import Repository
from autorel.output.console import ConsoleProtocol, RichConsole, Style
from autorel.release.changelog import FileChangelog
from autorel.release.engine import Release
from autorel.release.host import GhHost, ensure_gh_available
from autorel.release.model import ReleaseOptions

# Set by the app callback from --root/--repo/--verbose.
ROOT_ENV = "AUTOREL_ROOT"
REPO_ENV = "AUTOREL_REPO"
VERBOSE_ENV = "AUTOREL_VERBOSE"

_SLUG_RE = re.compile(
    r"(?:github\.com[:/]|^)(?P<owner>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+?)(?:\.git)?/?$"
)


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    options: ReleaseOptions
    console: ConsoleProtocol
    repository: Repository
    release: Release


def parse_repo_slug(value: str) -> tuple[str, str] | None:
    """``(owner, name)`` from ``owner/name`` or a GitHub remote URL."""
    m = _SLUG_RE.search(value.strip())
    if m is None:
        return None
    return (m.group("owner"), m.group("repo"))


def _fail(
    console: ConsoleProtocol, message: str, *, code: ErrorCode, hint: str | None = None
) -> NoReturn:
    console.error(message)
    if hint:
        console.print(f"hint: {hint}", Style.DIM)
    raise typer.Exit(code=int(code))


def _resolve_slug(repository: Repository, console: ConsoleProtocol) -> tuple[str, str]:
    source = os.environ.get(REPO_ENV)
    if not source:
        remote = repository.remote_url()
        if isinstance(remote, Err):
            _fail(
                console,
                "cannot determine the GitHub repository",
                code=ErrorCode.USER_ERROR,
                hint="pass --repo owner/name",
            )
        source = remote.value

    slug = parse_repo_slug(source)
    if slug is None:
        _fail(console, f"invalid repository: {source}", code=ErrorCode.USER_ERROR, hint="owner/name")
    return slug


def build_context(*, dry_run: bool = False) -> CLIContext:
    console = RichConsole(verbose=os.environ.get(VERBOSE_ENV) == "1")
    root = Path(os.environ.get(ROOT_ENV) or Path.cwd())

    config = load_config_or_default(root / CONFIG_FILE_NAME)
    if isinstance(config, Err):
        _fail(console, config.error.message, code=ErrorCode.CONFIG_ERROR)
    options = config.value
    if dry_run:
        options = replace(options, dry_run=True)

    repository = Repository(root)
    owner, repo = _resolve_slug(repository, console)

    gh = ensure_gh_available()
    if isinstance(gh, Err):
        _fail(console, gh.error.message, code=ErrorCode.NETWORK_ERROR, hint=gh.error.hint)

    release = Release(
        git=repository,
        host=GhHost(workspace_root=root, owner=owner, repo=repo),
        options=options,
        console=console,
        changelog=FileChangelog(root / options.changelog_path),
    )
    return CLIContext(
        root=root,
        options=options,
        console=console,
        repository=repository,
        release=release,
    )
