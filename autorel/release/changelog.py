from __future__ import annotations

import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Protocol

from autorel.core.result import Err, Ok, Result
from autorel.release.errors import ReleaseError
from autorel.release.semver import parse_version


class ChangelogStore(Protocol):
    def read(self) -> Result[str, ReleaseError]:
        """Current changelog text; empty when there is no changelog yet."""
        ...

    def write(self, text: str) -> Result[None, ReleaseError]: ...


class FileChangelog:
    """Changelog stored as a file, replaced atomically on write."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def read(self) -> Result[str, ReleaseError]:
        try:
            # newline="" keeps the existing line endings untouched.
            with self.path.open(encoding="utf-8", newline="") as f:
                return Ok(f.read())
        except FileNotFoundError:
            return Ok("")
        except (OSError, UnicodeDecodeError) as e:
            return Err(
                ReleaseError(
                    kind="changelog_failed",
                    message=f"failed to read changelog: {self.path}",
                    hint=str(e),
                )
            )

    def write(self, text: str) -> Result[None, ReleaseError]:
        directory = self.path.parent
        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                newline="",
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(text)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            return Err(
                ReleaseError(
                    kind="changelog_failed",
                    message=f"failed to write changelog: {self.path}",
                    hint=str(e),
                )
            )
        return Ok(None)


def changelog_version(previous_tag: str, current_tag: str, *, no_version_prefix: bool) -> str:
    """Version shown in the changelog heading.

    ``current_tag`` is the version being released from; the heading names the
    next patch after it. When both tags are equal the tag is used as-is.
    """
    if current_tag == previous_tag:
        version = current_tag
    else:
        parsed = parse_version(current_tag)
        version = parsed.bump("patch").to_tag() if parsed is not None else current_tag

    if no_version_prefix:
        return version.removeprefix("v")
    return version


def render_changelog(
    release_notes: str,
    *,
    version: str,
    today: date,
    existing: str = "",
) -> str:
    block = f"# {version} ({today.isoformat()})\n\n{release_notes}\n"
    if not existing.strip():
        return block
    return f"{block}\n{existing}"


def add_to_changelog(
    *,
    store: ChangelogStore,
    release_notes: str,
    previous_tag: str,
    current_tag: str,
    no_version_prefix: bool = False,
    today: date | None = None,
) -> Result[str, ReleaseError]:
    """Prepend a release block to the changelog; returns the version written."""
    version = changelog_version(previous_tag, current_tag, no_version_prefix=no_version_prefix)

    existing = store.read()
    if isinstance(existing, Err):
        return existing

    text = render_changelog(
        release_notes,
        version=version,
        today=today or date.today(),
        existing=existing.value,
    )
    written = store.write(text)
    if isinstance(written, Err):
        return written
    return Ok(version)
