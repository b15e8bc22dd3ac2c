"""Local git collaborator.

``Repository`` wraps the handful of git primitives the release engine needs:
reading a commit range, comparing two trees, and dating the first commit.
Every operation returns a Result; nothing here raises on git failures.

Usage:
    repo = Repository(Path("."))

    match repo.get_log("v1.2.0", "HEAD"):
        case Ok(commits):
            for c in commits:
                print(c.hash, c.subject.splitlines()[0])
        case Err(e):
            print(f"log failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from autorel.core.result import Err, Ok, Result
from autorel.platform.process import ProcessError
from autorel.platform.process import run as run_process
from autorel.release.model import RawCommit

_GIT_TIMEOUT_SECONDS = 30.0

# Record/field separators that cannot appear in commit metadata.
_RS = "\x1e"
_FS = "\x1f"
_LOG_FORMAT = f"{_RS}%H{_FS}%an{_FS}%ae{_FS}%aI{_FS}%B{_FS}"

__all__ = [
    "GitError",
    "GitLog",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class GitLog(Protocol):
    """What the release engine needs from local version control."""

    def get_log(self, from_ref: str, to_ref: str = "HEAD") -> Result[list[RawCommit], GitError]: ...

    def diff_is_empty(self, a: str, b: str) -> Result[bool, GitError]: ...

    def first_commit(self) -> Result[str, GitError]: ...

    def commit_date(self, sha: str) -> Result[str, GitError]: ...


class Repository:
    """Git primitives for a single checkout.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return (self.path / ".git").exists()

    def get_log(self, from_ref: str, to_ref: str = "HEAD") -> Result[list[RawCommit], GitError]:
        """Read the commits reachable from ``to_ref`` but not ``from_ref``.

        Newest first, as ``git log`` prints them. Touched file paths are
        included for every commit.
        """
        result = self._run(
            ["log", f"--format={_LOG_FORMAT}", "--name-only", f"{from_ref}..{to_ref}"]
        )
        match result:
            case Err(e):
                return Err(self._error("log", e, "git log failed"))
            case Ok(stdout):
                return Ok(parse_log(stdout))

    def diff_is_empty(self, a: str, b: str) -> Result[bool, GitError]:
        """Compare two trees via the exit code of ``git diff --quiet``.

        Exit 0 means identical trees, exit 1 means they differ. Anything else
        (unknown revision, shallow clone) is an error: the caller cannot tell.
        """
        result = self._run(["diff", "--quiet", a, b])
        match result:
            case Ok(_):
                return Ok(True)
            case Err(e) if e.returncode == 1:
                return Ok(False)
            case Err(e):
                return Err(self._error("diff", e, f"cannot diff {a} and {b}"))

    def first_commit(self) -> Result[str, GitError]:
        """Hash of the root commit (the oldest one when there are several)."""
        result = self._run(["rev-list", "--max-parents=0", "HEAD"])
        match result:
            case Err(e):
                return Err(self._error("rev-list", e, "cannot find first commit"))
            case Ok(stdout):
                lines = [ln.strip() for ln in stdout.splitlines() if ln.strip()]
                if not lines:
                    return Err(GitError(command="rev-list", message="repository has no commits"))
                return Ok(lines[-1])

    def commit_date(self, sha: str) -> Result[str, GitError]:
        """Authored date of ``sha`` in strict ISO-8601."""
        result = self._run(["show", "-s", "--format=%aI", sha])
        match result:
            case Err(e):
                return Err(self._error("show", e, f"cannot read date of {sha}"))
            case Ok(stdout):
                date = stdout.strip()
                if not date:
                    return Err(GitError(command="show", message=f"no date for {sha}"))
                return Ok(date)

    def latest_tag(self) -> Result[str, GitError]:
        result = self._run(["describe", "--tags", "--abbrev=0"])
        match result:
            case Err(e):
                return Err(self._error("describe", e, "no tags found"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def current_branch(self) -> Result[str, GitError]:
        """Checked-out branch name; ``HEAD`` when detached."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"])
        match result:
            case Err(e):
                return Err(self._error("rev-parse", e, "cannot read the current branch"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def remote_url(self, name: str = "origin") -> Result[str, GitError]:
        result = self._run(["remote", "get-url", name])
        match result:
            case Err(e):
                return Err(self._error("remote", e, f"no remote named {name}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        return run_process(
            ["git", "-C", str(self.path), *args], cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS
        )

    def _error(self, command: str, e: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=e.stderr.strip() or fallback,
            returncode=e.returncode,
        )


def parse_log(output: str) -> list[RawCommit]:
    """Parse ``git log --format=<_LOG_FORMAT> --name-only`` output."""
    commits: list[RawCommit] = []
    for record in output.split(_RS):
        if not record.strip():
            continue

        fields = record.split(_FS)
        if len(fields) < 5:
            continue

        sha, name, email, date, message = fields[:5]
        rest = fields[5] if len(fields) > 5 else ""
        files = tuple(ln.strip() for ln in rest.splitlines() if ln.strip())

        commits.append(
            RawCommit(
                hash=sha.strip(),
                author_name=name,
                author_email=email,
                subject=message.strip(),
                files=files,
                authored_date=date.strip() or None,
            )
        )
    return commits
