"""In-memory collaborators for tests.

``FakeHost``, ``FakeGit`` and ``MemoryChangelog`` implement the engine's
collaborator protocols from plain dictionaries. Entries may be an error
(returned as ``Err``) or an exception (raised), so failure handling can be
exercised without a network or a repository.
"""

from __future__ import annotations

import hashlib
import threading
from collections import Counter
from dataclasses import dataclass, field

from autorel.core.result import Err, Ok, Result
from autorel.git.repository import GitError
from autorel.release.errors import ReleaseError
from autorel.release.model import (
    HostUser,
    LabelDefinition,
    LatestRelease,
    PullRequestCommit,
    PullRequestRef,
    RawCommit,
    SearchResult,
)

_UNAVAILABLE = ReleaseError(kind="remote_unavailable", message="host unavailable")


def _answer[T](value: T | ReleaseError | Exception | None) -> Result[T, ReleaseError]:
    if isinstance(value, Exception):
        raise value
    if isinstance(value, ReleaseError):
        return Err(value)
    if value is None:
        return Err(ReleaseError(kind="not_found", message="not found"))
    return Ok(value)


@dataclass
class FakeHost:
    owner: str = "owner"
    repo: str = "repo"
    pull_requests: dict[int, PullRequestRef | ReleaseError | Exception] = field(default_factory=dict)
    pr_commits: dict[int, list[PullRequestCommit] | ReleaseError | Exception] = field(
        default_factory=dict
    )
    # Answer for the date-scoped merged pull request search.
    merged_search: SearchResult | ReleaseError | Exception = field(
        default_factory=lambda: SearchResult(items=(), total_count=0)
    )
    # Answers for hash searches, keyed by commit hash.
    hash_searches: dict[str, SearchResult | ReleaseError | Exception] = field(default_factory=dict)
    latest_release: LatestRelease | ReleaseError | Exception = field(
        default_factory=lambda: LatestRelease(tag_name="v1.0.0", published_at="2019-01-16T00:00:00Z")
    )
    users: dict[str, HostUser | ReleaseError | Exception] = field(default_factory=dict)
    commit_logins: dict[str, str | ReleaseError | Exception] = field(default_factory=dict)
    labels: list[str] = field(default_factory=list)
    fail_label_writes: bool = False
    url: str = "https://github.com/owner/repo"

    created: list[LabelDefinition] = field(default_factory=list)
    updated: list[LabelDefinition] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)
    calls: Counter[str] = field(default_factory=Counter)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    def get_pull_request(self, number: int) -> Result[PullRequestRef, ReleaseError]:
        self._count(f"pull_request:{number}")
        return _answer(self.pull_requests.get(number))

    def get_commits_for_pull_request(
        self, number: int
    ) -> Result[list[PullRequestCommit], ReleaseError]:
        self._count(f"pr_commits:{number}")
        return _answer(self.pr_commits.get(number, []))

    def search_pull_requests(self, query: str) -> Result[SearchResult, ReleaseError]:
        self._count("search")
        with self._lock:
            self.queries.append(query)
        for sha, answer in self.hash_searches.items():
            if query.endswith(f" {sha}"):
                return _answer(answer)
        if "merged:" in query or "author:" in query:
            return _answer(self.merged_search)
        return Ok(SearchResult(items=(), total_count=0))

    def get_latest_release(self) -> Result[LatestRelease, ReleaseError]:
        self._count("latest_release")
        return _answer(self.latest_release)

    def get_user_by_username(self, username: str) -> Result[HostUser, ReleaseError]:
        self._count(f"user:{username}")
        return _answer(self.users.get(username))

    def get_commit_detail(self, sha: str) -> Result[str | None, ReleaseError]:
        self._count(f"commit:{sha}")
        answer = self.commit_logins.get(sha)
        if answer is None:
            return Ok(None)
        return _answer(answer)

    def list_repository_labels(self) -> Result[list[str], ReleaseError]:
        return Ok(list(self.labels))

    def create_label(self, label: LabelDefinition) -> Result[None, ReleaseError]:
        if self.fail_label_writes:
            return Err(_UNAVAILABLE)
        self.created.append(label)
        return Ok(None)

    def update_label(self, label: LabelDefinition) -> Result[None, ReleaseError]:
        if self.fail_label_writes:
            return Err(_UNAVAILABLE)
        self.updated.append(label)
        return Ok(None)

    def repository_url(self) -> Result[str, ReleaseError]:
        return Ok(self.url)


@dataclass
class FakeGit:
    log: list[RawCommit] = field(default_factory=list)
    log_error: GitError | None = None
    # commit hash -> "tree equals the latest release" (missing: unknown revision)
    same_tree: dict[str, bool] = field(default_factory=dict)
    first: str | None = "root"
    dates: dict[str, str] = field(default_factory=lambda: {"root": "2018-06-01T00:00:00Z"})
    tag: str | None = None
    branch: str = "main"

    log_calls: list[tuple[str, str]] = field(default_factory=list)
    diff_calls: list[tuple[str, str]] = field(default_factory=list)

    def get_log(self, from_ref: str, to_ref: str = "HEAD") -> Result[list[RawCommit], GitError]:
        self.log_calls.append((from_ref, to_ref))
        if self.log_error is not None:
            return Err(self.log_error)
        return Ok(list(self.log))

    def diff_is_empty(self, a: str, b: str) -> Result[bool, GitError]:
        self.diff_calls.append((a, b))
        if b not in self.same_tree:
            return Err(GitError(command="diff", message=f"bad revision {b}", returncode=128))
        return Ok(self.same_tree[b])

    def first_commit(self) -> Result[str, GitError]:
        if self.first is None:
            return Err(GitError(command="rev-list", message="repository has no commits"))
        return Ok(self.first)

    def commit_date(self, sha: str) -> Result[str, GitError]:
        date = self.dates.get(sha)
        if date is None:
            return Err(GitError(command="show", message=f"no date for {sha}"))
        return Ok(date)

    def latest_tag(self) -> Result[str, GitError]:
        if self.tag is None:
            return Err(GitError(command="describe", message="no tags found"))
        return Ok(self.tag)

    def current_branch(self) -> Result[str, GitError]:
        return Ok(self.branch)

    def remote_url(self, name: str = "origin") -> Result[str, GitError]:
        return Ok("git@github.com:owner/repo.git")


@dataclass
class MemoryChangelog:
    text: str = ""
    fail_write: bool = False
    writes: int = 0

    def read(self) -> Result[str, ReleaseError]:
        return Ok(self.text)

    def write(self, text: str) -> Result[None, ReleaseError]:
        if self.fail_write:
            return Err(ReleaseError(kind="changelog_failed", message="disk full"))
        self.writes += 1
        self.text = text
        return Ok(None)


def raw_commit(
    message: str,
    *,
    sha: str | None = None,
    name: str = "Adam Dierkens",
    email: str = "adam@dierkens.com",
    date: str | None = "2019-01-20T10:00:00Z",
) -> RawCommit:
    """Log entry built from a commit message, like ``git log`` would return it."""
    return RawCommit(
        hash=sha or hashlib.sha1(message.encode("utf-8")).hexdigest(),
        author_name=name,
        author_email=email,
        subject=message,
        authored_date=date,
    )

