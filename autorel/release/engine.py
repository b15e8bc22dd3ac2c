"""Release engine.

``Release`` answers three questions about a commit range: which commits
(and pull requests) it contains, what version bump it warrants, and what its
release notes say. Per call it:

1. reads the git log and parses each entry,
2. drops commits already shipped in the latest release,
3. correlates commits without an explicit ``(#123)`` reference to pull
   requests (merge commit hash, then hash search),
4. runs the ``LogParse`` hooks: the engine's own "Pull Request Info" and
   "Author Info" taps first, then whatever plugins registered through
   ``hooks.on_create_log_parse``.

Remote lookups fan out over a bounded thread pool. Results are collected and
applied in a second pass, so output always follows log order. Every remote
lookup is cached for the duration of one call only.

Usage:
    release = Release(git=Repository(root), host=GhHost(...), console=console)
    release.hooks.on_create_log_parse.tap("bots", lambda parser: ...)

    match release.get_semver_bump("v1.2.0"):
        case Ok(""):
            print("nothing to release")
        case Ok(bump):
            print(bump)
        case Err(e):
            print(e.pretty())
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

from autorel.core.result import Err, Ok, Result
from autorel.git.repository import GitError, GitLog
from autorel.output.console import ConsoleProtocol, RichConsole
from autorel.release.authors import AuthorResolver, MemoCache
from autorel.release.changelog import ChangelogStore, FileChangelog, changelog_version
from autorel.release.changelog import add_to_changelog as write_changelog
from autorel.release.correlate import (
    CorrelationContext,
    build_hash_query,
    build_search_query,
    correlate,
)
from autorel.release.errors import ReleaseError
from autorel.release.host import HostClient, call_host
from autorel.release.labels import add_labels_to_project, get_version_map
from autorel.release.log_parse import Hook, LogParse, parse_raw_commit
from autorel.release.model import (
    Commit,
    LabelDefinition,
    LatestRelease,
    PullRequestRef,
    ReleaseBump,
    ReleaseOptions,
    SearchResult,
)
from autorel.release.notes import render_release_notes
from autorel.release.semver import calculate_semver_bump

__all__ = ["Release", "ReleaseHooks"]

SKIP_CI = "[skip ci]"


@dataclass(slots=True)
class ReleaseHooks:
    on_create_log_parse: Hook[Callable[[LogParse], None]] = field(default_factory=Hook)


def _git_error(e: GitError) -> ReleaseError:
    return ReleaseError(kind="git_failed", message=f"git {e.command} failed", hint=e.message)


def _merge_pull_request(known: PullRequestRef, fetched: PullRequestRef) -> PullRequestRef:
    return PullRequestRef(
        number=known.number,
        labels=fetched.labels or known.labels,
        merge_commit_sha=fetched.merge_commit_sha or known.merge_commit_sha,
        submitter=fetched.submitter or known.submitter,
    )


class _Session:
    """Remote lookups shared by one engine call."""

    def __init__(self, *, host: HostClient, console: ConsoleProtocol) -> None:
        self.host = host
        self.console = console
        self.authors = AuthorResolver(host=host, console=console)
        self._pull_requests: MemoCache[int, PullRequestRef | None] = MemoCache()
        self._hash_searches: MemoCache[str, SearchResult | None] = MemoCache()

    def pull_request(self, number: int) -> PullRequestRef | None:
        return self._pull_requests.get(
            number,
            lambda: call_host(
                lambda: self.host.get_pull_request(number),
                what=f"pull request #{number}",
                console=self.console,
            ),
        )

    def search_by_hash(self, sha: str) -> SearchResult | None:
        query = build_hash_query(self.host.owner, self.host.repo, sha)
        return self._hash_searches.get(
            sha,
            lambda: call_host(
                lambda: self.host.search_pull_requests(query),
                what=f"search for {sha[:8]}",
                console=self.console,
            ),
        )

    def attach_pull_request_info(self, commit: Commit) -> Commit:
        if commit.pull_request is None:
            return commit
        fetched = self.pull_request(commit.pull_request.number)
        if fetched is None:
            return commit
        return replace(commit, pull_request=_merge_pull_request(commit.pull_request, fetched))


class Release:
    """Computes release metadata for a commit range."""

    def __init__(
        self,
        *,
        git: GitLog,
        host: HostClient,
        options: ReleaseOptions | None = None,
        console: ConsoleProtocol | None = None,
        changelog: ChangelogStore | None = None,
    ) -> None:
        self.git = git
        self.host = host
        self.options = options or ReleaseOptions()
        self.console = console or RichConsole()
        self.changelog = changelog or FileChangelog(Path(self.options.changelog_path))
        self.hooks = ReleaseHooks()
        self.version_map = get_version_map(self.options.labels)

    # -- pipeline ----------------------------------------------------------

    def _map[T, R](self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        if len(items) <= 1:
            return [fn(item) for item in items]
        workers = max(1, min(self.options.max_workers, len(items)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(fn, item) for item in items]
            return [f.result() for f in futures]

    def _create_log_parse(self, session: _Session) -> LogParse:
        parser = LogParse()
        parser.hooks.parse_commit.tap("Pull Request Info", session.attach_pull_request_info)
        parser.hooks.parse_commit.tap("Author Info", session.authors.resolve)
        for tap in self.hooks.on_create_log_parse:
            tap(parser)
        return parser

    def _latest_release(self, session: _Session) -> LatestRelease | None:
        latest = call_host(
            self.host.get_latest_release,
            what="latest release",
            console=session.console,
        )
        if latest is None or not (latest.published_at or latest.tag_name):
            return None
        return latest

    def _search_anchor(self, latest: LatestRelease | None) -> str | None:
        if latest is not None and latest.published_at:
            return latest.published_at

        # No release yet: search from the first commit of the repository.
        first = self.git.first_commit()
        if isinstance(first, Err):
            self.console.verbose(f"first commit lookup failed: {first.error.message}")
            return None
        date = self.git.commit_date(first.value)
        if isinstance(date, Err):
            self.console.verbose(f"first commit date lookup failed: {date.error.message}")
            return None
        return date.value

    def _merged_pull_requests(
        self,
        session: _Session,
        commits: Sequence[Commit],
        since: str | None,
    ) -> tuple[PullRequestRef, ...]:
        query = build_search_query(self.host.owner, self.host.repo, commits, since=since)
        if query is None:
            return ()

        self.console.verbose(f"Searching merged pull requests: {query}")
        found = call_host(
            lambda: self.host.search_pull_requests(query),
            what="merged pull request search",
            console=session.console,
        )
        if found is None:
            return ()

        fetched = self._map(session.pull_request, [item.number for item in found.items])
        return tuple(pr for pr in fetched if pr is not None and pr.merge_commit_sha)

    def _is_released(self, commit: Commit, latest: LatestRelease | None) -> bool:
        if latest is None or not latest.tag_name:
            return False
        same_tree = self.git.diff_is_empty(latest.tag_name, commit.hash)
        if isinstance(same_tree, Err):
            # Unknown locally (e.g. shallow clone): keep the commit.
            self.console.verbose(f"diff against {latest.tag_name} failed: {same_tree.error.message}")
            return False
        return same_tree.value

    def _drop_released(
        self,
        commits: list[Commit],
        merged: tuple[PullRequestRef, ...],
        latest: LatestRelease | None,
    ) -> list[Commit]:
        merge_hashes = {pr.merge_commit_sha for pr in merged}
        kept: list[Commit] = []
        for commit in commits:
            if commit.hash in merge_hashes and self._is_released(commit, latest):
                self.console.print(f"Commit already released, omitting: {commit.hash}")
                continue
            kept.append(commit)
        return kept

    def _get_commits(
        self, session: _Session, from_ref: str, to_ref: str
    ) -> Result[list[Commit], ReleaseError]:
        raw = self.git.get_log(from_ref, to_ref)
        if isinstance(raw, Err):
            return Err(_git_error(raw.error))

        commits = [parse_raw_commit(entry) for entry in raw.value]
        if not commits:
            return Ok([])

        latest = self._latest_release(session)
        since = self._search_anchor(latest)
        merged = self._merged_pull_requests(session, commits, since)
        commits = self._drop_released(commits, merged, latest)

        context = CorrelationContext(merged=merged, search_by_hash=session.search_by_hash)
        matches = self._map(lambda c: correlate(c, context), commits)
        commits = [
            commit if pr is None or pr is commit.pull_request else replace(commit, pull_request=pr)
            for commit, pr in zip(commits, matches, strict=True)
        ]

        parser = self._create_log_parse(session)
        normalized = self._map(parser.normalize_commit, commits)
        return Ok([commit for commit in normalized if commit is not None])

    # -- public API --------------------------------------------------------

    def _session(self) -> _Session:
        return _Session(host=self.host, console=self.console)

    def get_commits(self, from_ref: str, to_ref: str = "HEAD") -> Result[list[Commit], ReleaseError]:
        """Commits in ``from_ref..to_ref`` with pull requests and authors attached."""
        return self._get_commits(self._session(), from_ref, to_ref)

    def get_commits_in_release(
        self, from_ref: str, to_ref: str = "HEAD"
    ) -> Result[list[Commit], ReleaseError]:
        """Like ``get_commits``, minus commits that only repeat a listed pull request.

        A commit without a pull request is dropped when its hash is part of a
        pull request that is already listed. ``[skip ci]`` commits are dropped.
        """
        session = self._session()
        commits = self._get_commits(session, from_ref, to_ref)
        if isinstance(commits, Err):
            return commits

        numbers = sorted({c.pull_request.number for c in commits.value if c.pull_request})
        pr_hashes: set[str] = set()
        for pr_commits in self._map(session.authors.pull_request_commits, numbers):
            pr_hashes.update(c.sha for c in pr_commits or ())

        return Ok(
            [
                commit
                for commit in commits.value
                if (commit.pull_request is not None or commit.hash not in pr_hashes)
                and SKIP_CI not in commit.subject
            ]
        )

    def get_semver_bump(
        self, from_ref: str, to_ref: str = "HEAD"
    ) -> Result[ReleaseBump | Literal[""], ReleaseError]:
        commits = self.get_commits_in_release(from_ref, to_ref)
        if isinstance(commits, Err):
            return commits
        return Ok(self.bump_for(commits.value))

    def bump_for(self, commits: Sequence[Commit]) -> ReleaseBump | Literal[""]:
        bump = calculate_semver_bump(
            [commit.labels for commit in commits],
            self.version_map,
            only_publish_with_release_label=self.options.only_publish_with_release_label,
        )
        self.console.verbose(f"Calculated SEMVER bump: {bump or '(none)'}")
        return bump

    def generate_release_notes(self, from_ref: str, to_ref: str = "HEAD") -> Result[str, ReleaseError]:
        commits = self.get_commits_in_release(from_ref, to_ref)
        if isinstance(commits, Err):
            return commits
        return Ok(self.notes_for(commits.value))

    def notes_for(self, commits: Sequence[Commit]) -> str:
        return render_release_notes(
            commits,
            version_map=self.version_map,
            headings=self.options.section_headings,
            host_url=self.options.host_url,
            author_section=self.options.author_section,
        )

    def add_to_changelog(
        self, release_notes: str, previous_tag: str, current_tag: str
    ) -> Result[str, ReleaseError]:
        """Prepend ``release_notes`` to the changelog; returns the version heading."""
        if self.options.dry_run:
            version = changelog_version(
                previous_tag, current_tag, no_version_prefix=self.options.no_version_prefix
            )
            self.console.print(f"[dry-run] would add {version} to the changelog")
            return Ok(version)

        result = write_changelog(
            store=self.changelog,
            release_notes=release_notes,
            previous_tag=previous_tag,
            current_tag=current_tag,
            no_version_prefix=self.options.no_version_prefix,
        )
        if isinstance(result, Ok):
            self.console.verbose(f"Added {result.value} to the changelog")
        return result

    def add_labels_to_project(
        self, labels: Sequence[LabelDefinition] | None = None
    ) -> Result[tuple[str, ...], ReleaseError]:
        return add_labels_to_project(
            host=self.host,
            labels=self.options.labels if labels is None else labels,
            only_publish_with_release_label=self.options.only_publish_with_release_label,
            console=self.console,
            dry_run=self.options.dry_run,
        )
