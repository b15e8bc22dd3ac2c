"""Pull request correlation for commits without an explicit reference.

Strategies are tried in order; the first one returning a ``PullRequestRef``
wins:

1. the ``(#123)`` reference already parsed from the subject,
2. a merged pull request whose merge commit hash equals the commit hash
   (squash/rebase merges, found through a date-scoped search),
3. a search for the commit hash itself, accepted only on a single hit.

Each strategy is a plain function of ``(commit, context)``. Remote access is
injected through ``CorrelationContext`` so strategies stay testable.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from autorel.release.model import Author, Commit, PullRequestRef, SearchResult

__all__ = [
    "CorrelationContext",
    "STRATEGIES",
    "Strategy",
    "build_hash_query",
    "build_search_query",
    "correlate",
    "match_explicit_reference",
    "match_hash_search",
    "match_merge_commit",
]

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_NOREPLY_RE = re.compile(
    r"^(?:\d+\+)?(?P<login>[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)@users\.noreply\.github\.com$",
    re.IGNORECASE,
)
_NEEDS_QUOTES_RE = re.compile(r'[\s"():]')


@dataclass(frozen=True, slots=True)
class CorrelationContext:
    # Merged pull requests found for the release window, with merge commit hashes.
    merged: tuple[PullRequestRef, ...] = ()
    search_by_hash: Callable[[str], SearchResult | None] | None = None


Strategy = Callable[[Commit, CorrelationContext], PullRequestRef | None]


def match_explicit_reference(commit: Commit, context: CorrelationContext) -> PullRequestRef | None:
    return commit.pull_request


def match_merge_commit(commit: Commit, context: CorrelationContext) -> PullRequestRef | None:
    for pr in context.merged:
        if pr.merge_commit_sha and pr.merge_commit_sha == commit.hash:
            return pr
    return None


def match_hash_search(commit: Commit, context: CorrelationContext) -> PullRequestRef | None:
    if context.search_by_hash is None:
        return None

    result = context.search_by_hash(commit.hash)
    # Zero or several candidates: no match rather than a guess.
    if result is None or result.total_count != 1 or len(result.items) != 1:
        return None

    item = result.items[0]
    return PullRequestRef(number=item.number, labels=item.labels)


STRATEGIES: tuple[Strategy, ...] = (
    match_explicit_reference,
    match_merge_commit,
    match_hash_search,
)


def correlate(
    commit: Commit,
    context: CorrelationContext,
    strategies: Sequence[Strategy] = STRATEGIES,
) -> PullRequestRef | None:
    for strategy in strategies:
        pr = strategy(commit, context)
        if pr is not None:
            return pr
    return None


def _day(date: str | None) -> str | None:
    if not date:
        return None
    m = _DAY_RE.match(date.strip())
    return m.group(0) if m else None


def _quote(value: str) -> str:
    if not _NEEDS_QUOTES_RE.search(value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _login_of(author: Author) -> str | None:
    if author.username:
        return author.username
    if author.email:
        m = _NOREPLY_RE.match(author.email.strip())
        if m:
            return m.group("login")
    return None


def _author_logins(commits: Sequence[Commit]) -> list[str] | None:
    """Distinct logins of all commit authors, or None when one has no known login."""
    logins: list[str] = []
    for commit in commits:
        authors = commit.authors or (Author(name=commit.author_name, email=commit.author_email),)
        for author in authors:
            login = _login_of(author)
            if login is None:
                return None
            if login not in logins:
                logins.append(login)
    return logins


def build_search_query(
    owner: str,
    repo: str,
    commits: Sequence[Commit],
    *,
    since: str | None = None,
) -> str | None:
    """Search query for merged pull requests that may contain ``commits``.

    Scoped to the repository, merged pull requests and merges on or after
    ``since`` (else the earliest authored date). The window stays open at the
    top: a rebase merge keeps the authored date but lands later.

    ``author:`` qualifiers (OR-ed by GitHub) are added only when every commit
    author has a known login. A plain email cannot be searched, and leaving
    its author out of the list would exclude that author's pull requests.
    Returns None for an empty commit list.
    """
    if not commits:
        return None

    parts = [f"repo:{_quote(f'{owner}/{repo}')}", "is:pr", "is:merged"]

    days = [d for d in (_day(c.authored_date) for c in commits) if d is not None]
    lower = _day(since) or min(days, default=None)
    if lower is not None:
        parts.append(f"merged:{lower}..*")

    logins = _author_logins(commits)
    if logins is not None:
        parts.extend(f"author:{_quote(login)}" for login in logins)
    return " ".join(parts)


def build_hash_query(owner: str, repo: str, sha: str) -> str:
    return f"repo:{_quote(f'{owner}/{repo}')} is:pr is:merged {sha}"
