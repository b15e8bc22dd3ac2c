"""Commit normalization.

``parse_raw_commit`` turns a git log entry into a ``Commit``: it extracts the
explicit pull request reference from the subject and the co-author trailers
from the body. ``LogParse`` then runs the extension hooks over every commit:

1. ``parse_commit`` taps transform the commit (the release engine taps it to
   attach pull request data and resolved authors),
2. ``omit_commit`` taps drop the commit when any of them returns True,
3. ``omit_author`` taps remove individual authors.

Each tap only ever sees the commit it is called with, so a pipeline can run
over commits in any order, or concurrently, and give the same result.

Usage:
    parser = LogParse()
    parser.hooks.omit_commit.tap("bots", lambda c: c.author_name.endswith("[bot]"))
    commits = parser.normalize_commits(raw_commits)
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field, replace

from autorel.release.model import Author, Commit, PullRequestRef, RawCommit, merge_authors

__all__ = [
    "Hook",
    "LogParse",
    "LogParseHooks",
    "parse_raw_commit",
]

_SQUASH_PR_RE = re.compile(r"^(?P<subject>.*?)\s*\(#(?P<number>\d+)\)\s*$")
_MERGE_PR_RE = re.compile(r"^Merge pull request #(?P<number>\d+) from \S+")
_CO_AUTHOR_RE = re.compile(
    r"^\s*co-authored-by:\s*(?P<name>[^<]*?)\s*<(?P<email>[^>]+)>\s*$",
    re.IGNORECASE | re.MULTILINE,
)


class Hook[F]:
    """Ordered, named list of callbacks."""

    def __init__(self) -> None:
        self._taps: list[tuple[str, F]] = []

    def tap(self, name: str, fn: F) -> None:
        self._taps.append((name, fn))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self._taps]

    def __iter__(self) -> Iterator[F]:
        return iter([fn for _, fn in self._taps])

    def __len__(self) -> int:
        return len(self._taps)


@dataclass(slots=True)
class LogParseHooks:
    parse_commit: Hook[Callable[[Commit], Commit]] = field(default_factory=Hook)
    omit_commit: Hook[Callable[[Commit], bool]] = field(default_factory=Hook)
    omit_author: Hook[Callable[[Author], bool]] = field(default_factory=Hook)


def _split_message(message: str) -> tuple[str, str]:
    lines = message.strip().splitlines()
    if not lines:
        return ("", "")
    return (lines[0].strip(), "\n".join(lines[1:]).strip())


def parse_raw_commit(raw: RawCommit) -> Commit:
    """Parse a log entry without running any hook."""
    subject, body = _split_message(raw.subject)
    pull_request: PullRequestRef | None = None

    squash = _SQUASH_PR_RE.match(subject)
    merge = _MERGE_PR_RE.match(subject)
    if squash is not None:
        pull_request = PullRequestRef(number=int(squash.group("number")))
        subject = squash.group("subject")
    elif merge is not None:
        pull_request = PullRequestRef(number=int(merge.group("number")))
        # The PR title is the first body line of a GitHub merge commit.
        title, body = _split_message(body)
        subject = title or subject

    authors = [Author(name=raw.author_name or None, email=raw.author_email or None)]
    for m in _CO_AUTHOR_RE.finditer(body):
        authors.append(Author(name=m.group("name") or None, email=m.group("email").strip()))

    return Commit(
        hash=raw.hash,
        subject=subject,
        body=body,
        author_name=raw.author_name,
        author_email=raw.author_email,
        authors=merge_authors([a for a in authors if a.name or a.email]),
        pull_request=pull_request,
        files=raw.files,
        authored_date=raw.authored_date,
    )


class LogParse:
    """Per-invocation normalization pipeline."""

    def __init__(self) -> None:
        self.hooks = LogParseHooks()

    def normalize_commit(self, commit: RawCommit | Commit) -> Commit | None:
        """Run every hook over one commit; None means the commit is omitted."""
        parsed = parse_raw_commit(commit) if isinstance(commit, RawCommit) else commit

        for transform in self.hooks.parse_commit:
            parsed = transform(parsed)

        if any(omit(parsed) for omit in self.hooks.omit_commit):
            return None

        if len(self.hooks.omit_author):
            kept = tuple(
                author
                for author in parsed.authors
                if not any(omit(author) for omit in self.hooks.omit_author)
            )
            if kept != parsed.authors:
                parsed = replace(parsed, authors=kept)

        return parsed

    def normalize_commits(self, commits: Iterable[RawCommit | Commit]) -> list[Commit]:
        out: list[Commit] = []
        for commit in commits:
            normalized = self.normalize_commit(commit)
            if normalized is not None:
                out.append(normalized)
        return out
