from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from autorel.release.timeouts import DEFAULT_MAX_WORKERS


ReleaseBump = Literal["major", "minor", "patch"]
ReleaseType = Literal["major", "minor", "patch", "skip", "release", "none"]

RELEASE_TYPES: tuple[ReleaseType, ...] = ("major", "minor", "patch", "skip", "release", "none")

# label type -> label names
VersionLabelMap = dict[str, list[str]]


@dataclass(frozen=True, slots=True)
class RawCommit:
    """One entry of the local git log."""

    hash: str
    author_name: str
    author_email: str
    # Full message: subject line followed by the body.
    subject: str
    files: tuple[str, ...] = ()
    authored_date: str | None = None


@dataclass(frozen=True, slots=True)
class Author:
    """A platform identity (username) and/or a git identity (name/email)."""

    username: str | None = None
    name: str | None = None
    email: str | None = None

    def same_person(self, other: Author) -> bool:
        if self.username and other.username and self.username == other.username:
            return True
        if self.email and other.email and self.email.lower() == other.email.lower():
            return True
        return False


def merge_authors(authors: tuple[Author, ...] | list[Author]) -> tuple[Author, ...]:
    """Collapse duplicate mentions of the same person, keeping first-seen order.

    Fields missing on the first mention are filled from later ones.
    """
    out: list[Author] = []
    for author in authors:
        for i, seen in enumerate(out):
            if seen.same_person(author):
                out[i] = Author(
                    username=seen.username or author.username,
                    name=seen.name or author.name,
                    email=seen.email or author.email,
                )
                break
        else:
            out.append(author)
    return tuple(out)


@dataclass(frozen=True, slots=True)
class PullRequestRef:
    number: int
    labels: tuple[str, ...] = ()
    merge_commit_sha: str | None = None
    submitter: str | None = None


@dataclass(frozen=True, slots=True)
class Commit:
    hash: str
    subject: str
    body: str
    author_name: str
    author_email: str
    authors: tuple[Author, ...] = ()
    pull_request: PullRequestRef | None = None
    files: tuple[str, ...] = ()
    authored_date: str | None = None

    @property
    def labels(self) -> tuple[str, ...]:
        if self.pull_request is None:
            return ()
        return self.pull_request.labels

    @property
    def first_line(self) -> str:
        lines = self.subject.strip().splitlines()
        return lines[0].strip() if lines else ""

    @property
    def short_hash(self) -> str:
        return self.hash[:8]


@dataclass(frozen=True, slots=True)
class LabelDefinition:
    name: str
    # One of RELEASE_TYPES; any other string is kept but ignored by the version map.
    release_type: str
    description: str = ""
    color: str | None = None


@dataclass(frozen=True, slots=True)
class LatestRelease:
    tag_name: str | None
    published_at: str | None


@dataclass(frozen=True, slots=True)
class PullRequestCommit:
    sha: str
    author_login: str | None = None
    author_name: str | None = None
    author_email: str | None = None


@dataclass(frozen=True, slots=True)
class SearchItem:
    number: int
    labels: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SearchResult:
    items: tuple[SearchItem, ...]
    total_count: int


@dataclass(frozen=True, slots=True)
class HostUser:
    login: str
    name: str | None = None


DEFAULT_SECTION_HEADINGS: Mapping[str, str] = {
    "major": "Breaking Changes",
    "minor": "Features",
    "patch": "Fixes",
}


def _default_labels() -> tuple[LabelDefinition, ...]:
    # Deferred: labels.py imports this module.
    from autorel.release.labels import DEFAULT_LABELS

    return DEFAULT_LABELS


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Engine configuration; never mutated after construction."""

    labels: tuple[LabelDefinition, ...] = field(default_factory=_default_labels)
    only_publish_with_release_label: bool = False
    no_version_prefix: bool = False
    base_branch: str = "main"
    prerelease_branches: tuple[str, ...] = ("next",)
    section_headings: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_SECTION_HEADINGS)
    )
    author_section: bool = False
    changelog_path: str = "CHANGELOG.md"
    dry_run: bool = False
    max_workers: int = DEFAULT_MAX_WORKERS
    host_url: str = "https://github.com"
