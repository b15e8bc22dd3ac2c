from __future__ import annotations

from collections.abc import Mapping, Sequence

from autorel.release.labels import release_type_of
from autorel.release.model import (
    DEFAULT_SECTION_HEADINGS,
    RELEASE_TYPES,
    Author,
    Commit,
    VersionLabelMap,
)
from autorel.release.semver import BUMP_ORDER, higher_bump


# Section key of commits without a pull request; rendered without a heading.
UNSECTIONED = ""


def effective_bump(commit: Commit, version_map: VersionLabelMap) -> str | None:
    return higher_bump(
        t for t in (release_type_of(label, version_map) for label in commit.labels) if t
    )


def section_order(headings: Mapping[str, str]) -> list[str]:
    """Bare entries first, bump sections by severity, then label sections as configured."""
    custom = [key for key in headings if key not in RELEASE_TYPES]
    return [UNSECTIONED, *BUMP_ORDER, *custom]


def section_for(commit: Commit, version_map: VersionLabelMap, headings: Mapping[str, str]) -> str:
    if commit.pull_request is None:
        return UNSECTIONED
    bump = effective_bump(commit, version_map)
    if bump is not None:
        return bump
    for label in commit.labels:
        if label in headings and label not in RELEASE_TYPES:
            return label
    # Pull requests without a bump label release as a patch.
    return "patch"


def render_author(author: Author, *, host_url: str) -> str:
    if author.username:
        return f"[@{author.username}]({host_url.rstrip('/')}/{author.username})"
    return author.name or author.email or ""


def render_line(commit: Commit, *, host_url: str) -> str:
    if commit.pull_request is None:
        return f"- {commit.first_line}"

    line = f"- {commit.first_line} (#{commit.pull_request.number})"
    authors = ", ".join(
        rendered for rendered in (render_author(a, host_url=host_url) for a in commit.authors) if rendered
    )
    return f"{line} {authors}" if authors else line


def _render_authors(commits: Sequence[Commit], *, host_url: str) -> str | None:
    seen: list[Author] = []
    for commit in commits:
        for author in commit.authors:
            if not any(author.same_person(other) for other in seen):
                seen.append(author)
    if not seen:
        return None

    lines = [f"#### Authors: {len(seen)}", ""]
    for author in seen:
        if author.username and author.name:
            lines.append(f"- {author.name} ({render_author(author, host_url=host_url)})")
        else:
            lines.append(f"- {render_author(author, host_url=host_url)}")
    return "\n".join(lines)


def render_release_notes(
    commits: Sequence[Commit],
    *,
    version_map: VersionLabelMap,
    headings: Mapping[str, str] = DEFAULT_SECTION_HEADINGS,
    host_url: str = "https://github.com",
    author_section: bool = False,
) -> str:
    """Markdown notes grouped by section; empty string when nothing changed."""
    groups: dict[str, list[str]] = {}
    for commit in commits:
        key = section_for(commit, version_map, headings)
        groups.setdefault(key, []).append(render_line(commit, host_url=host_url))

    blocks: list[str] = []
    for key in section_order(headings):
        lines = groups.get(key)
        if not lines:
            continue
        if key == UNSECTIONED:
            blocks.append("\n".join(lines))
            continue
        title = headings.get(key) or DEFAULT_SECTION_HEADINGS.get(key, key)
        blocks.append(f"#### {title}\n\n" + "\n".join(lines))

    if author_section and blocks:
        authors = _render_authors(commits, host_url=host_url)
        if authors is not None:
            blocks.append(authors)

    return "\n\n".join(blocks)
