from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Literal

from autorel.release.labels import release_type_of
from autorel.release.model import ReleaseBump, VersionLabelMap


_VERSION_RE = re.compile(
    r"^(v?)(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$"
)

# Highest precedence first.
BUMP_ORDER: tuple[ReleaseBump, ...] = ("major", "minor", "patch")


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: str | None = None

    def to_tag(self, *, prefix: bool = True) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            core = f"{core}-{self.prerelease}"
        return f"v{core}" if prefix else core

    def bump(self, kind: ReleaseBump) -> "SemVer":
        match kind:
            case "major":
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                # 1.2.3-beta.1 -> 1.2.3, like `semver.inc`.
                if self.prerelease:
                    return SemVer(self.major, self.minor, self.patch)
                return SemVer(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")


def parse_version(tag: str) -> SemVer | None:
    """Parse ``1.2.3`` or ``v1.2.3`` (optionally with a prerelease suffix)."""
    m = _VERSION_RE.match(tag.strip())
    if m is None:
        return None
    return SemVer(int(m.group(2)), int(m.group(3)), int(m.group(4)), m.group(5))


def next_version(current: SemVer, kind: ReleaseBump, *, prerelease_id: str | None = None) -> SemVer:
    """Version after ``current`` for a ``kind`` release.

    With ``prerelease_id`` the result is a prerelease: ``1.2.0-next.0`` after
    ``1.1.0``, then ``1.2.0-next.1`` while the same id keeps releasing.
    """
    if prerelease_id is None:
        return current.bump(kind)

    if current.prerelease:
        id_, _, counter = current.prerelease.rpartition(".")
        if id_ == prerelease_id and counter.isdigit():
            return replace(current, prerelease=f"{prerelease_id}.{int(counter) + 1}")

    return replace(current.bump(kind), prerelease=f"{prerelease_id}.0")


def higher_bump(bumps: Iterable[str]) -> ReleaseBump | None:
    present = set(bumps)
    for kind in BUMP_ORDER:
        if kind in present:
            return kind
    return None


def calculate_semver_bump(
    labels: Sequence[Sequence[str]],
    version_map: VersionLabelMap,
    *,
    only_publish_with_release_label: bool = False,
) -> ReleaseBump | Literal[""]:
    """Reduce per-commit label lists to one bump keyword.

    Commits carrying a skip label are left out of the reduction without
    affecting the others. ``""`` means "do not release": every commit that
    carried a recognized label was skipped, or a release label is required
    and none is present.
    """
    skip_labels = set(version_map.get("skip", ()))
    release_labels = set(version_map.get("release", ()))

    if only_publish_with_release_label and not any(
        release_labels.intersection(commit_labels) for commit_labels in labels
    ):
        return ""

    bumps: set[str] = set()
    skipped = False
    recognized = False
    for commit_labels in labels:
        if skip_labels.intersection(commit_labels):
            skipped = True
            continue

        for label in commit_labels:
            release_type = release_type_of(label, version_map)
            if release_type is None:
                continue
            recognized = True
            bumps.add(release_type)

    if skipped and not recognized:
        return ""

    return higher_bump(bumps) or "patch"
