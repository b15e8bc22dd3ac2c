from __future__ import annotations

from collections.abc import Iterable, Sequence

from autorel.core.result import Err, Ok, Result
from autorel.output.console import ConsoleProtocol
from autorel.release.errors import ReleaseError
from autorel.release.host import HostClient
from autorel.release.model import RELEASE_TYPES, LabelDefinition, VersionLabelMap


DEFAULT_LABELS: tuple[LabelDefinition, ...] = (
    LabelDefinition(
        name="major",
        release_type="major",
        description="Increment the major version when merged",
    ),
    LabelDefinition(
        name="minor",
        release_type="minor",
        description="Increment the minor version when merged",
    ),
    LabelDefinition(
        name="patch",
        release_type="patch",
        description="Increment the patch version when merged",
    ),
    LabelDefinition(
        name="skip-release",
        release_type="skip",
        description="Preserve the current version when merged",
    ),
    LabelDefinition(
        name="release",
        release_type="release",
        description="Create a release when this pr is merged",
    ),
    LabelDefinition(
        name="internal",
        release_type="none",
        description="Changes only affect the internal API",
    ),
    LabelDefinition(
        name="documentation",
        release_type="none",
        description="Changes only affect the documentation",
    ),
)


def get_version_map(labels: Iterable[LabelDefinition] | None = None) -> VersionLabelMap:
    """Group label names by release type.

    Without arguments the built-in labels are used. Labels sharing a release
    type are appended in order; unknown release types are ignored.
    """
    version_map: VersionLabelMap = {}
    for label in DEFAULT_LABELS if labels is None else labels:
        if label.release_type not in RELEASE_TYPES:
            continue
        version_map.setdefault(label.release_type, []).append(label.name)
    return version_map


def merge_labels(
    defaults: Sequence[LabelDefinition],
    custom: Sequence[LabelDefinition],
) -> tuple[LabelDefinition, ...]:
    """Extend ``defaults`` with ``custom`` labels.

    A custom label named like a default replaces that one entry in place;
    every other custom label is appended.
    """
    merged = list(defaults)
    for label in custom:
        for i, existing in enumerate(merged):
            if existing.name == label.name:
                merged[i] = label
                break
        else:
            merged.append(label)
    return tuple(merged)


def release_type_of(label: str, version_map: VersionLabelMap) -> str | None:
    for release_type, names in version_map.items():
        if label in names:
            return release_type
    return None


def _wanted(label: LabelDefinition, *, only_publish_with_release_label: bool) -> bool:
    if label.release_type == "release":
        return only_publish_with_release_label
    if label.release_type == "skip":
        return not only_publish_with_release_label
    return True


def add_labels_to_project(
    *,
    host: HostClient,
    labels: Sequence[LabelDefinition],
    only_publish_with_release_label: bool,
    console: ConsoleProtocol,
    dry_run: bool = False,
) -> Result[tuple[str, ...], ReleaseError]:
    """Make sure the configured labels exist on the repository.

    Returns the names of the labels that were created.
    """
    existing = host.list_repository_labels()
    if isinstance(existing, Err):
        return existing

    present = {name.lower() for name in existing.value}
    created: list[str] = []
    updated: list[str] = []

    for label in labels:
        if not _wanted(label, only_publish_with_release_label=only_publish_with_release_label):
            continue

        is_present = label.name.lower() in present
        if dry_run:
            console.print(f"[dry-run] would {'update' if is_present else 'create'} {label.name}")
            continue

        if is_present:
            result = host.update_label(label)
            bucket = updated
        else:
            result = host.create_label(label)
            bucket = created

        if isinstance(result, Err):
            return Err(
                ReleaseError(
                    kind="label_write_failed",
                    message=f"failed to write label: {label.name}",
                    hint=result.error.pretty(),
                )
            )
        bucket.append(label.name)

    if created:
        console.print(f"Created labels: {', '.join(created)}")
    elif not dry_run:
        console.print(
            "No labels were created, they must have already been present on your project."
        )
    if updated:
        console.verbose(f"Updated labels: {', '.join(updated)}")

    url = host.repository_url()
    if isinstance(url, Ok):
        console.print(f"\nYou can see these, and more at {url.value}/labels")

    return Ok(tuple(created))
