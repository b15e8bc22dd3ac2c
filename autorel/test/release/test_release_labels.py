from __future__ import annotations

from autorel.core.result import Err, Ok
from autorel.output.console import MockConsole
from autorel.release.labels import (
    DEFAULT_LABELS,
    add_labels_to_project,
    get_version_map,
    merge_labels,
    release_type_of,
)
from autorel.release.model import LabelDefinition
from autorel.release.testing import FakeHost


class TestVersionMap:
    def test_defaults(self) -> None:
        assert get_version_map() == {
            "major": ["major"],
            "minor": ["minor"],
            "patch": ["patch"],
            "skip": ["skip-release"],
            "release": ["release"],
            "none": ["internal", "documentation"],
        }

    def test_custom_label_appends_to_type(self) -> None:
        labels = merge_labels(
            DEFAULT_LABELS, [LabelDefinition(name="Version: Major", release_type="major")]
        )
        version_map = get_version_map(labels)
        assert version_map["major"] == ["major", "Version: Major"]
        assert version_map["minor"] == ["minor"]

    def test_unknown_release_type_ignored(self) -> None:
        version_map = get_version_map([LabelDefinition(name="huge", release_type="gigantic")])
        assert version_map == {}

    def test_release_type_of(self) -> None:
        version_map = get_version_map()
        assert release_type_of("skip-release", version_map) == "skip"
        assert release_type_of("wontfix", version_map) is None


def test_merge_labels_replaces_in_place() -> None:
    custom = LabelDefinition(name="minor", release_type="minor", description="Feature")
    merged = merge_labels(DEFAULT_LABELS, [custom])
    assert len(merged) == len(DEFAULT_LABELS)
    assert merged[1] == custom


class TestAddLabelsToProject:
    def test_creates_missing_labels(self) -> None:
        host = FakeHost()
        console = MockConsole()

        result = add_labels_to_project(
            host=host,
            labels=DEFAULT_LABELS,
            only_publish_with_release_label=False,
            console=console,
        )

        assert result == Ok(("major", "minor", "patch", "skip-release", "internal", "documentation"))
        assert [label.name for label in host.created] == list(result.value)
        assert console.find("Created labels: major, minor, patch, skip-release")
        assert console.find("\nYou can see these, and more at https://github.com/owner/repo/labels")

    def test_release_label_only_with_option(self) -> None:
        host = FakeHost()

        result = add_labels_to_project(
            host=host,
            labels=DEFAULT_LABELS,
            only_publish_with_release_label=True,
            console=MockConsole(),
        )

        assert isinstance(result, Ok)
        assert "release" in result.value
        assert "skip-release" not in result.value

    def test_existing_label_is_updated_case_insensitively(self) -> None:
        host = FakeHost(labels=["Major", "minor"])
        console = MockConsole()

        result = add_labels_to_project(
            host=host,
            labels=[
                LabelDefinition(name="major", release_type="major"),
                LabelDefinition(name="minor", release_type="minor"),
            ],
            only_publish_with_release_label=False,
            console=console,
        )

        assert result == Ok(())
        assert host.created == []
        assert [label.name for label in host.updated] == ["major", "minor"]
        assert console.find("No labels were created, they must have already been present")

    def test_write_failure_is_returned(self) -> None:
        host = FakeHost(fail_label_writes=True)

        result = add_labels_to_project(
            host=host,
            labels=DEFAULT_LABELS,
            only_publish_with_release_label=False,
            console=MockConsole(),
        )

        assert isinstance(result, Err)
        assert result.error.kind == "label_write_failed"
        assert "major" in result.error.message

    def test_dry_run_writes_nothing(self) -> None:
        host = FakeHost(labels=["patch"])
        console = MockConsole()

        result = add_labels_to_project(
            host=host,
            labels=DEFAULT_LABELS[:3],
            only_publish_with_release_label=False,
            console=console,
            dry_run=True,
        )

        assert result == Ok(())
        assert host.created == [] and host.updated == []
        assert console.find("[dry-run] would create major")
        assert console.find("[dry-run] would update patch")
