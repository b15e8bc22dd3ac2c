"""Tests for autorel.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from autorel.core.config import (
    CONFIG_FILE_NAME,
    ConfigError,
    load_config,
    load_config_or_default,
    options_from_dict,
)
from autorel.core.result import Err, Ok
from autorel.release.labels import DEFAULT_LABELS, get_version_map
from autorel.release.model import DEFAULT_SECTION_HEADINGS, ReleaseOptions


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / CONFIG_FILE_NAME
    path.write_text(content, encoding="utf-8")
    return path


class TestOptionsFromDict:
    def test_empty_mapping_gives_defaults(self) -> None:
        result = options_from_dict({})
        assert isinstance(result, Ok)
        options = result.value
        assert options.labels == DEFAULT_LABELS
        assert options.only_publish_with_release_label is False
        assert options.base_branch == "main"
        assert options.prerelease_branches == ("next",)
        assert dict(options.section_headings) == dict(DEFAULT_SECTION_HEADINGS)
        assert options.max_workers == 8

    def test_wrong_types_fall_back_to_defaults(self) -> None:
        result = options_from_dict({"base_branch": 3, "no_version_prefix": "yes"})
        assert isinstance(result, Ok)
        assert result.value.base_branch == "main"
        assert result.value.no_version_prefix is False

    def test_max_workers_must_be_positive(self) -> None:
        result = options_from_dict({"max_workers": 0})
        assert isinstance(result, Err)
        assert "max_workers" in result.error


class TestLoadConfig:
    def test_load_full_config(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            """
only_publish_with_release_label = true
no_version_prefix = true
base_branch = "master"
prerelease_branches = ["next", "beta"]
changelog = "docs/CHANGELOG.md"
max_workers = 2
author_section = true

[[labels]]
name = "Version: Major"
release_type = "major"
description = "Breaking change"
color = "#ff0000"

[section_headings]
minor = "Enhancements"
documentation = "Docs"
""",
        )

        result = load_config(path)

        assert isinstance(result, Ok)
        options = result.value
        assert options.only_publish_with_release_label is True
        assert options.no_version_prefix is True
        assert options.base_branch == "master"
        assert options.prerelease_branches == ("next", "beta")
        assert options.changelog_path == "docs/CHANGELOG.md"
        assert options.max_workers == 2
        assert options.author_section is True
        assert options.section_headings["minor"] == "Enhancements"
        assert options.section_headings["documentation"] == "Docs"
        assert options.section_headings["major"] == "Breaking Changes"

    def test_custom_labels_extend_defaults(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            """
[[labels]]
name = "Version: Major"
release_type = "major"
""",
        )

        result = load_config(path)

        assert isinstance(result, Ok)
        version_map = get_version_map(result.value.labels)
        assert version_map["major"] == ["major", "Version: Major"]

    def test_custom_label_replaces_default_with_same_name(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            """
[[labels]]
name = "minor"
release_type = "minor"
description = "New feature"
""",
        )

        result = load_config(path)

        assert isinstance(result, Ok)
        minors = [label for label in result.value.labels if label.name == "minor"]
        assert len(minors) == 1
        assert minors[0].description == "New feature"

    def test_unknown_release_type_is_kept_but_ignored(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            """
[[labels]]
name = "huge"
release_type = "gigantic"
""",
        )

        result = load_config(path)

        assert isinstance(result, Ok)
        huge = [label for label in result.value.labels if label.name == "huge"]
        assert huge[0].release_type == "gigantic"
        version_map = get_version_map(result.value.labels)
        assert "gigantic" not in version_map
        assert all("huge" not in names for names in version_map.values())

    def test_label_without_name_is_rejected(self, tmp_path: Path) -> None:
        path = _write(tmp_path, '[[labels]]\nrelease_type = "major"\n')

        result = load_config(path)

        assert isinstance(result, Err)
        assert "missing a name" in result.error.message

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "nope.toml")
        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "this is = = not toml")
        result = load_config(path)
        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message


class TestLoadConfigOrDefault:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        result = load_config_or_default(tmp_path / CONFIG_FILE_NAME)
        assert isinstance(result, Ok)
        assert result.value == ReleaseOptions()

    def test_broken_file_is_still_an_error(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "[[[")
        result = load_config_or_default(path)
        assert isinstance(result, Err)


def test_config_error_is_frozen() -> None:
    error = ConfigError("bad")
    with pytest.raises(AttributeError):
        error.message = "worse"  # type: ignore[misc]
