"""Typed configuration loading.

The release configuration is a TOML file, ``.autorc.toml`` by default::

    only_publish_with_release_label = false
    no_version_prefix = false
    base_branch = "main"
    prerelease_branches = ["next"]
    changelog = "CHANGELOG.md"
    max_workers = 8
    author_section = true

    [[labels]]
    name = "breaking"
    release_type = "major"
    description = "Breaks the public API"
    color = "#ff0000"

    [section_headings]
    major = "Breaking Changes"
    documentation = "Docs"

Custom labels extend the built-in ones; a custom label with a built-in name
replaces it. Heading entries keyed by a label name add a notes section.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from autorel.release.labels import DEFAULT_LABELS, merge_labels
from autorel.release.model import (
    DEFAULT_SECTION_HEADINGS,
    LabelDefinition,
    ReleaseOptions,
)
from autorel.release.timeouts import DEFAULT_MAX_WORKERS

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_int,
    get_list,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "ConfigError",
    "load_config",
    "load_config_or_default",
    "options_from_dict",
]

CONFIG_FILE_NAME = ".autorc.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


def _parse_labels(raw: list[object]) -> Result[tuple[LabelDefinition, ...], str]:
    labels: list[LabelDefinition] = []
    for index, item in enumerate(raw):
        table = as_str_dict(item)
        if table is None:
            return Err(f"labels[{index}] must be a table")

        name = get_str(table, "name")
        if name is None:
            return Err(f"labels[{index}] is missing a name")

        labels.append(
            LabelDefinition(
                name=name,
                # Unknown types are kept; the version map ignores them.
                release_type=get_str(table, "release_type") or "none",
                description=get_str(table, "description") or "",
                color=get_str(table, "color"),
            )
        )
    return Ok(tuple(labels))


def _parse_headings(table: StrDict) -> dict[str, str]:
    headings = dict(DEFAULT_SECTION_HEADINGS)
    for key in table:
        title = get_str(table, key)
        if title is not None:
            headings[key] = title
    return headings


def options_from_dict(data: Mapping[str, object]) -> Result[ReleaseOptions, str]:
    """Build ``ReleaseOptions`` from a parsed TOML mapping.

    Keys with the wrong type fall back to their defaults; malformed label
    entries are reported since they would silently change release behavior.
    """
    labels = _parse_labels(get_list(data, "labels") or [])
    if isinstance(labels, Err):
        return labels

    defaults = ReleaseOptions(labels=DEFAULT_LABELS)
    max_workers = get_int(data, "max_workers")
    if max_workers is not None and max_workers < 1:
        return Err("max_workers must be at least 1")

    only_release = get_bool(data, "only_publish_with_release_label")
    no_prefix = get_bool(data, "no_version_prefix")
    author_section = get_bool(data, "author_section")
    prerelease = get_str_list(data, "prerelease_branches")

    return Ok(
        ReleaseOptions(
            labels=merge_labels(DEFAULT_LABELS, labels.value),
            only_publish_with_release_label=(
                defaults.only_publish_with_release_label if only_release is None else only_release
            ),
            no_version_prefix=defaults.no_version_prefix if no_prefix is None else no_prefix,
            base_branch=get_str(data, "base_branch") or defaults.base_branch,
            prerelease_branches=tuple(prerelease) or defaults.prerelease_branches,
            section_headings=_parse_headings(get_table(data, "section_headings") or {}),
            author_section=defaults.author_section if author_section is None else author_section,
            changelog_path=get_str(data, "changelog") or defaults.changelog_path,
            max_workers=max_workers or DEFAULT_MAX_WORKERS,
        )
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[ReleaseOptions, ConfigError]:
    """Load release options from a TOML file.

    Args:
        path: Path to the config file

    Returns:
        Ok(ReleaseOptions) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    options = options_from_dict(result.value)
    if isinstance(options, Err):
        return Err(ConfigError(f"Invalid config: {options.error}", path=path))
    return Ok(options.value)


def load_config_or_default(path: Path) -> Result[ReleaseOptions, ConfigError]:
    """Like ``load_config``, but a missing file yields the default options.

    A file that exists but cannot be parsed is still an error.
    """
    if not path.exists():
        return Ok(ReleaseOptions())
    return load_config(path)
