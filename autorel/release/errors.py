"""Error payload for the release context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "gh_missing",
    "remote_unavailable",
    "not_found",
    "invalid_payload",
    "git_failed",
    "changelog_failed",
    "label_write_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Failure reported by a collaborator.

    Engine reads treat any ``ReleaseError`` as "unresolved" for the affected
    commit; only changelog and label writes hand it back to the caller.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
