"""Result type for collaborator calls that are allowed to fail.

Remote and local collaborators (GitHub, git, the changelog file) report
failures as values instead of raising. Callers decide whether a failure is
fatal (changelog writes, label writes) or only degrades one commit (author
lookups, pull request searches).

Usage:
    def latest_tag(repo: Repository) -> Result[str, GitError]:
        ...

    match latest_tag(repo):
        case Ok(tag):
            print(tag)
        case Err(error):
            print(error.message)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful outcome carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed outcome carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
