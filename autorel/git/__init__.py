"""Local git collaborator."""

from autorel.git.repository import GitError, GitLog, Repository

__all__ = [
    "GitError",
    "GitLog",
    "Repository",
]
