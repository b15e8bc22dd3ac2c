"""Release metadata from commit history and pull requests."""

__version__ = "0.4.0"
