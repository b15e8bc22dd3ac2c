"""Process exit codes for the CLI.

Commands map release failures onto these codes so that pipelines can tell a
bad invocation from an unreachable host.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    Values are part of the CLI contract and must stay stable:
    - 0: Success
    - 1: User error (bad arguments, unknown refs)
    - 2: Configuration error (unreadable or invalid .autorc.toml)
    - 4: Network error (GitHub unreachable, label writes rejected)
    - 5: I/O error (changelog could not be read or written)
    """

    OK = 0
    USER_ERROR = 1
    CONFIG_ERROR = 2
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
