"""Exit codes for the relupgrade CLI.

Each error category of the upgrade pipeline maps to one stable process exit
status, so wrapper scripts can tell a bad descriptor from a failed toolchain.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    - 0: Success
    - 1: Configuration error (missing input, unreadable descriptor or manifest)
    - 2: Validation error (release trees disagree on name or version)
    - 3: Toolchain error (erl missing, systools reported an error)
    - 5: I/O error (copy, symlink, mkdir, archive or delete failed)
    """

    OK = 0
    CONFIG_ERROR = 1
    VALIDATION_ERROR = 2
    TOOLCHAIN_ERROR = 3
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
