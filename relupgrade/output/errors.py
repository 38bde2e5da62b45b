"""Error presentation utilities.

One descriptive line per failure (plus an optional dim hint), and the exit
code for its category.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relupgrade.core.errors import ErrorCode
from relupgrade.output.console import Style
from relupgrade.services.upgrade.errors import (
    AmbiguousRelease,
    ArchiveFailed,
    FilesystemFailed,
    MalformedConfig,
    MalformedRelease,
    MissingPreviousRelease,
    MissingRelease,
    ToolchainFailed,
    ToolchainMissing,
    UpgradeError,
    ValidationFailed,
)

if TYPE_CHECKING:
    from relupgrade.output.console import ConsoleProtocol

__all__ = ["format_upgrade_error", "print_upgrade_error", "upgrade_error_exit_code"]


def format_upgrade_error(error: UpgradeError) -> str:
    match error:
        case MissingPreviousRelease():
            return "previous_release=PATH is required to create upgrade package"
        case MalformedConfig(path=path, reason=reason):
            return f"Failed to parse {path}: {reason}"
        case MalformedRelease(path=path, reason=reason):
            return f"Failed to parse release manifest {path}: {reason}"
        case MissingRelease(root=root, name=name):
            return f"No release manifest {name}.rel found under {root / 'releases'}"
        case AmbiguousRelease(root=root, name=name, matches=matches):
            return f"{len(matches)} release manifests {name}.rel found under {root / 'releases'}"
        case ValidationFailed(message=message):
            return message
        case ToolchainMissing(executable=executable):
            return f"{executable}: not found"
        case ToolchainFailed(stage=stage, reason=reason):
            return f"Systools aborted with ({stage}): {reason}"
        case FilesystemFailed(operation=operation, path=path, reason=reason):
            return f"{operation} failed for {path}: {reason}"
        case ArchiveFailed(path=path, reason=reason):
            return f"archive {path}: {reason}"
    return str(error)


def _hint(error: UpgradeError) -> str | None:
    match error:
        case MissingPreviousRelease(hint=hint):
            return hint
        case AmbiguousRelease(matches=matches):
            return "found: " + ", ".join(str(m) for m in matches)
        case ToolchainMissing():
            return "Install Erlang/OTP or pass --erl PATH"
        case FilesystemFailed(operation="stage"):
            return "Remove releases/ and lib/ from the working directory"
    return None


def print_upgrade_error(error: UpgradeError, console: ConsoleProtocol) -> None:
    """Print an upgrade error with appropriate formatting."""
    console.error(format_upgrade_error(error))
    hint = _hint(error)
    if hint:
        console.print(f"hint: {hint}", Style.DIM)


def upgrade_error_exit_code(error: UpgradeError) -> int:
    match error:
        case (
            MissingPreviousRelease()
            | MalformedConfig()
            | MalformedRelease()
            | MissingRelease()
            | AmbiguousRelease()
        ):
            return int(ErrorCode.CONFIG_ERROR)
        case ValidationFailed():
            return int(ErrorCode.VALIDATION_ERROR)
        case ToolchainMissing() | ToolchainFailed():
            return int(ErrorCode.TOOLCHAIN_ERROR)
        case FilesystemFailed() | ArchiveFailed():
            return int(ErrorCode.IO_ERROR)
    return int(ErrorCode.IO_ERROR)
