"""Error values of the upgrade pipeline.

Grouped by category; ``output.errors`` maps each category to an exit code.

Configuration: MissingPreviousRelease, MalformedConfig, MalformedRelease,
               MissingRelease, AmbiguousRelease
Validation:    ValidationFailed
Toolchain:     ToolchainMissing, ToolchainFailed
I/O:           FilesystemFailed, ArchiveFailed
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal


@dataclass(frozen=True, slots=True)
class MissingPreviousRelease:
    hint: str = "Pass --previous-release PATH or set [upgrade] previous_release"


@dataclass(frozen=True, slots=True)
class MalformedConfig:
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class MalformedRelease:
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class MissingRelease:
    root: Path
    name: str


@dataclass(frozen=True, slots=True)
class AmbiguousRelease:
    root: Path
    name: str
    matches: tuple[Path, ...]


CheckName = Literal[
    "old_release_dir",
    "new_release_dir",
    "release_names",
    "reltool_name",
    "release_versions",
    "reltool_version",
]


@dataclass(frozen=True, slots=True)
class ValidationFailed:
    check: CheckName
    message: str


ToolchainStage = Literal["relup", "script", "tar"]


@dataclass(frozen=True, slots=True)
class ToolchainMissing:
    executable: str


@dataclass(frozen=True, slots=True)
class ToolchainFailed:
    stage: ToolchainStage
    reason: str


@dataclass(frozen=True, slots=True)
class FilesystemFailed:
    operation: str
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class ArchiveFailed:
    path: Path
    reason: str


ConfigurationError = (
    MissingPreviousRelease | MalformedConfig | MalformedRelease | MissingRelease | AmbiguousRelease
)
ToolchainError = ToolchainMissing | ToolchainFailed
IOFailure = FilesystemFailed | ArchiveFailed

UpgradeError = ConfigurationError | ValidationFailed | ToolchainError | IOFailure


def filesystem_error(operation: str, path: Path, error: OSError) -> FilesystemFailed:
    """Build a FilesystemFailed from an OSError raised while touching ``path``."""
    if isinstance(error, FileExistsError):
        reason = "directory exists" if operation == "mkdir" else "already exists"
    elif isinstance(error, FileNotFoundError):
        reason = "no such file or directory"
    else:
        reason = error.strerror or str(error)
    return FilesystemFailed(operation=operation, path=path, reason=reason)
