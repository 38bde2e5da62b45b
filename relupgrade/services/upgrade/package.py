"""Upgrade package (re)assembly.

``systools:make_tar`` produces a package without the boot layout the target
runtime expects. ``repackage`` unpacks that raw package over the patched
``releases/`` directory and writes the final ``<name>_<vsn>.tar.gz`` holding
exactly ``lib/`` and ``releases/``.

Output is reproducible: entries are added in sorted order with fixed
ownership and timestamps (``SOURCE_DATE_EPOCH`` or 0), and the gzip header
carries neither a file name nor a timestamp.
"""

from __future__ import annotations

import gzip
import os
import tarfile
from collections.abc import Sequence
from functools import partial
from pathlib import Path

from relupgrade.core.result import Err, Ok, Result

from .cleanup import Artifacts
from .errors import ArchiveFailed, UpgradeError, filesystem_error
from .layout import BuildContext

__all__ = ["PACKAGE_ENTRIES", "list_package", "repackage", "source_date_epoch", "write_package"]

PACKAGE_ENTRIES: tuple[str, ...] = ("lib", "releases")


def source_date_epoch() -> int:
    """Timestamp stamped on every archive entry."""
    raw = os.environ.get("SOURCE_DATE_EPOCH", "").strip()
    try:
        return max(int(raw), 0) if raw else 0
    except ValueError:
        return 0


def _normalize(info: tarfile.TarInfo, *, mtime: int) -> tarfile.TarInfo:
    info.uid = 0
    info.gid = 0
    info.uname = ""
    info.gname = ""
    info.mtime = mtime
    return info


def write_package(
    path: Path,
    base_dir: Path,
    entries: Sequence[str] = PACKAGE_ENTRIES,
    *,
    mtime: int | None = None,
) -> None:
    """Write a gzip tar at ``path`` with ``entries`` (relative to ``base_dir``).

    Symlinks are stored as links. Raises OSError/TarError on failure.
    """
    stamp = source_date_epoch() if mtime is None else mtime
    with (
        path.open("wb") as raw,
        gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz,
        tarfile.open(fileobj=gz, mode="w") as tar,
    ):
        for entry in entries:
            tar.add(base_dir / entry, arcname=entry, filter=partial(_normalize, mtime=stamp))


def repackage(ctx: BuildContext, artifacts: Artifacts) -> Result[Path, UpgradeError]:
    """Fold the raw systools package and the boot layout into the final package."""
    package = ctx.package
    artifacts.track(ctx.lib_dir)

    try:
        with tarfile.open(package, "r:gz") as tar:
            tar.extractall(ctx.work_dir, filter="data")
    except tarfile.TarError as e:
        return Err(ArchiveFailed(path=package, reason=f"cannot extract: {e}"))
    except OSError as e:
        return Err(filesystem_error("extract", package, e))

    try:
        package.unlink()
    except OSError as e:
        return Err(filesystem_error("delete", package, e))

    try:
        write_package(package, ctx.work_dir)
    except tarfile.TarError as e:
        return Err(ArchiveFailed(path=package, reason=f"cannot write: {e}"))
    except OSError as e:
        return Err(filesystem_error("archive", package, e))

    return Ok(package)


def list_package(path: Path) -> Result[list[str], UpgradeError]:
    """Member names of a package, in archive order."""
    try:
        with tarfile.open(path, "r:gz") as tar:
            return Ok(tar.getnames())
    except tarfile.TarError as e:
        return Err(ArchiveFailed(path=path, reason=str(e)))
    except OSError as e:
        return Err(filesystem_error("read", path, e))
