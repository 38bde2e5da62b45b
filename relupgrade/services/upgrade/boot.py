"""Boot file layout for the upgrade package.

The package must expose, under ``releases/<vsn>/``, a ``<name>.boot`` that
resolves to the release's ``start.boot`` and a ``start_clean.boot``.
"""

from __future__ import annotations

import os
import shutil

from relupgrade.core.result import Err, Ok, Result

from .cleanup import Artifacts
from .errors import UpgradeError, filesystem_error
from .layout import BuildContext

__all__ = ["patch_boot_files"]


def patch_boot_files(ctx: BuildContext, artifacts: Artifacts) -> Result[None, UpgradeError]:
    """Create ``releases/<vsn>/`` with the boot link and ``start_clean.boot``.

    Directories are created one level at a time and must not exist yet.
    The link target is relative (``start.boot``) so the package stays
    relocatable.
    """
    for directory in (ctx.releases_dir, ctx.version_dir):
        try:
            directory.mkdir()
        except OSError as e:
            return Err(filesystem_error("mkdir", directory, e))
        artifacts.track(directory)

    try:
        os.symlink("start.boot", ctx.boot_link)
    except OSError as e:
        return Err(filesystem_error("symlink", ctx.boot_link, e))
    artifacts.track(ctx.boot_link)

    try:
        shutil.copyfile(ctx.start_clean_source, ctx.start_clean_target)
    except OSError as e:
        return Err(filesystem_error("copy", ctx.start_clean_source, e))

    return Ok(None)
