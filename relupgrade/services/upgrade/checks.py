"""Consistency checks that gate the upgrade build.

The checks run in a fixed order and stop at the first failure. Nothing here
writes to disk or calls the toolchain, so a failed check leaves no residue.
"""

from __future__ import annotations

from pathlib import Path

from relupgrade.core.result import Err, Ok, Result

from .errors import UpgradeError, ValidationFailed
from .layout import BuildContext
from .release import read_release_identity, read_reltool_identity

__all__ = ["run_checks"]


def run_checks(
    reltool_file: Path,
    old_root: Path,
    work_dir: Path,
) -> Result[BuildContext, UpgradeError]:
    """Resolve both releases and verify they describe a valid upgrade.

    Order:
        1. the previous release directory exists
        2. the reltool descriptor names a release
        3. the new release directory ``work_dir/<name>`` exists
        4. both trees hold exactly one manifest for that name
        5. new and old manifests agree on the name
        6. the reltool name matches the new manifest
        7. new and old versions differ
        8. the reltool version matches the new manifest

    Returns:
        Ok(BuildContext) when every check passes, else the first error.
    """
    old_root = old_root.absolute()
    work_dir = work_dir.absolute()

    if not old_root.is_dir():
        return Err(
            ValidationFailed(
                check="old_release_dir",
                message=f"Release directory doesn't exist ({old_root})",
            )
        )

    declared = read_reltool_identity(reltool_file)
    if isinstance(declared, Err):
        return declared
    reltool = declared.value

    new_root = work_dir / reltool.name
    if not new_root.is_dir():
        return Err(
            ValidationFailed(
                check="new_release_dir",
                message=f"Release directory doesn't exist ({new_root})",
            )
        )

    new_result = read_release_identity(new_root, reltool.name)
    if isinstance(new_result, Err):
        return new_result
    old_result = read_release_identity(old_root, reltool.name)
    if isinstance(old_result, Err):
        return old_result
    new, old = new_result.value, old_result.value

    if new.name != old.name:
        return Err(
            ValidationFailed(
                check="release_names",
                message=f"New and old .rel release names do not match ({new.name} != {old.name})",
            )
        )
    if reltool.name != new.name:
        return Err(
            ValidationFailed(
                check="reltool_name",
                message=f"Reltool and .rel release names do not match "
                f"({reltool.name} != {new.name})",
            )
        )
    if new.version == old.version:
        return Err(
            ValidationFailed(
                check="release_versions",
                message=f"New and old .rel contain the same version ({new.version})",
            )
        )
    if reltool.version != new.version:
        return Err(
            ValidationFailed(
                check="reltool_version",
                message=f"Reltool and .rel versions do not match "
                f"({reltool.version} != {new.version})",
            )
        )

    return Ok(
        BuildContext(
            name=new.name,
            version=new.version,
            old_version=old.version,
            old_root=old_root,
            work_dir=work_dir,
        )
    )
