"""Release descriptor resolution.

Two sources declare a release's identity:

- the reltool descriptor: ``{sys, [..., {rel, Name, Vsn, Apps}, ...]}.``
- the release manifest inside a release tree:
  ``releases/<Vsn>/<Name>.rel`` containing
  ``{release, {Name, Vsn}, {erts, ErtsVsn}, Apps}.``

All functions here only read the filesystem.
"""

from __future__ import annotations

from pathlib import Path

from relupgrade.core.result import Err, Ok, Result
from relupgrade.core.terms import consult_file, is_atom, is_string

from .errors import (
    AmbiguousRelease,
    MalformedConfig,
    MalformedRelease,
    MissingRelease,
    UpgradeError,
)
from .layout import ReleaseIdentity

__all__ = [
    "find_release_manifest",
    "read_release_identity",
    "read_reltool_identity",
]


def read_reltool_identity(reltool_file: Path) -> Result[ReleaseIdentity, UpgradeError]:
    """Return the first ``rel`` entry of the first ``sys`` section.

    The ``sys`` section must be the first term of the file.
    """
    consulted = consult_file(reltool_file)
    if isinstance(consulted, Err):
        return Err(MalformedConfig(path=reltool_file, reason=str(consulted.error)))

    terms = consulted.value
    if not terms:
        return Err(MalformedConfig(path=reltool_file, reason="file contains no terms"))

    first = terms[0]
    if not (
        isinstance(first, tuple)
        and len(first) == 2
        and is_atom(first[0], "sys")
        and isinstance(first[1], list)
    ):
        return Err(MalformedConfig(path=reltool_file, reason="first term is not {sys, [...]}"))

    rel = _proplist_lookup(first[1], "rel")
    if rel is None:
        return Err(MalformedConfig(path=reltool_file, reason="sys section has no rel entry"))

    if len(rel) != 4 or not is_string(rel[1]) or not is_string(rel[2]):
        return Err(
            MalformedConfig(
                path=reltool_file,
                reason="rel entry is not {rel, Name, Vsn, Apps}",
            )
        )

    return Ok(ReleaseIdentity(name=str(rel[1]), version=str(rel[2])))


def _proplist_lookup(items: list[object], key: str) -> tuple[object, ...] | None:
    # proplists:lookup/2: first tuple whose first element is the key
    for item in items:
        if isinstance(item, tuple) and item and is_atom(item[0], key):
            return item
    return None


def find_release_manifest(root: Path, name: str) -> Result[Path, UpgradeError]:
    """Locate the single ``releases/*/<name>.rel`` under ``root``."""
    matches = sorted(p for p in root.glob(f"releases/*/{name}.rel") if p.is_file())
    if not matches:
        return Err(MissingRelease(root=root, name=name))
    if len(matches) > 1:
        return Err(AmbiguousRelease(root=root, name=name, matches=tuple(matches)))
    return Ok(matches[0])


def read_release_identity(root: Path, name: str) -> Result[ReleaseIdentity, UpgradeError]:
    """Read the identity declared by the release manifest of ``name`` in ``root``."""
    found = find_release_manifest(root, name)
    if isinstance(found, Err):
        return found
    rel_file = found.value

    consulted = consult_file(rel_file)
    if isinstance(consulted, Err):
        return Err(MalformedRelease(path=rel_file, reason=str(consulted.error)))

    terms = consulted.value
    if len(terms) != 1:
        return Err(
            MalformedRelease(path=rel_file, reason=f"expected one term, found {len(terms)}")
        )

    release = terms[0]
    if not (
        isinstance(release, tuple)
        and len(release) == 4
        and is_atom(release[0], "release")
        and isinstance(release[1], tuple)
        and len(release[1]) == 2
        and is_string(release[1][0])
        and is_string(release[1][1])
    ):
        return Err(
            MalformedRelease(
                path=rel_file,
                reason="expected {release, {Name, Vsn}, {erts, ErtsVsn}, Apps}",
            )
        )

    return Ok(ReleaseIdentity(name=str(release[1][0]), version=str(release[1][1])))
