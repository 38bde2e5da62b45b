"""Build context and the on-disk layout it implies.

Everything the pipeline reads or writes is derived from one ``BuildContext``,
created once validation has passed and never modified afterwards.

Working directory during a build (``work_dir``)::

    reltool.config
    <name>/                          new release tree (input)
        releases/<vsn>/<name>.rel
        releases/<vsn>/start.boot
        releases/<vsn>/start_clean.boot
        lib/*/ebin
    <name>_<vsn>.rel                 staged manifest         (transient)
    <name>_<vsn>.boot, .script       systools boot script    (transient)
    relup                            systools relup          (transient)
    releases/<vsn>/...               patched boot layout     (transient)
    lib/...                          extracted raw package   (transient)
    <name>_<vsn>.tar.gz              the upgrade package     (kept)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ReleaseIdentity:
    """A release's declared ``(name, version)``."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


@dataclass(frozen=True, slots=True)
class BuildContext:
    name: str
    version: str
    old_version: str
    old_root: Path
    work_dir: Path

    @property
    def name_ver(self) -> str:
        return f"{self.name}_{self.version}"

    # Inputs

    @property
    def new_root(self) -> Path:
        return self.work_dir / self.name

    @property
    def new_release_dir(self) -> Path:
        return self.new_root / "releases" / self.version

    @property
    def new_rel_file(self) -> Path:
        return self.new_release_dir / f"{self.name}.rel"

    @property
    def start_clean_source(self) -> Path:
        return self.new_release_dir / "start_clean.boot"

    # Generated

    @property
    def staged_rel_file(self) -> Path:
        return self.work_dir / f"{self.name_ver}.rel"

    @property
    def boot_file(self) -> Path:
        return self.work_dir / f"{self.name_ver}.boot"

    @property
    def script_file(self) -> Path:
        return self.work_dir / f"{self.name_ver}.script"

    @property
    def relup_file(self) -> Path:
        return self.work_dir / "relup"

    @property
    def releases_dir(self) -> Path:
        return self.work_dir / "releases"

    @property
    def version_dir(self) -> Path:
        return self.releases_dir / self.version

    @property
    def boot_link(self) -> Path:
        return self.version_dir / f"{self.name}.boot"

    @property
    def start_clean_target(self) -> Path:
        return self.version_dir / "start_clean.boot"

    @property
    def lib_dir(self) -> Path:
        return self.work_dir / "lib"

    @property
    def package(self) -> Path:
        return self.work_dir / f"{self.name_ver}.tar.gz"

    def transient_files(self) -> tuple[Path, ...]:
        """Intermediate files, in removal order."""
        return (
            self.boot_link,
            self.staged_rel_file,
            self.boot_file,
            self.script_file,
            self.relup_file,
        )

    def transient_trees(self) -> tuple[Path, ...]:
        """Intermediate directory trees, in removal order."""
        return (self.releases_dir, self.lib_dir)
