from __future__ import annotations

import tarfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from relupgrade.core.result import Err, Ok, Result
from relupgrade.output.console import MockConsole
from relupgrade.services.upgrade.errors import ToolchainFailed, ToolchainStage
from relupgrade.services.upgrade.search_path import SearchContext, SearchPath

APP = "myapp"
OLD_VSN = "1.0"
NEW_VSN = "1.1"


def write_release(
    root: Path,
    name: str,
    version: str,
    *,
    rel_name: str | None = None,
    rel_version: str | None = None,
) -> Path:
    """Create a minimal release tree as a rebar/reltool build leaves it."""
    rel_dir = root / "releases" / version
    rel_dir.mkdir(parents=True)
    (rel_dir / f"{name}.rel").write_text(
        "%% generated\n"
        f'{{release, {{"{rel_name or name}", "{rel_version or version}"}}, {{erts, "14.2"}},\n'
        f' [{{kernel, "9.2"}}, {{stdlib, "5.2"}}, {{{name}, "{version}"}}]}}.\n',
        encoding="utf-8",
    )
    (rel_dir / "start.boot").write_bytes(b"start-" + version.encode())
    (rel_dir / "start_clean.boot").write_bytes(b"start_clean-" + version.encode())

    ebin = root / "lib" / f"{name}-{version}" / "ebin"
    ebin.mkdir(parents=True)
    (ebin / f"{name}.app").write_text(
        f'{{application, {name}, [{{vsn, "{version}"}}]}}.\n', encoding="utf-8"
    )
    (ebin / f"{name}.beam").write_bytes(b"BEAM" + version.encode())
    return root


def write_reltool(path: Path, name: str, version: str) -> Path:
    path.write_text(
        "%% reltool config\n"
        "{sys, [\n"
        '    {lib_dirs, ["../deps"]},\n'
        f'    {{rel, "{name}", "{version}", [kernel, stdlib, {name}]}},\n'
        '    {rel, "start_clean", "", [kernel, stdlib]},\n'
        f'    {{boot_rel, "{name}"}}\n'
        "]}.\n"
        f'{{target_dir, "{name}"}}.\n',
        encoding="utf-8",
    )
    return path


@dataclass(frozen=True, slots=True)
class UpgradeEnv:
    work_dir: Path
    old_root: Path
    reltool: Path

    @property
    def new_root(self) -> Path:
        return self.work_dir / APP


def make_env(base: Path, *, new_vsn: str = NEW_VSN, old_vsn: str = OLD_VSN) -> UpgradeEnv:
    work_dir = base / "rel"
    work_dir.mkdir(parents=True)
    write_release(work_dir / APP, APP, new_vsn)
    old_root = write_release(base / "deployed", APP, old_vsn)
    reltool = write_reltool(work_dir / "reltool.config", APP, new_vsn)
    return UpgradeEnv(work_dir=work_dir, old_root=old_root, reltool=reltool)


@pytest.fixture
def env(tmp_path: Path) -> UpgradeEnv:
    return make_env(tmp_path)


@dataclass
class FakeToolchain:
    """Writes what systools would write, from the files it finds in work_dir."""

    fail_at: ToolchainStage | None = None
    raise_at: ToolchainStage | None = None
    available: bool = True
    executable: str = "erl"
    calls: list[tuple[str, str]] = field(default_factory=list)
    searches: list[SearchContext] = field(default_factory=list)

    def is_available(self) -> bool:
        return self.available

    def _enter(
        self, stage: ToolchainStage, name_ver: str, search: SearchContext
    ) -> Result[None, ToolchainFailed] | None:
        self.calls.append((stage, name_ver))
        self.searches.append(search)
        if self.raise_at == stage:
            raise RuntimeError(f"{stage} crashed")
        if self.fail_at == stage:
            return Err(ToolchainFailed(stage=stage, reason=f"{{{stage}_failed, {name_ver}}}"))
        return None

    def make_relup(
        self,
        name_ver: str,
        up_from: Sequence[str],
        down_from: Sequence[str],
        search: SearchContext,
        work_dir: Path,
    ) -> Result[None, ToolchainFailed]:
        failed = self._enter("relup", name_ver, search)
        if failed is not None:
            return failed
        assert (work_dir / f"{name_ver}.rel").is_file()
        (work_dir / "relup").write_text(f"{{\"{NEW_VSN}\", [], []}}.\n", encoding="utf-8")
        return Ok(None)

    def make_script(
        self, name_ver: str, search: SearchContext, work_dir: Path
    ) -> Result[None, ToolchainFailed]:
        failed = self._enter("script", name_ver, search)
        if failed is not None:
            return failed
        (work_dir / f"{name_ver}.boot").write_bytes(b"boot")
        (work_dir / f"{name_ver}.script").write_text("{script, {}, []}.\n", encoding="utf-8")
        return Ok(None)

    def make_tar(
        self, name_ver: str, search: SearchContext, work_dir: Path
    ) -> Result[None, ToolchainFailed]:
        failed = self._enter("tar", name_ver, search)
        if failed is not None:
            return failed
        name, vsn = name_ver.rsplit("_", 1)
        new_root = work_dir / name
        rel_dir = new_root / "releases" / vsn
        with tarfile.open(work_dir / f"{name_ver}.tar.gz", "w:gz") as tar:
            tar.add(new_root / "lib", arcname="lib")
            tar.add(rel_dir / f"{name}.rel", arcname=f"releases/{vsn}/{name}.rel")
            tar.add(rel_dir / "start.boot", arcname=f"releases/{vsn}/start.boot")
            tar.add(work_dir / "relup", arcname=f"releases/{vsn}/relup")
        return Ok(None)


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()


@pytest.fixture
def search_path() -> SearchPath:
    return SearchPath(SearchContext(("/usr/lib/erlang/custom/ebin",)))
