from __future__ import annotations

import tarfile
from pathlib import Path

import pytest

from relupgrade.core.result import Err, Ok
from relupgrade.output.console import MockConsole, Style
from relupgrade.services.upgrade.errors import (
    FilesystemFailed,
    MissingPreviousRelease,
    ToolchainFailed,
    ToolchainMissing,
    ValidationFailed,
)
from relupgrade.services.upgrade.search_path import SearchContext, SearchPath
from relupgrade.services.upgrade.service import UpgradeRequest, UpgradeService

from .conftest import FakeToolchain, UpgradeEnv, make_env


def _request(env: UpgradeEnv, *, previous: Path | None = None) -> UpgradeRequest:
    return UpgradeRequest(
        reltool_file=env.reltool,
        previous_release=env.old_root if previous is None else previous,
        work_dir=env.work_dir,
    )


def _service(
    console: MockConsole, toolchain: FakeToolchain, search_path: SearchPath
) -> UpgradeService:
    return UpgradeService(console=console, toolchain=toolchain, search_path=search_path)


def _listing(root: Path) -> list[str]:
    return sorted(str(p.relative_to(root)) for p in root.rglob("*"))


class TestGenerate:
    def test_builds_package(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        toolchain: FakeToolchain,
        search_path: SearchPath,
    ) -> None:
        result = _service(console, toolchain, search_path).generate(_request(env))

        assert isinstance(result, Ok)
        package = result.value.package
        assert package == env.work_dir / "myapp_1.1.tar.gz"
        with tarfile.open(package, "r:gz") as tar:
            names = tar.getnames()
            link = tar.getmember("releases/1.1/myapp.boot")
        assert {n.split("/")[0] for n in names} == {"lib", "releases"}
        assert "releases/1.1/start_clean.boot" in names
        assert "releases/1.1/start.boot" in names
        assert "releases/1.1/relup" in names
        assert link.issym() and link.linkname == "start.boot"
        assert console.find("myapp_1.1 upgrade package created")

    def test_leaves_only_the_package(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        toolchain: FakeToolchain,
        search_path: SearchPath,
    ) -> None:
        before = set(p.name for p in env.work_dir.iterdir())

        _service(console, toolchain, search_path).generate(_request(env))

        after = set(p.name for p in env.work_dir.iterdir())
        assert after - before == {"myapp_1.1.tar.gz"}
        assert before <= after

    def test_toolchain_sees_staged_search_path(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        toolchain: FakeToolchain,
        search_path: SearchPath,
    ) -> None:
        base = search_path.current

        _service(console, toolchain, search_path).generate(_request(env))

        assert [stage for stage, _ in toolchain.calls] == ["relup", "script", "tar"]
        staged = toolchain.searches[0]
        assert staged.paths[: len(base)] == base.paths
        assert str(env.old_root / "releases" / "1.0") in staged.paths
        assert str(env.new_root / "lib" / "myapp-1.1" / "ebin") in staged.paths
        assert search_path.current == base

    def test_package_is_reproducible(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        toolchain: FakeToolchain,
    ) -> None:
        monkeypatch.delenv("SOURCE_DATE_EPOCH", raising=False)
        packages: list[bytes] = []
        for run in ("first", "second"):
            env = make_env(tmp_path / run)
            result = _service(MockConsole(), toolchain, SearchPath()).generate(_request(env))
            assert isinstance(result, Ok)
            packages.append(result.value.package.read_bytes())

        assert packages[0] == packages[1]

    def test_verbose_progress(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        toolchain: FakeToolchain,
        search_path: SearchPath,
    ) -> None:
        _service(console, toolchain, search_path).generate(_request(env))

        debug = [r.message for r in console.outputs if r.style == Style.DEBUG]
        assert debug == [
            "Staged 6 code path entries",
            "Relup created",
            "Script created",
            "Raw package created",
            "Removed files needed for building the upgrade",
        ]


class TestGenerateFailures:
    def test_missing_previous_release(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        toolchain: FakeToolchain,
        search_path: SearchPath,
    ) -> None:
        request = UpgradeRequest(reltool_file=env.reltool, previous_release=None, work_dir=env.work_dir)

        result = _service(console, toolchain, search_path).generate(request)

        assert result == Err(MissingPreviousRelease())
        assert toolchain.calls == []

    def test_validation_failure_changes_nothing(
        self,
        tmp_path: Path,
        console: MockConsole,
        toolchain: FakeToolchain,
        search_path: SearchPath,
    ) -> None:
        env = make_env(tmp_path, old_vsn="1.1")
        before = _listing(tmp_path)
        base = search_path.current

        result = _service(console, toolchain, search_path).generate(_request(env))

        assert isinstance(result, Err)
        assert isinstance(result.error, ValidationFailed)
        assert result.error.check == "release_versions"
        assert toolchain.calls == []
        assert _listing(tmp_path) == before
        assert search_path.current == base

    def test_toolchain_not_installed(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        search_path: SearchPath,
    ) -> None:
        toolchain = FakeToolchain(available=False)
        before = _listing(env.work_dir)

        result = _service(console, toolchain, search_path).generate(_request(env))

        assert result == Err(ToolchainMissing(executable="erl"))
        assert _listing(env.work_dir) == before

    @pytest.mark.parametrize("stage", ["relup", "script", "tar"])
    def test_toolchain_failure_cleans_up(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        search_path: SearchPath,
        stage: str,
    ) -> None:
        toolchain = FakeToolchain(fail_at=stage)  # type: ignore[arg-type]
        before = _listing(env.work_dir)
        base = search_path.current

        result = _service(console, toolchain, search_path).generate(_request(env))

        assert isinstance(result, Err)
        assert isinstance(result.error, ToolchainFailed)
        assert result.error.stage == stage
        assert _listing(env.work_dir) == before
        assert search_path.current == base
        assert not console.has_warning()

    def test_crash_in_toolchain_still_restores(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        search_path: SearchPath,
    ) -> None:
        toolchain = FakeToolchain(raise_at="script")
        before = _listing(env.work_dir)
        base = search_path.current

        with pytest.raises(RuntimeError, match="script crashed"):
            _service(console, toolchain, search_path).generate(_request(env))

        assert _listing(env.work_dir) == before
        assert search_path.current == base

    def test_failed_rebuild_keeps_earlier_package(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        toolchain: FakeToolchain,
        search_path: SearchPath,
    ) -> None:
        first = _service(console, toolchain, search_path).generate(_request(env))
        assert isinstance(first, Ok)
        built = first.value.package.read_bytes()

        failing = FakeToolchain(fail_at="tar")
        result = _service(console, failing, search_path).generate(_request(env))

        assert isinstance(result, Err)
        assert isinstance(result.error, ToolchainFailed)
        assert first.value.package.read_bytes() == built

    def test_existing_releases_dir_is_preserved(
        self,
        env: UpgradeEnv,
        console: MockConsole,
        toolchain: FakeToolchain,
        search_path: SearchPath,
    ) -> None:
        mine = env.work_dir / "releases" / "keep.txt"
        mine.parent.mkdir()
        mine.write_text("mine", encoding="utf-8")

        result = _service(console, toolchain, search_path).generate(_request(env))

        assert result == Err(
            FilesystemFailed(
                operation="stage",
                path=env.work_dir / "releases",
                reason="already exists",
            )
        )
        assert mine.read_text(encoding="utf-8") == "mine"
        assert toolchain.calls == []


def test_describe_does_not_build(
    env: UpgradeEnv,
    console: MockConsole,
    toolchain: FakeToolchain,
    search_path: SearchPath,
) -> None:
    result = _service(console, toolchain, search_path).describe(_request(env))

    assert isinstance(result, Ok)
    assert result.value.name_ver == "myapp_1.1"
    assert toolchain.calls == []
    assert not result.value.package.exists()


def test_default_search_path_is_shared(env: UpgradeEnv, toolchain: FakeToolchain) -> None:
    from relupgrade.services.upgrade.search_path import code_path

    before = code_path.current
    UpgradeService(console=MockConsole(), toolchain=toolchain).generate(_request(env))
    assert code_path.current == before
    assert toolchain.searches[0] != SearchContext()
