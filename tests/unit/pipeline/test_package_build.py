"""
workspace-orchestrator: unit tests for single-package builds

Purpose
- Validate package context checks, the type-check / bundle / copy / stamp
  sequence for both bundler strategies, and failure handling.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from workspace_orchestrator.config import Workspace
from workspace_orchestrator.execution import CommandFailedError
from workspace_orchestrator.pipeline.orchestrator import BuildOptions, BuildOrchestrator
from workspace_orchestrator.pipeline.package_build import (
    PackageContextError,
    build_package,
    resolve_package_dir,
)
from workspace_orchestrator.pipeline.stages import BuildTask, StageContext, StageError, StageStatus
from workspace_orchestrator.toolchain import select_bundler


def _ctx(workspace: Workspace, runner, toolchain) -> StageContext:
    return StageContext(
        workspace=workspace,
        runner=runner,
        toolchain=toolchain,
        bundler=select_bundler(toolchain, runner),
    )


def test_resolve_package_dir_accepts_workspace_package(workspace: Workspace, write_package) -> None:
    package = write_package(workspace.packages_dir, "core", {"build": "wsorch build --build-package"})
    assert resolve_package_dir(workspace, package) == package.resolve()


def test_resolve_package_dir_defaults_to_cwd(
    workspace: Workspace, write_package, monkeypatch: pytest.MonkeyPatch
) -> None:
    package = write_package(workspace.packages_dir, "core")
    monkeypatch.chdir(package)
    assert resolve_package_dir(workspace, None) == package.resolve()


def test_resolve_package_dir_rejects_outside_and_root(workspace: Workspace, tmp_path: Path) -> None:
    with pytest.raises(PackageContextError, match="must be invoked from a package directory"):
        resolve_package_dir(workspace, workspace.root)
    with pytest.raises(PackageContextError, match="must be invoked from a package directory"):
        resolve_package_dir(workspace, workspace.packages_dir)
    with pytest.raises(PackageContextError):
        resolve_package_dir(workspace, tmp_path)


def test_resolve_package_dir_requires_manifest(workspace: Workspace) -> None:
    bare = workspace.packages_dir / "bare"
    bare.mkdir()
    with pytest.raises(PackageContextError, match="no package.json"):
        resolve_package_dir(workspace, bare)


async def test_fast_build_sequence_and_stamp(
    workspace: Workspace, write_package, recording_runner, bun_toolchain
) -> None:
    package = write_package(workspace.packages_dir, "core").resolve()
    runner = recording_runner()

    outcome = await build_package(_ctx(workspace, runner, bun_toolchain), package)

    assert outcome.task is BuildTask.PACKAGE
    assert outcome.status is StageStatus.COMPLETED
    typecheck, bundle, copy = runner.calls
    assert typecheck.argv == ("bunx", "--bun", "tsgo", "-p", str(package / "tsconfig.json"), "--noEmit")
    assert bundle.argv[:3] == ("bun", "build", "index.ts")
    assert "--outdir=dist" in bundle.argv
    assert "--target=bun" in bundle.argv
    assert copy.argv == ("bun", str(workspace.root / "scripts" / "copy_files.js"))
    assert {spec.cwd for spec in runner.calls} == {str(package)}
    assert (package / "dist" / ".last_build").read_text(encoding="utf-8") == ""


async def test_generic_build_uses_tsc_and_esbuild(
    workspace: Workspace, write_package, recording_runner, node_toolchain
) -> None:
    package = write_package(workspace.packages_dir, "core").resolve()
    runner = recording_runner()

    await build_package(_ctx(workspace, runner, node_toolchain), package)

    assert [spec.argv[:3] for spec in runner.calls] == [
        ("npx", "--yes", "tsc"),
        ("npx", "--yes", "esbuild"),
        ("node", str(workspace.root / "scripts" / "copy_files.js")),
    ]
    assert "--platform=node" in runner.calls[1].argv


async def test_type_errors_stop_before_bundling(
    workspace: Workspace, write_package, recording_runner, make_result, bun_toolchain
) -> None:
    package = write_package(workspace.packages_dir, "core").resolve()
    runner = recording_runner(lambda spec: make_result(spec, 2, stdout="error TS2322"))

    with pytest.raises(CommandFailedError, match="type check of core"):
        await build_package(_ctx(workspace, runner, bun_toolchain), package)

    assert len(runner.calls) == 1
    assert not (package / "dist" / ".last_build").exists()


async def test_orchestrated_package_build_outside_workspace_fails(
    workspace: Workspace, recording_runner, bun_toolchain, tmp_path: Path
) -> None:
    runner = recording_runner()
    orchestrator = BuildOrchestrator(_ctx(workspace, runner, bun_toolchain))

    with pytest.raises(StageError) as excinfo:
        await orchestrator.run(BuildOptions(package=True, package_dir=tmp_path))

    assert excinfo.value.task is BuildTask.PACKAGE
    assert excinfo.value.exit_code == 1
    assert runner.calls == []
