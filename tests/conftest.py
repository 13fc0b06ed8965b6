"""Shared fixtures: a recording command runner and a throwaway monorepo layout."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from workspace_orchestrator.config import Workspace, default_config
from workspace_orchestrator.execution import CommandResult, CommandSpec
from workspace_orchestrator.toolchain import Toolchain

Responder = Callable[[CommandSpec], "CommandResult | None"]


class RecordingRunner:
    """``CommandRunner`` double that records every spec and answers from a responder."""

    def __init__(self, responder: Responder | None = None) -> None:
        self.calls: list[CommandSpec] = []
        self._responder = responder

    async def run(self, spec: CommandSpec) -> CommandResult:
        self.calls.append(spec)
        result = self._responder(spec) if self._responder is not None else None
        if result is not None:
            return result
        return CommandResult(argv=spec.argv, exit_code=0, stdout="", stderr="", cwd=spec.cwd)

    @property
    def argvs(self) -> list[tuple[str, ...]]:
        return [spec.argv for spec in self.calls]


def result_for(
    spec: CommandSpec,
    exit_code: int | None,
    *,
    stdout: str = "",
    stderr: str = "",
    error: str | None = None,
) -> CommandResult:
    return CommandResult(
        argv=spec.argv,
        exit_code=exit_code,
        stdout=stdout,
        stderr=stderr,
        cwd=spec.cwd,
        error=error,
    )


@pytest.fixture
def recording_runner() -> type[RecordingRunner]:
    return RecordingRunner


@pytest.fixture
def make_result() -> Callable[..., CommandResult]:
    return result_for


@pytest.fixture
def bun_toolchain() -> Toolchain:
    return Toolchain(runtime="bun", runtime_path="/usr/bin/bun", fast=True)


@pytest.fixture
def node_toolchain() -> Toolchain:
    return Toolchain(
        runtime="node",
        runtime_path="/usr/bin/node",
        fast=False,
        executor_path="/usr/bin/npx",
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    root = tmp_path / "repo"
    (root / "packages").mkdir(parents=True)
    return Workspace(root=root, config=default_config())


@pytest.fixture
def write_package() -> Callable[..., Path]:
    def _write(packages_dir: Path, name: str, scripts: dict[str, str] | None = None) -> Path:
        package_dir = packages_dir / name
        package_dir.mkdir(parents=True, exist_ok=True)
        manifest: dict[str, object] = {"name": name, "version": "0.0.0"}
        if scripts is not None:
            manifest["scripts"] = scripts
        (package_dir / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
        return package_dir

    return _write
