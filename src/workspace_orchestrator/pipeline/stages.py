"""
Build stages.

Purpose
- ``bundle_cli``: commit metadata, CLI bundle with the monorepo alias policy, bundle assets.
- ``build_sandbox``: probe the sandbox container tool, build the image when enabled.
- ``build_companion``: package the editor companion extension in its own directory.

Functional requirements
- Optional preconditions (probe tool, ``BUILD_SANDBOX``) produce a SKIPPED outcome.
- Any real failure raises; stages never retry and never touch each other's state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Final

from workspace_orchestrator.config.workspace import Workspace
from workspace_orchestrator.execution.runner import (
    CommandFailedError,
    CommandRunner,
    CommandSpec,
    command,
)
from workspace_orchestrator.toolchain.aliases import AliasPolicy
from workspace_orchestrator.toolchain.bundlers import BundleError, Bundler, BundleRequest
from workspace_orchestrator.toolchain.detection import Toolchain

logger = logging.getLogger(__name__)

SANDBOX_ENV_FLAG: Final[str] = "BUILD_SANDBOX"
SANDBOX_ENABLED_VALUES: Final[frozenset[str]] = frozenset({"1", "true"})


class BuildTask(StrEnum):
    BUNDLE = "bundle-cli"
    SANDBOX = "build-sandbox"
    VSCODE = "build-vscode-companion"
    PACKAGE = "build-package"


class StageStatus(StrEnum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class StageOutcome:
    task: BuildTask
    status: StageStatus
    detail: str | None = None


class StageError(RuntimeError):
    """Fatal, stage-labelled failure."""

    def __init__(self, task: BuildTask, message: str, *, exit_code: int = 1) -> None:
        self.task = task
        self.exit_code = exit_code
        super().__init__(f"[{task.value}] {message}")


@dataclass(frozen=True, slots=True)
class StageContext:
    """Everything a stage needs, resolved once at startup."""

    workspace: Workspace
    runner: CommandRunner
    toolchain: Toolchain
    bundler: Bundler
    environ: Mapping[str, str] = field(default_factory=dict)
    output: Path | None = None

    @property
    def root(self) -> Path:
        return self.workspace.root

    def script(self, key: str, *args: str, cwd: Path | None = None) -> CommandSpec:
        """Command running the helper script configured under ``build.<key>``."""

        script_path = self.workspace.setting_path("build", key)
        return command(
            *self.toolchain.script_argv(str(script_path), *args),
            cwd=cwd if cwd is not None else self.root,
        )

    @property
    def bundle_output(self) -> Path:
        if self.output is not None:
            return self.workspace.path(self.output)
        return self.workspace.setting_path("build", "output")


async def bundle_cli(ctx: StageContext) -> StageOutcome:
    logger.info("Generating git commit info...")
    (await ctx.runner.run(ctx.script("commit_info_script"))).check("commit info")

    output = ctx.bundle_output
    output.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Bundling with %s to %s...", ctx.bundler.name, output)
    request = BundleRequest(
        entry_points=(str(ctx.workspace.setting_path("build", "cli_entry")),),
        cwd=ctx.root,
        outfile=output,
        target="bun",
        minify=True,
        sourcemap=False,
        tsconfig=ctx.workspace.setting_path("build", "cli_tsconfig"),
        aliases=AliasPolicy.from_workspace(ctx.workspace).mapping(),
    )
    result = await ctx.bundler.bundle(request)
    if not result.success:
        raise BundleError(result, label="CLI bundle")

    logger.info("Copying bundle assets...")
    (await ctx.runner.run(ctx.script("bundle_assets_script"))).check("bundle assets")
    return StageOutcome(BuildTask.BUNDLE, StageStatus.COMPLETED, str(output))


def sandbox_build_enabled(environ: Mapping[str, str]) -> bool:
    return environ.get(SANDBOX_ENV_FLAG, "") in SANDBOX_ENABLED_VALUES


async def build_sandbox(ctx: StageContext) -> StageOutcome:
    logger.info("Checking for sandbox container command...")
    probe = await ctx.runner.run(ctx.script("sandbox_probe_script", "-q"))
    if not probe.ok:
        reason = "sandbox container command not found"
        logger.info("Skipping sandbox build (%s).", reason)
        return StageOutcome(BuildTask.SANDBOX, StageStatus.SKIPPED, reason)

    if not sandbox_build_enabled(ctx.environ):
        reason = f'{SANDBOX_ENV_FLAG} environment variable is not set to "1" or "true"'
        logger.info("Skipping sandbox build (%s).", reason)
        return StageOutcome(BuildTask.SANDBOX, StageStatus.SKIPPED, reason)

    logger.info("Building sandbox...")
    result = await ctx.runner.run(ctx.script("sandbox_build_script", "--skip-npm-install-build"))
    result.check("sandbox build")
    return StageOutcome(BuildTask.SANDBOX, StageStatus.COMPLETED)


async def build_companion(ctx: StageContext) -> StageOutcome:
    logger.info("Building VSCode companion...")
    companion_dir = ctx.workspace.setting_path("build", "companion_dir")
    script_name = str(ctx.workspace.setting("build", "companion_script"))
    result = await ctx.runner.run(
        command(*ctx.toolchain.run_script_argv(script_name), cwd=companion_dir)
    )
    if not result.ok:
        raise CommandFailedError(result, label="VSCode companion build")
    return StageOutcome(BuildTask.VSCODE, StageStatus.COMPLETED, str(companion_dir))


__all__ = [
    "SANDBOX_ENV_FLAG",
    "BuildTask",
    "StageContext",
    "StageError",
    "StageOutcome",
    "StageStatus",
    "build_companion",
    "build_sandbox",
    "bundle_cli",
    "sandbox_build_enabled",
]
