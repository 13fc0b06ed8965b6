"""
Build stage orchestration.

Purpose
- Turn the ``build`` flags into an ordered task list and run it strictly in
  sequence, stopping at the first fatal error.
- Track the run as a small state machine: INIT -> RUNNING -> DONE | FAILED.

Functional requirements
- No flags selects the default pipeline: bundle, sandbox, VSCode companion.
- Explicit flags compose; selected tasks always run in the fixed order
  bundle, sandbox, VSCode companion, package build.
- Skipped stages are recorded and never halt the pipeline.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Final

from workspace_orchestrator.execution.runner import CommandFailedError
from workspace_orchestrator.pipeline.package_build import (
    PackageContextError,
    build_package,
    resolve_package_dir,
)
from workspace_orchestrator.pipeline.stages import (
    BuildTask,
    StageContext,
    StageError,
    StageOutcome,
    StageStatus,
    build_companion,
    build_sandbox,
    bundle_cli,
)
from workspace_orchestrator.toolchain.bundlers import BundleError

logger = logging.getLogger(__name__)

TASK_ORDER: Final[tuple[BuildTask, ...]] = (
    BuildTask.BUNDLE,
    BuildTask.SANDBOX,
    BuildTask.VSCODE,
    BuildTask.PACKAGE,
)
DEFAULT_TASKS: Final[tuple[BuildTask, ...]] = (
    BuildTask.BUNDLE,
    BuildTask.SANDBOX,
    BuildTask.VSCODE,
)

StageFn = Callable[[StageContext], Awaitable[StageOutcome]]


class PipelineState(StrEnum):
    INIT = "init"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Parsed ``build`` flags."""

    bundle: bool = False
    sandbox: bool = False
    vscode: bool = False
    package: bool = False
    package_dir: Path | None = None

    def selected(self) -> dict[BuildTask, bool]:
        return {
            BuildTask.BUNDLE: self.bundle,
            BuildTask.SANDBOX: self.sandbox,
            BuildTask.VSCODE: self.vscode,
            BuildTask.PACKAGE: self.package,
        }


def select_tasks(options: BuildOptions) -> tuple[BuildTask, ...]:
    flags = options.selected()
    if not any(flags.values()):
        return DEFAULT_TASKS
    return tuple(task for task in TASK_ORDER if flags[task])


class BuildOrchestrator:
    """Run the selected build stages against one stage context."""

    def __init__(
        self,
        ctx: StageContext,
        *,
        stages: Mapping[BuildTask, StageFn] | None = None,
    ) -> None:
        self._ctx = ctx
        self._stages: dict[BuildTask, StageFn] = {
            BuildTask.BUNDLE: bundle_cli,
            BuildTask.SANDBOX: build_sandbox,
            BuildTask.VSCODE: build_companion,
        }
        if stages:
            self._stages.update(stages)
        self.state = PipelineState.INIT
        self.outcomes: list[StageOutcome] = []

    async def run(self, options: BuildOptions) -> list[StageOutcome]:
        if self.state is not PipelineState.INIT:
            raise RuntimeError(f"build pipeline already {self.state.value}")

        tasks = select_tasks(options)
        self.state = PipelineState.RUNNING
        logger.debug("build tasks: %s", ", ".join(task.value for task in tasks))
        try:
            for task in tasks:
                outcome = await self._run_task(task, options)
                self.outcomes.append(outcome)
                if outcome.status is StageStatus.SKIPPED:
                    logger.info("%s skipped: %s", task.value, outcome.detail)
        except StageError:
            self.state = PipelineState.FAILED
            raise

        self.state = PipelineState.DONE
        logger.debug("build pipeline done", extra={"tasks": len(self.outcomes)})
        return list(self.outcomes)

    async def _run_task(self, task: BuildTask, options: BuildOptions) -> StageOutcome:
        try:
            if task is BuildTask.PACKAGE and task not in self._stages:
                package_dir = resolve_package_dir(self._ctx.workspace, options.package_dir)
                return await build_package(self._ctx, package_dir)
            return await self._stages[task](self._ctx)
        except CommandFailedError as exc:
            raise StageError(task, exc.describe()) from exc
        except (BundleError, PackageContextError) as exc:
            raise StageError(task, str(exc)) from exc


__all__ = [
    "DEFAULT_TASKS",
    "TASK_ORDER",
    "BuildOptions",
    "BuildOrchestrator",
    "PipelineState",
    "select_tasks",
]
