"""Build stage orchestration: bundle, sandbox, companion and single-package builds."""

from workspace_orchestrator.pipeline.orchestrator import (
    DEFAULT_TASKS,
    TASK_ORDER,
    BuildOptions,
    BuildOrchestrator,
    PipelineState,
    select_tasks,
)
from workspace_orchestrator.pipeline.package_build import (
    PackageContextError,
    build_package,
    resolve_package_dir,
)
from workspace_orchestrator.pipeline.stages import (
    SANDBOX_ENV_FLAG,
    BuildTask,
    StageContext,
    StageError,
    StageOutcome,
    StageStatus,
    build_companion,
    build_sandbox,
    bundle_cli,
    sandbox_build_enabled,
)

__all__ = [
    "DEFAULT_TASKS",
    "SANDBOX_ENV_FLAG",
    "TASK_ORDER",
    "BuildOptions",
    "BuildOrchestrator",
    "BuildTask",
    "PackageContextError",
    "PipelineState",
    "StageContext",
    "StageError",
    "StageOutcome",
    "StageStatus",
    "build_companion",
    "build_package",
    "build_sandbox",
    "bundle_cli",
    "resolve_package_dir",
    "sandbox_build_enabled",
    "select_tasks",
]
