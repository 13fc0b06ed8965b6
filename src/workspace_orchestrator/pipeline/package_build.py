"""
Single-package build: type check, bundle, static file copy, build stamp.

The bundler strategy comes from the stage context, so the same four steps run
with ``bun`` when it is available and with ``tsc`` + ``esbuild`` otherwise. Both
produce ``<package>/dist``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from workspace_orchestrator.config.workspace import Workspace
from workspace_orchestrator.execution.runner import command
from workspace_orchestrator.pipeline.stages import (
    BuildTask,
    StageContext,
    StageOutcome,
    StageStatus,
)
from workspace_orchestrator.toolchain.bundlers import BundleError, BundleRequest, require_typecheck
from workspace_orchestrator.utils.fs import atomic_write, is_within

logger = logging.getLogger(__name__)

DIST_DIR = Path("dist")


class PackageContextError(RuntimeError):
    """Raised when ``build-package`` is not pointed at a workspace package."""


def resolve_package_dir(workspace: Workspace, package_dir: Path | None) -> Path:
    """Validate that ``package_dir`` (default: cwd) is a package inside the workspace."""

    candidate = (package_dir if package_dir is not None else Path.cwd()).resolve()
    packages_root = workspace.packages_dir.resolve()
    if candidate == packages_root or not is_within(candidate, packages_root):
        raise PackageContextError(
            f"must be invoked from a package directory under {packages_root} (got {candidate})"
        )
    if not (candidate / "package.json").is_file():
        raise PackageContextError(f"no package.json found in {candidate}")
    return candidate


async def build_package(ctx: StageContext, package_dir: Path) -> StageOutcome:
    build = ctx.workspace.config["build"]
    tsconfig = package_dir / build["package_tsconfig"]

    logger.info("Type-checking %s with %s...", package_dir.name, ctx.bundler.name)
    require_typecheck(
        await ctx.bundler.typecheck(package_dir, tsconfig),
        label=f"type check of {package_dir.name}",
    )

    logger.info("Bundling %s...", package_dir.name)
    result = await ctx.bundler.bundle(
        BundleRequest(
            entry_points=(build["package_entry"],),
            cwd=package_dir,
            outdir=DIST_DIR,
            target="bun" if ctx.toolchain.fast else "node",
            sourcemap=False,
        )
    )
    if not result.success:
        raise BundleError(result, label=f"bundle of {package_dir.name}")

    copy_script = ctx.workspace.setting_path("build", "copy_files_script")
    copy_result = await ctx.runner.run(
        command(*ctx.toolchain.script_argv(str(copy_script)), cwd=package_dir)
    )
    copy_result.check(f"static file copy for {package_dir.name}")

    stamp = package_dir / DIST_DIR / build["stamp_file"]
    atomic_write(stamp, "")
    logger.info("build complete: %s", package_dir.name)
    return StageOutcome(BuildTask.PACKAGE, StageStatus.COMPLETED, str(package_dir / DIST_DIR))


__all__ = ["PackageContextError", "build_package", "resolve_package_dir"]
