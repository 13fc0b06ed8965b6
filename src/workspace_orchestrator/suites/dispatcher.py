"""
Per-package test dispatch and root-level test branches.

Purpose
- Run one package.json script in every workspace package, strictly in sequence.
- Select and run the ``--scripts`` / ``--e2e`` / ``--integration`` early-return
  branches, falling through to per-package dispatch.

Functional requirements
- A package without the script is a skip, never a failure. Absence is read from
  the package manifest before anything runs; the tool's "missing script" messages
  are recognised as a fallback.
- The first real failure aborts the dispatch; later packages are not attempted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Final

from workspace_orchestrator.execution.runner import (
    CommandFailedError,
    CommandResult,
    CommandRunner,
    command,
)
from workspace_orchestrator.suites.catalog import CommandStep, SuiteCatalog
from workspace_orchestrator.toolchain.detection import Toolchain
from workspace_orchestrator.utils.fs import ManifestReadError, list_subdirectories, read_json_object

logger = logging.getLogger(__name__)

SCRIPT_MISSING_MARKERS: Final[tuple[str, ...]] = ("Missing script", "Script not found")


class PackageOutcome(StrEnum):
    PASSED = "passed"
    SKIPPED = "skipped"


class SuiteBranch(StrEnum):
    SCRIPTS = "scripts"
    E2E = "e2e"
    INTEGRATION = "integration"
    PACKAGES = "packages"


@dataclass(frozen=True, slots=True)
class PackageReport:
    """Outcome of running one script in one package."""

    package: str
    path: Path
    script: str
    outcome: PackageOutcome
    reason: str | None = None


class DispatchError(RuntimeError):
    """Fatal failure attributed to one package (or one root command)."""

    def __init__(self, target: str, script: str, failure: CommandFailedError) -> None:
        self.target = target
        self.script = script
        self.failure = failure
        super().__init__(f'Script "{script}" in {target} failed.\n\n{failure.describe()}')

    @property
    def exit_code(self) -> int:
        return self.failure.exit_code


ReportCallback = Callable[[PackageReport], None]


@dataclass(frozen=True, slots=True)
class SuiteOptions:
    """Parsed test-orchestrator flags."""

    ci: bool = False
    e2e: bool = False
    scripts: bool = False
    integration: str | None = None

    @property
    def branch(self) -> SuiteBranch:
        # Fixed priority order; the first match wins.
        if self.scripts:
            return SuiteBranch.SCRIPTS
        if self.e2e:
            return SuiteBranch.E2E
        if self.integration is not None:
            return SuiteBranch.INTEGRATION
        return SuiteBranch.PACKAGES


def script_declared(package_dir: Path, script_name: str) -> bool | None:
    """``True``/``False`` from the package manifest, ``None`` when it cannot be read."""

    try:
        manifest = read_json_object(package_dir / "package.json")
    except ManifestReadError:
        return None
    scripts = manifest.get("scripts")
    if not isinstance(scripts, Mapping):
        return False
    return script_name in scripts


def is_missing_script_output(result: CommandResult) -> bool:
    output = result.combined_output
    return any(marker in output for marker in SCRIPT_MISSING_MARKERS)


class PackageTestDispatcher:
    """Run test scripts across workspace packages and root-level test commands."""

    def __init__(
        self,
        runner: CommandRunner,
        toolchain: Toolchain,
        *,
        on_report: ReportCallback | None = None,
    ) -> None:
        self._runner = runner
        self._toolchain = toolchain
        self._on_report = on_report

    async def run_script(self, package_dir: Path, script_name: str) -> PackageReport:
        label = package_dir.name
        declared = script_declared(package_dir, script_name)
        if declared is False:
            return self._report(
                PackageReport(label, package_dir, script_name, PackageOutcome.SKIPPED, "not declared")
            )

        spec = command(*self._toolchain.run_script_argv(script_name), cwd=package_dir)
        result = await self._runner.run(spec)
        if result.ok:
            return self._report(PackageReport(label, package_dir, script_name, PackageOutcome.PASSED))

        if is_missing_script_output(result):
            return self._report(
                PackageReport(
                    label, package_dir, script_name, PackageOutcome.SKIPPED, "reported missing"
                )
            )

        raise DispatchError(str(package_dir), script_name, CommandFailedError(result))

    async def run_all(self, script_name: str, packages_dir: Path) -> list[PackageReport]:
        reports: list[PackageReport] = []
        for package_dir in list_subdirectories(packages_dir):
            reports.append(await self.run_script(package_dir, script_name))
        return reports

    async def run_steps(self, steps: Sequence[CommandStep], root: Path, label: str) -> None:
        for step in steps:
            spec = step.to_spec(root, self._toolchain)
            logger.info("Running from root: %s", spec.display())
            result = await self._runner.run(spec)
            if not result.ok:
                raise DispatchError("workspace root", label, CommandFailedError(result))

    async def run(
        self,
        options: SuiteOptions,
        *,
        catalog: SuiteCatalog,
        workspace_root: Path,
        packages_dir: Path,
        script: str,
        ci_script: str,
    ) -> list[PackageReport]:
        branch = options.branch
        if branch is SuiteBranch.SCRIPTS:
            await self.run_steps(catalog.scripts, workspace_root, "scripts")
            return []
        if branch is SuiteBranch.E2E:
            await self.run_steps(catalog.e2e, workspace_root, "e2e")
            return []
        if branch is SuiteBranch.INTEGRATION:
            assert options.integration is not None
            steps = catalog.integration_steps(options.integration)
            await self.run_steps(steps, workspace_root, f"integration:{options.integration}")
            return []

        script_name = ci_script if options.ci else script
        logger.info('Running "%s" for each package', script_name)
        reports = await self.run_all(script_name, packages_dir)
        if options.ci:
            await self.run_steps(catalog.ci_scripts, workspace_root, "test:scripts")
        return reports

    def _report(self, report: PackageReport) -> PackageReport:
        if report.outcome is PackageOutcome.SKIPPED:
            logger.info("Skipping %s (no %r script: %s)", report.package, report.script, report.reason)
        if self._on_report is not None:
            self._on_report(report)
        return report


__all__ = [
    "SCRIPT_MISSING_MARKERS",
    "DispatchError",
    "PackageOutcome",
    "PackageReport",
    "PackageTestDispatcher",
    "SuiteBranch",
    "SuiteOptions",
    "is_missing_script_output",
    "script_declared",
]
