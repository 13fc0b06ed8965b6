"""Command-line interface router for workspace-orchestrator."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from workspace_orchestrator.config import (
    ConfigLoadError,
    ConfigValidationError,
    Workspace,
    dump_config,
    load_config,
)
from workspace_orchestrator.execution import CommandRunner, LocalCommandRunner
from workspace_orchestrator.notices import NoticeAggregator, NoticesError, write_notices
from workspace_orchestrator.observability import setup_logging
from workspace_orchestrator.pipeline import (
    SANDBOX_ENV_FLAG,
    BuildOptions,
    BuildOrchestrator,
    StageContext,
    StageError,
    StageStatus,
    sandbox_build_enabled,
)
from workspace_orchestrator.suites import (
    CatalogError,
    DispatchError,
    InvalidIntegrationModeError,
    PackageOutcome,
    PackageReport,
    PackageTestDispatcher,
    SuiteBranch,
    SuiteCatalog,
    SuiteOptions,
    load_catalog,
)
from workspace_orchestrator.toolchain import (
    Toolchain,
    ToolchainUnavailableError,
    detect_toolchain,
    select_bundler,
)
from workspace_orchestrator.ui.render import CLIRenderer, create_renderer


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="wsorch",
        description=(
            "workspace-orchestrator: build, test and notices tooling for a JS monorepo.\n\n"
            "Common workflows:\n"
            "  wsorch build                 Bundle CLI, sandbox image, VSCode companion\n"
            "  wsorch build --build-package Build the package in the current directory\n"
            "  wsorch test --ci             Run test:ci in every package\n"
            "  wsorch notices               Regenerate third-party notices\n"
            "  wsorch doctor                Check the detected toolchain\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--workspace-root",
        default=".",
        help="Monorepo root directory (default: current working directory).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to TOML config (default: <workspace-root>/orchestrator.toml if present).",
    )
    common.add_argument(
        "--log-level",
        default=None,
        help="Log level override (DEBUG, INFO, WARNING, ERROR).",
    )
    common.add_argument(
        "--log-format",
        choices=("text", "json"),
        default=None,
        help="Log record format on stderr.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # build ---------------------------------------------------------------
    build_parser_ = subparsers.add_parser(
        "build",
        parents=[common],
        help="Run build stages",
        description=(
            "Without task flags, runs bundle -> sandbox -> VSCode companion.\n"
            "Task flags compose and always run in the order\n"
            "bundle -> sandbox -> VSCode companion -> package.\n\n"
            "Examples:\n"
            "  wsorch build\n"
            "  wsorch build --bundle --output dist/cli.js\n"
            "  BUILD_SANDBOX=1 wsorch build --build-sandbox\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    build_parser_.add_argument("--output", default=None, help="CLI bundle output path")
    build_parser_.add_argument("--bundle", action="store_true", help="Bundle the CLI")
    build_parser_.add_argument(
        "--build-sandbox", action="store_true", help="Build the sandbox container image"
    )
    build_parser_.add_argument(
        "--build-vscode", action="store_true", help="Package the VSCode companion"
    )
    build_parser_.add_argument(
        "--build-package", action="store_true", help="Build a single workspace package"
    )
    build_parser_.add_argument(
        "--package-dir",
        default=None,
        help="Package directory for --build-package (default: current directory)",
    )
    build_parser_.set_defaults(handler=_cmd_build)

    # test ----------------------------------------------------------------
    test_parser = subparsers.add_parser(
        "test",
        parents=[common],
        help="Run package or root-level test suites",
        description=(
            "Branch priority: --scripts, --e2e, --integration, then per-package tests.\n\n"
            "Examples:\n"
            "  wsorch test\n"
            "  wsorch test --ci\n"
            "  wsorch test --integration=sandbox:docker\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    test_parser.add_argument("--ci", action="store_true", help="Run the CI test script")
    test_parser.add_argument("--e2e", action="store_true", help="Run end-to-end tests")
    test_parser.add_argument("--scripts", action="store_true", help="Run root script tests")
    test_parser.add_argument(
        "--integration", default=None, metavar="MODE", help="Run integration tests in MODE"
    )
    test_parser.set_defaults(handler=_cmd_test)

    # notices -------------------------------------------------------------
    notices_parser = subparsers.add_parser(
        "notices",
        parents=[common],
        help="Generate the third-party notices file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    notices_parser.add_argument(
        "--package-dir", default=None, help="Package whose dependencies are reported"
    )
    notices_parser.add_argument(
        "--output", default=None, help="Output file (default: <package-dir>/NOTICES.txt)"
    )
    notices_parser.set_defaults(handler=_cmd_notices)

    # doctor --------------------------------------------------------------
    doctor_parser = subparsers.add_parser(
        "doctor",
        parents=[common],
        help="Report detected toolchain and workspace health",
    )
    doctor_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    doctor_parser.set_defaults(handler=_cmd_doctor)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_build(args: argparse.Namespace) -> int:
    workspace = _load_workspace(args)
    toolchain = _detect_toolchain(workspace)
    runner: CommandRunner = LocalCommandRunner()

    package_dir = _optional_str(getattr(args, "package_dir", None))
    output = _optional_str(getattr(args, "output", None))
    options = BuildOptions(
        bundle=_flag(args, "bundle"),
        sandbox=_flag(args, "build_sandbox"),
        vscode=_flag(args, "build_vscode"),
        package=_flag(args, "build_package"),
        package_dir=Path(package_dir).expanduser() if package_dir else None,
    )
    ctx = StageContext(
        workspace=workspace,
        runner=runner,
        toolchain=toolchain,
        bundler=select_bundler(toolchain, runner),
        environ=dict(os.environ),
        output=Path(output) if output else None,
    )

    renderer = create_renderer()
    try:
        outcomes = asyncio.run(BuildOrchestrator(ctx).run(options))
    except StageError as exc:
        raise CLIError(str(exc), exit_code=exc.exit_code) from exc
    for outcome in outcomes:
        if outcome.status is StageStatus.SKIPPED:
            renderer.skipped(outcome.task.value, outcome.detail)
    renderer.text("Build complete!")
    return 0


def _cmd_test(args: argparse.Namespace) -> int:
    workspace = _load_workspace(args)
    catalog = _load_catalog(workspace)

    options = SuiteOptions(
        ci=_flag(args, "ci"),
        e2e=_flag(args, "e2e"),
        scripts=_flag(args, "scripts"),
        integration=_optional_str(getattr(args, "integration", None)),
    )
    branch = options.branch
    if branch is SuiteBranch.INTEGRATION and options.integration is not None:
        try:
            catalog.integration_steps(options.integration)
        except InvalidIntegrationModeError as exc:
            raise CLIError(str(exc), exit_code=exc.exit_code) from exc

    packages_dir = workspace.packages_dir
    if branch is SuiteBranch.PACKAGES and not packages_dir.is_dir():
        raise CLIError(f"packages directory not found: {packages_dir}", exit_code=1)

    toolchain = _detect_toolchain(workspace)
    renderer = create_renderer()
    dispatcher = PackageTestDispatcher(
        LocalCommandRunner(),
        toolchain,
        on_report=lambda report: _render_report(renderer, report),
    )
    tests = workspace.config["tests"]
    try:
        asyncio.run(
            dispatcher.run(
                options,
                catalog=catalog,
                workspace_root=workspace.root,
                packages_dir=packages_dir,
                script=str(tests["script"]),
                ci_script=str(tests["ci_script"]),
            )
        )
    except DispatchError as exc:
        raise CLIError(str(exc), exit_code=exc.exit_code) from exc
    return 0


def _cmd_notices(args: argparse.Namespace) -> int:
    workspace = _load_workspace(args)
    notices = workspace.config["notices"]

    package_arg = _optional_str(getattr(args, "package_dir", None))
    package_dir = (
        workspace.path(package_arg) if package_arg else workspace.setting_path("notices", "package_dir")
    )
    output_arg = _optional_str(getattr(args, "output", None))
    output = workspace.path(output_arg) if output_arg else package_dir / str(notices["output"])

    aggregator = NoticeAggregator(workspace.root)
    try:
        text = asyncio.run(
            aggregator.generate(
                package_dir / "package.json",
                workspace.setting_path("notices", "lockfile"),
            )
        )
    except NoticesError as exc:
        raise CLIError(str(exc), exit_code=1) from exc

    written = write_notices(text, output)
    create_renderer().text(f"Wrote {written}")
    return 0


def _cmd_doctor(args: argparse.Namespace) -> int:
    checks: list[tuple[str, bool, str]] = []

    workspace: Workspace | None = None
    try:
        workspace = _load_workspace(args)
        checks.append(("config", True, "loaded successfully"))
    except CLIError as exc:
        checks.append(("config", False, str(exc)))

    if workspace is not None:
        packages_dir = workspace.packages_dir
        if packages_dir.is_dir():
            checks.append(("packages_dir", True, str(packages_dir)))
        else:
            checks.append(("packages_dir", False, f"not a directory: {packages_dir}"))

        try:
            toolchain = _detect_toolchain(workspace)
        except CLIError as exc:
            checks.append(("toolchain", False, str(exc)))
        else:
            checks.extend(_toolchain_checks(toolchain))
    else:
        checks.append(("toolchain", False, "skipped (config failed)"))

    sandbox_state = "enabled" if sandbox_build_enabled(os.environ) else "disabled"
    checks.append(("sandbox_build", True, f"{SANDBOX_ENV_FLAG} build {sandbox_state}"))

    if _flag(args, "json"):
        payload: dict[str, object] = {
            "command": "doctor",
            "checks": [
                {"name": name, "status": "ok" if passed else "fail", "detail": detail}
                for name, passed, detail in checks
            ],
        }
        _emit_json(payload)
        return 0 if all(passed for _, passed, _ in checks) else 1

    renderer = create_renderer()
    renderer.heading("wsorch doctor")
    for name, passed, detail in checks:
        if passed:
            renderer.ok(f"{name}: {detail}")
        else:
            renderer.fail(f"{name}: {detail}")

    if all(passed for _, passed, _ in checks):
        renderer.text("\nAll checks passed.")
        return 0
    renderer.text("\nSome checks failed. See details above.")
    return 1


def _cmd_config(args: argparse.Namespace) -> int:
    workspace = _load_workspace(args)
    renderer = create_renderer()
    renderer.kv("Workspace root", workspace.root)
    renderer.text(dump_config(workspace.config))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _toolchain_checks(toolchain: Toolchain) -> list[tuple[str, bool, str]]:
    checks = [("runtime", toolchain.runtime_path is not None, toolchain.describe())]
    if toolchain.fast:
        checks.append(("bundler", True, "bun build + tsgo"))
    else:
        executor = toolchain.executor_path
        checks.append(("bundler", True, "esbuild + tsc via npx (bun not found)"))
        checks.append(("npx", executor is not None, executor or "not found in PATH"))
    return checks


def _render_report(renderer: CLIRenderer, report: PackageReport) -> None:
    if report.outcome is PackageOutcome.PASSED:
        renderer.passed(report.package)
    else:
        renderer.skipped(report.package, f"no {report.script} script")


def _load_workspace(args: argparse.Namespace) -> Workspace:
    raw_root = _optional_str(getattr(args, "workspace_root", None)) or "."
    root = Path(raw_root).expanduser().resolve()
    if not root.is_dir():
        raise CLIError(f"workspace root is not a directory: {root}", exit_code=2)

    try:
        config = load_config(
            _optional_str(getattr(args, "config_path", None)),
            workspace_root=root,
            cli_overrides=_cli_overrides(args),
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc

    logging_config = config["logging"]
    setup_logging(str(logging_config["level"]), fmt=str(logging_config["format"]))
    return Workspace(root=root, config=config)


def _cli_overrides(args: argparse.Namespace) -> dict[str, dict[str, Any]]:
    logging_overrides: dict[str, Any] = {}
    level = _optional_str(getattr(args, "log_level", None))
    if level:
        logging_overrides["level"] = level
    fmt = _optional_str(getattr(args, "log_format", None))
    if fmt:
        logging_overrides["format"] = fmt
    return {"logging": logging_overrides} if logging_overrides else {}


def _detect_toolchain(workspace: Workspace) -> Toolchain:
    prefer = str(workspace.setting("toolchain", "prefer"))
    try:
        return detect_toolchain(prefer)
    except ToolchainUnavailableError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _load_catalog(workspace: Workspace) -> SuiteCatalog:
    configured = _optional_str(workspace.setting("tests", "catalog"))
    try:
        return load_catalog(workspace.path(configured) if configured else None)
    except CatalogError as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


__all__ = ["CLIError", "build_parser", "run_cli"]
