"""
Bundler strategies.

Purpose
- One ``Bundler`` interface with two implementations selected once from the
  detected ``Toolchain``:
  - ``FastBundler``: ``bun build`` for bundling and ``tsgo`` (via ``bunx``) for type checks.
  - ``GenericBundler``: ``esbuild`` for bundling and ``tsc`` for type checks, both via ``npx``.
- Both produce the same ``dist`` layout; the bundler internals are a black box.

Functional requirements
- ``bundle`` never raises on a failed build; it reports ``BundleResult.success``.
- Alias rewrites are handed to the bundler through its own configuration surface.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from workspace_orchestrator.execution.runner import (
    CommandFailedError,
    CommandResult,
    CommandRunner,
    command,
)
from workspace_orchestrator.toolchain.detection import Toolchain

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BundleRequest:
    """Options for one bundler invocation."""

    entry_points: tuple[str, ...]
    cwd: Path
    outfile: Path | None = None
    outdir: Path | None = None
    target: str = "bun"
    minify: bool = False
    sourcemap: bool = False
    tsconfig: Path | None = None
    aliases: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.entry_points:
            raise ValueError("BundleRequest.entry_points must not be empty")
        if (self.outfile is None) == (self.outdir is None):
            raise ValueError("exactly one of BundleRequest.outfile / outdir is required")


@dataclass(frozen=True, slots=True)
class BundleResult:
    """Black-box bundler outcome: success flag, produced files, diagnostics."""

    success: bool
    outputs: tuple[Path, ...] = ()
    logs: tuple[str, ...] = ()
    command_result: CommandResult | None = None


class BundleError(RuntimeError):
    """Raised by callers that require a successful bundle."""

    def __init__(self, result: BundleResult, *, label: str) -> None:
        self.result = result
        self.label = label
        details = "\n".join(result.logs) if result.logs else "no diagnostics reported"
        super().__init__(f"{label}: bundler failed\n{details}")


@runtime_checkable
class Bundler(Protocol):
    """Capability-selected bundler + type checker."""

    name: str

    async def typecheck(self, project_dir: Path, tsconfig: Path) -> CommandResult: ...

    async def bundle(self, request: BundleRequest) -> BundleResult: ...


class FastBundler:
    """``bun build`` + ``tsgo`` strategy used when bun is available."""

    name = "bun"

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    async def typecheck(self, project_dir: Path, tsconfig: Path) -> CommandResult:
        spec = command("bunx", "--bun", "tsgo", "-p", str(tsconfig), "--noEmit", cwd=project_dir)
        return await self._runner.run(spec)

    async def bundle(self, request: BundleRequest) -> BundleResult:
        argv: list[str] = ["bun", "build", *request.entry_points, f"--target={request.target}"]
        if request.outfile is not None:
            argv.append(f"--outfile={request.outfile}")
        else:
            argv.append(f"--outdir={request.outdir}")
        argv.append("--sourcemap=external" if request.sourcemap else "--sourcemap=none")
        if request.minify:
            argv.append("--minify")

        with _alias_tsconfig(request.tsconfig, request.aliases, request.cwd) as override:
            if override is not None:
                argv.append(f"--tsconfig-override={override}")
            result = await self._runner.run(command(*argv, cwd=request.cwd))
        return _bundle_result(request, result)


class GenericBundler:
    """``esbuild`` + ``tsc`` strategy run through ``npx``."""

    name = "esbuild"

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    async def typecheck(self, project_dir: Path, tsconfig: Path) -> CommandResult:
        spec = command("npx", "--yes", "tsc", "-p", str(tsconfig), "--noEmit", cwd=project_dir)
        return await self._runner.run(spec)

    async def bundle(self, request: BundleRequest) -> BundleResult:
        platform = "node" if request.target in {"bun", "node"} else request.target
        argv: list[str] = [
            "npx",
            "--yes",
            "esbuild",
            *request.entry_points,
            "--bundle",
            f"--platform={platform}",
            "--format=esm",
        ]
        if request.outfile is not None:
            argv.append(f"--outfile={request.outfile}")
        else:
            argv.append(f"--outdir={request.outdir}")
        if request.sourcemap:
            argv.append("--sourcemap")
        if request.minify:
            argv.append("--minify")
        if request.tsconfig is not None:
            argv.append(f"--tsconfig={request.tsconfig}")
        for specifier, target in sorted(request.aliases.items()):
            argv.append(f"--alias:{specifier}={target}")

        result = await self._runner.run(command(*argv, cwd=request.cwd))
        return _bundle_result(request, result)


def select_bundler(toolchain: Toolchain, runner: CommandRunner) -> Bundler:
    """Pick the bundler strategy for ``toolchain``; called once per process."""

    bundler: Bundler = FastBundler(runner) if toolchain.fast else GenericBundler(runner)
    logger.debug("selected bundler", extra={"bundler": bundler.name})
    return bundler


def require_typecheck(result: CommandResult, *, label: str) -> None:
    """Raise ``CommandFailedError`` when a type-check pass failed."""

    if not result.ok:
        raise CommandFailedError(result, label=label)


def _bundle_result(request: BundleRequest, result: CommandResult) -> BundleResult:
    logs = tuple(line for line in result.combined_output.splitlines() if line.strip())
    if result.error is not None:
        logs = (result.error, *logs)
    if not result.ok:
        return BundleResult(success=False, logs=logs, command_result=result)
    return BundleResult(
        success=True,
        outputs=_collect_outputs(request),
        logs=logs,
        command_result=result,
    )


def _collect_outputs(request: BundleRequest) -> tuple[Path, ...]:
    if request.outfile is not None:
        outfile = _absolute(request.outfile, request.cwd)
        return (outfile,) if outfile.is_file() else ()
    assert request.outdir is not None
    outdir = _absolute(request.outdir, request.cwd)
    if not outdir.is_dir():
        return ()
    return tuple(sorted(path for path in outdir.rglob("*") if path.is_file()))


def _absolute(path: Path, cwd: Path) -> Path:
    return path if path.is_absolute() else cwd / path


@contextmanager
def _alias_tsconfig(
    base: Path | None,
    aliases: Mapping[str, str],
    cwd: Path,
) -> Iterator[Path | None]:
    """Write a throwaway tsconfig extending ``base`` with ``paths`` for each alias."""

    if not aliases:
        yield base
        return

    payload: dict[str, object] = {
        "compilerOptions": {
            "baseUrl": str(cwd),
            "paths": {specifier: [target] for specifier, target in sorted(aliases.items())},
        }
    }
    if base is not None:
        payload["extends"] = str(_absolute(base, cwd))

    fd, temp_name = tempfile.mkstemp(prefix="tsconfig.aliases.", suffix=".json")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
        yield temp_path
    finally:
        temp_path.unlink(missing_ok=True)


__all__ = [
    "BundleError",
    "BundleRequest",
    "BundleResult",
    "Bundler",
    "FastBundler",
    "GenericBundler",
    "require_typecheck",
    "select_bundler",
]
