"""JavaScript toolchain detection.

Purpose
- Decide once, at startup, whether the fast runtime (``bun``) is usable or whether
  the generic ``node`` + ``npx`` chain has to be used.
- Expose the decision as an immutable ``Toolchain`` value injected into stages.

Detection is offline; it only consults ``PATH``.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

FAST_RUNTIME: Final[str] = "bun"
GENERIC_RUNTIME: Final[str] = "node"
GENERIC_PACKAGE_MANAGER: Final[str] = "npm"
GENERIC_EXECUTOR: Final[str] = "npx"

Which = Callable[[str], "str | None"]


class ToolchainUnavailableError(RuntimeError):
    """Raised when the requested runtime cannot be found on PATH."""


@dataclass(frozen=True, slots=True)
class Toolchain:
    """Runtime capabilities detected for this process."""

    runtime: str
    runtime_path: str | None
    fast: bool
    executor_path: str | None = None

    def script_argv(self, script: str, *args: str) -> tuple[str, ...]:
        """Argv running a workspace helper script with the selected runtime."""

        return (self.runtime, script, *args)

    def run_prefix(self) -> tuple[str, ...]:
        if self.fast:
            return (FAST_RUNTIME, "run")
        return (GENERIC_PACKAGE_MANAGER, "run")

    def exec_prefix(self) -> tuple[str, ...]:
        if self.fast:
            return ("bunx", "--bun")
        return (GENERIC_EXECUTOR, "--yes")

    def run_script_argv(self, script_name: str) -> tuple[str, ...]:
        """Argv running a package.json script in the current package."""

        return (*self.run_prefix(), script_name)

    def describe(self) -> str:
        mode = "fast" if self.fast else "generic"
        location = self.runtime_path or "not found"
        return f"{self.runtime} ({mode}) at {location}"


def detect_toolchain(prefer: str = "auto", *, which: Which | None = None) -> Toolchain:
    """Detect the toolchain, honouring an explicit ``bun``/``node`` preference."""

    lookup = which if which is not None else shutil.which
    bun_path = lookup(FAST_RUNTIME)

    if prefer == "bun":
        if bun_path is None:
            raise ToolchainUnavailableError("toolchain 'bun' requested but bun is not on PATH")
        return Toolchain(runtime=FAST_RUNTIME, runtime_path=bun_path, fast=True)

    if prefer == "auto" and bun_path is not None:
        return Toolchain(runtime=FAST_RUNTIME, runtime_path=bun_path, fast=True)

    if prefer not in {"auto", "node"}:
        raise ValueError(f"unknown toolchain preference: {prefer!r}")

    return Toolchain(
        runtime=GENERIC_RUNTIME,
        runtime_path=lookup(GENERIC_RUNTIME),
        fast=False,
        executor_path=lookup(GENERIC_EXECUTOR),
    )


__all__ = [
    "FAST_RUNTIME",
    "GENERIC_RUNTIME",
    "Toolchain",
    "ToolchainUnavailableError",
    "detect_toolchain",
]
