"""Toolchain capability detection, alias policy, and bundler strategies."""

from workspace_orchestrator.toolchain.aliases import AliasPolicy
from workspace_orchestrator.toolchain.bundlers import (
    BundleError,
    BundleRequest,
    BundleResult,
    Bundler,
    FastBundler,
    GenericBundler,
    require_typecheck,
    select_bundler,
)
from workspace_orchestrator.toolchain.detection import (
    Toolchain,
    ToolchainUnavailableError,
    detect_toolchain,
)

__all__ = [
    "AliasPolicy",
    "BundleError",
    "BundleRequest",
    "BundleResult",
    "Bundler",
    "FastBundler",
    "GenericBundler",
    "Toolchain",
    "ToolchainUnavailableError",
    "detect_toolchain",
    "require_typecheck",
    "select_bundler",
]
