"""Unit tests for the monorepo alias policy."""

from __future__ import annotations

from pathlib import Path

from workspace_orchestrator.config import Workspace
from workspace_orchestrator.toolchain.aliases import AliasPolicy


def _policy(root: Path) -> AliasPolicy:
    return AliasPolicy(
        root=root,
        scopes=("@google", "@hlmpn"),
        packages={"gemini-cli-core": "packages/core", "gemini-cli-a2a-server": "packages/a2a-server"},
    )


def test_exact_scoped_specifier_is_rewritten(tmp_path: Path) -> None:
    policy = _policy(tmp_path)

    assert policy.rewrite("@google/gemini-cli-core") == str(
        tmp_path / "packages" / "core" / "dist" / "index.js"
    )
    assert policy.rewrite("@hlmpn/gemini-cli-a2a-server") == str(
        tmp_path / "packages" / "a2a-server" / "dist" / "index.js"
    )


def test_non_matching_specifiers_are_left_alone(tmp_path: Path) -> None:
    policy = _policy(tmp_path)

    assert policy.rewrite("@google/gemini-cli-core/sub") is None
    assert policy.rewrite("@other/gemini-cli-core") is None
    assert policy.rewrite("gemini-cli-core") is None
    assert policy.rewrite("@google/genai") is None


def test_mapping_enumerates_every_scope_and_package(tmp_path: Path) -> None:
    mapping = _policy(tmp_path).mapping()
    assert list(mapping) == [
        "@google/gemini-cli-a2a-server",
        "@google/gemini-cli-core",
        "@hlmpn/gemini-cli-a2a-server",
        "@hlmpn/gemini-cli-core",
    ]


def test_from_workspace_uses_config(workspace: Workspace) -> None:
    policy = AliasPolicy.from_workspace(workspace)
    assert policy.root == workspace.root
    assert policy.rewrite("@google/gemini-cli-core") == str(
        workspace.root / "packages" / "core" / "dist" / "index.js"
    )
