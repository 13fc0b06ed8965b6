"""Unit tests for JavaScript toolchain detection.

Tests verify offline runtime detection using a mocked ``shutil.which``.
No real binaries are required.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from workspace_orchestrator.toolchain.detection import (
    Toolchain,
    ToolchainUnavailableError,
    detect_toolchain,
)

_ALL_TOOLS = {"bun": "/opt/bun/bin/bun", "node": "/usr/bin/node", "npx": "/usr/bin/npx"}
_NODE_ONLY = {"node": "/usr/bin/node", "npx": "/usr/bin/npx"}


class TestDetectToolchain:
    """Tests for detect_toolchain()."""

    def test_auto_prefers_bun_when_present(self) -> None:
        with patch("shutil.which", side_effect=_ALL_TOOLS.get):
            toolchain = detect_toolchain()
        assert toolchain.fast
        assert toolchain.runtime == "bun"
        assert toolchain.runtime_path == "/opt/bun/bin/bun"

    def test_auto_falls_back_to_node(self) -> None:
        with patch("shutil.which", side_effect=_NODE_ONLY.get):
            toolchain = detect_toolchain("auto")
        assert not toolchain.fast
        assert toolchain.runtime == "node"
        assert toolchain.executor_path == "/usr/bin/npx"

    def test_node_preference_ignores_bun(self) -> None:
        with patch("shutil.which", side_effect=_ALL_TOOLS.get):
            toolchain = detect_toolchain("node")
        assert toolchain.runtime == "node"

    def test_bun_preference_without_bun_raises(self) -> None:
        with (
            patch("shutil.which", side_effect=_NODE_ONLY.get),
            pytest.raises(ToolchainUnavailableError),
        ):
            detect_toolchain("bun")

    def test_unknown_preference_raises(self) -> None:
        with pytest.raises(ValueError, match="unknown toolchain preference"):
            detect_toolchain("deno", which=lambda _name: None)

    def test_injected_lookup_is_used(self) -> None:
        toolchain = detect_toolchain(which=lambda name: f"/fake/{name}")
        assert toolchain.runtime_path == "/fake/bun"


class TestToolchainCommands:
    """Tests for argv prefixes derived from a detected toolchain."""

    def test_fast_prefixes(self) -> None:
        toolchain = Toolchain(runtime="bun", runtime_path="/bun", fast=True)
        assert toolchain.run_script_argv("test") == ("bun", "run", "test")
        assert toolchain.exec_prefix() == ("bunx", "--bun")
        assert toolchain.script_argv("scripts/copy_files.js") == ("bun", "scripts/copy_files.js")

    def test_generic_prefixes(self) -> None:
        toolchain = Toolchain(runtime="node", runtime_path=None, fast=False)
        assert toolchain.run_script_argv("test:ci") == ("npm", "run", "test:ci")
        assert toolchain.exec_prefix() == ("npx", "--yes")
        assert toolchain.script_argv("a.js", "-q") == ("node", "a.js", "-q")
        assert "not found" in toolchain.describe()
