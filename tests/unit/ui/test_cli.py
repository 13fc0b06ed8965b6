"""
workspace-orchestrator: unit tests for the test command routing

Purpose
- Validate that branch priority decides which preconditions are checked before
  any command runs.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from workspace_orchestrator.ui import cli


@pytest.fixture
def cli_runner(monkeypatch: pytest.MonkeyPatch, recording_runner, bun_toolchain):
    runner = recording_runner()
    monkeypatch.setattr(cli, "LocalCommandRunner", lambda: runner)
    monkeypatch.setattr(cli, "detect_toolchain", lambda prefer: bun_toolchain)
    return runner


def _run_test(root: Path, *flags: str) -> int:
    return cli.run_cli(["test", "--workspace-root", str(root), *flags])


def test_scripts_branch_wins_over_bogus_integration(tmp_path: Path, cli_runner) -> None:
    (tmp_path / "packages").mkdir()

    assert _run_test(tmp_path, "--scripts", "--integration=bogus") == 0

    [spec] = cli_runner.calls
    assert spec.argv[:3] == ("bunx", "--bun", "vitest")
    assert spec.cwd == str(tmp_path.resolve())


def test_e2e_branch_wins_over_bogus_integration(tmp_path: Path, cli_runner) -> None:
    assert _run_test(tmp_path, "--e2e", "--integration=bogus") == 0
    assert cli_runner.argvs == [("bun", "run", "test:integration:sandbox:none")]


def test_bogus_integration_alone_exits_2(
    tmp_path: Path, cli_runner, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run_test(tmp_path, "--integration=bogus") == 2
    assert cli_runner.calls == []
    assert 'Invalid --integration value: "bogus"' in capsys.readouterr().err


def test_root_branches_do_not_need_packages_dir(tmp_path: Path, cli_runner) -> None:
    assert not (tmp_path / "packages").exists()
    assert _run_test(tmp_path, "--integration=sandbox:none") == 0
    assert len(cli_runner.calls) == 1


def test_package_dispatch_requires_packages_dir(
    tmp_path: Path, cli_runner, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run_test(tmp_path) == 1
    assert cli_runner.calls == []
    assert "packages directory not found" in capsys.readouterr().err
