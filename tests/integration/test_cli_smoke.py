"""
workspace-orchestrator: CLI subprocess smoke contracts

Purpose
- Enforce CLI behavior for `python -m workspace_orchestrator` build/test/notices/config.
- Verify exit codes, stdout progress lines, and generated artifacts.
"""

from __future__ import annotations

import json
import os
import stat
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = PROJECT_ROOT / "src"

_FAKE_NPM = """#!/bin/sh
name="$(basename "$(pwd)")"
echo "$name $*" >> "$WSORCH_FAKE_LOG"
if [ "$name" = "c" ]; then
  echo "FAIL c/index.test.ts"
  echo "1 test failed" >&2
  exit 3
fi
echo "ok $name"
"""


def _run_cli(
    repo_root: Path, *args: str, extra_env: dict[str, str] | None = None
) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    existing_pythonpath = env.get("PYTHONPATH")
    src_pythonpath = str(SRC_PATH)
    env["PYTHONPATH"] = (
        src_pythonpath
        if not existing_pythonpath
        else f"{src_pythonpath}{os.pathsep}{existing_pythonpath}"
    )
    env.update(extra_env or {})
    return subprocess.run(
        [sys.executable, "-m", "workspace_orchestrator", *args],
        cwd=repo_root,
        text=True,
        capture_output=True,
        check=False,
        env=env,
    )


def _write(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def _write_json(path: Path, payload: object) -> None:
    _write(path, json.dumps(payload, indent=2))


def _seed_packages(repo_root: Path) -> None:
    _write_json(repo_root / "packages" / "a" / "package.json", {"scripts": {"test": "vitest"}})
    _write_json(repo_root / "packages" / "b" / "package.json", {"scripts": {"build": "tsc"}})
    _write_json(repo_root / "packages" / "c" / "package.json", {"scripts": {"test": "vitest"}})
    _write_json(repo_root / "packages" / "d" / "package.json", {"scripts": {"test": "vitest"}})


def _fake_npm(bin_dir: Path) -> None:
    npm = bin_dir / "npm"
    _write(npm, _FAKE_NPM)
    npm.chmod(npm.stat().st_mode | stat.S_IEXEC | stat.S_IXGRP | stat.S_IXOTH)


def test_config_prints_effective_config(tmp_path: Path) -> None:
    _write(tmp_path / "orchestrator.toml", '[tests]\nci_script = "test:coverage"\n')

    completed = _run_cli(tmp_path, "config")

    assert completed.returncode == 0, completed.stderr
    body = completed.stdout.split("\n", 1)[1]
    config = json.loads(body)
    assert config["tests"]["ci_script"] == "test:coverage"
    assert config["workspace"]["packages_dir"] == "packages"


def test_invalid_config_exits_2(tmp_path: Path) -> None:
    _write(tmp_path / "orchestrator.toml", "[unknown]\nkey = 1\n")

    completed = _run_cli(tmp_path, "config")

    assert completed.returncode == 2
    assert "unknown" in completed.stderr


def test_bogus_integration_mode_exits_2_without_running_anything(tmp_path: Path) -> None:
    _seed_packages(tmp_path)
    bin_dir = tmp_path / "bin"
    _fake_npm(bin_dir)
    log = tmp_path / "calls.log"

    completed = _run_cli(
        tmp_path,
        "test",
        "--integration=bogus",
        extra_env={
            "PATH": f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}",
            "WSORCH_TOOLCHAIN_PREFER": "node",
            "WSORCH_FAKE_LOG": str(log),
        },
    )

    assert completed.returncode == 2
    assert 'Invalid --integration value: "bogus"' in completed.stderr
    assert not log.exists()


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell stand-in for npm")
def test_package_tests_pass_skip_then_fail(tmp_path: Path) -> None:
    _seed_packages(tmp_path)
    bin_dir = tmp_path / "bin"
    _fake_npm(bin_dir)
    log = tmp_path / "calls.log"

    completed = _run_cli(
        tmp_path,
        "test",
        extra_env={
            "PATH": f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}",
            "WSORCH_TOOLCHAIN_PREFER": "node",
            "WSORCH_FAKE_LOG": str(log),
        },
    )

    assert completed.returncode == 3
    assert "Passed: a" in completed.stdout
    assert "Skipping: b" in completed.stdout
    assert "Passed: d" not in completed.stdout
    assert log.read_text(encoding="utf-8").splitlines() == ["a run test", "c run test"]
    assert "1 test failed" in completed.stderr
    assert "FAIL c/index.test.ts" in completed.stderr


def test_build_package_outside_packages_exits_1(tmp_path: Path) -> None:
    (tmp_path / "packages").mkdir()

    completed = _run_cli(
        tmp_path,
        "build",
        "--build-package",
        "--package-dir",
        str(tmp_path),
        extra_env={"WSORCH_TOOLCHAIN_PREFER": "node"},
    )

    assert completed.returncode == 1
    assert "[build-package]" in completed.stderr
    assert "Build complete!" not in completed.stdout


def test_notices_generates_report(tmp_path: Path) -> None:
    companion = tmp_path / "packages" / "vscode-ide-companion"
    _write_json(companion / "package.json", {"dependencies": {"left-pad": "^1.3.0", "ghost": "1"}})
    _write_json(
        tmp_path / "package-lock.json",
        {"packages": {"node_modules/left-pad": {"version": "1.3.0"}}},
    )
    _write_json(
        tmp_path / "node_modules" / "left-pad" / "package.json",
        {"repository": {"type": "git", "url": "https://github.com/left-pad/left-pad"}},
    )
    _write(tmp_path / "node_modules" / "left-pad" / "LICENSE", "WTFPL\n")

    completed = _run_cli(tmp_path, "notices")

    assert completed.returncode == 0, completed.stderr
    text = (companion / "NOTICES.txt").read_text(encoding="utf-8")
    assert text.startswith("This file contains third-party software notices and license terms.\n\n")
    assert "left-pad@1.3.0\n(https://github.com/left-pad/left-pad)\n\nWTFPL\n" in text
    assert "ghost" not in text
    assert "Could not find package info for ghost in the lockfile" in completed.stderr


def test_doctor_json_lists_checks(tmp_path: Path) -> None:
    (tmp_path / "packages").mkdir()

    completed = _run_cli(tmp_path, "doctor", "--json")

    payload = json.loads(completed.stdout)
    names = [check["name"] for check in payload["checks"]]
    assert names[:2] == ["config", "packages_dir"]
    assert "sandbox_build" in names
