"""Module entrypoint for ``python -m workspace_orchestrator``."""

from __future__ import annotations

from workspace_orchestrator.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
