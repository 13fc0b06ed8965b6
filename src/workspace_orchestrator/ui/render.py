"""Output rendering for the workspace-orchestrator CLI.

Purpose
- Provide a thin plain-text layer for user-facing progress lines on stdout.
- Keep diagnostics (warnings, skip reasons) on the logging channel instead.

Functional requirements
- Plain-text rendering only; deterministic output that scripts can grep.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence


class CLIRenderer:
    """Thin CLI output renderer writing to ``stream`` (default: stdout)."""

    def __init__(self, *, stream: TextIO | None = None) -> None:
        self._stream = stream

    def _print(self, line: str = "") -> None:
        print(line, file=self._stream if self._stream is not None else sys.stdout, flush=True)

    def heading(self, text: str) -> None:
        self._print(text)

    def kv(self, key: str, value: object) -> None:
        self._print(f"{key}: {value}")

    def text(self, line: str) -> None:
        self._print(line)

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        self._print(f"\n{title}")

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self._print(f"  {prefix}{entry}")

    def passed(self, label: str) -> None:
        self._print(f"Passed: {label}")

    def skipped(self, label: str, reason: str | None = None) -> None:
        suffix = f" ({reason})" if reason else ""
        self._print(f"Skipping: {label}{suffix}")

    def ok(self, label: str) -> None:
        """Print a passing diagnostic check."""

        self._print(f"  OK  {label}")

    def fail(self, label: str) -> None:
        """Print a failing diagnostic check."""

        self._print(f"  FAIL  {label}")


def create_renderer(*, stream: TextIO | None = None) -> CLIRenderer:
    return CLIRenderer(stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
