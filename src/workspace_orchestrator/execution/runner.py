"""
Command execution contract for build and test stages.

Purpose
- Portable ``CommandSpec`` / ``CommandResult`` envelopes shared by every stage.
- ``LocalCommandRunner``: async subprocess execution that captures stdout/stderr
  while forwarding both streams live to the orchestrator's own streams.

Functional requirements
- One invocation is one attempt; the runner never retries.
- The runner never interprets exit codes. Callers decide via ``CommandResult.check``.
- A binary that cannot be spawned yields ``exit_code=None`` plus ``error`` rather
  than raising, so probes can treat it as "tool unavailable".
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import shlex
import sys
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol, TextIO, runtime_checkable

logger = logging.getLogger(__name__)

_READ_CHUNK_BYTES = 4096


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """One command invocation with an explicit working directory."""

    argv: tuple[str, ...]
    cwd: str | None = None
    env: Mapping[str, str] = field(default_factory=dict)
    echo: bool = True

    def __post_init__(self) -> None:
        argv = tuple(str(item) for item in self.argv)
        if not argv or not argv[0].strip():
            raise ValueError("CommandSpec.argv must contain a non-empty program name")
        object.__setattr__(self, "argv", argv)
        object.__setattr__(self, "env", dict(self.env))
        if self.cwd is not None:
            object.__setattr__(self, "cwd", os.fspath(self.cwd))

    def build_env(self) -> dict[str, str]:
        env = dict(os.environ)
        env.update(self.env)
        return env

    def display(self) -> str:
        """Shell-quoted rendering used in logs and failure messages."""

        prefix = " ".join(f"{key}={shlex.quote(value)}" for key, value in sorted(self.env.items()))
        command = shlex.join(self.argv)
        return f"{prefix} {command}" if prefix else command


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Immutable outcome of one command invocation."""

    argv: tuple[str, ...]
    exit_code: int | None
    stdout: str
    stderr: str
    duration_ms: int = 0
    cwd: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code == 0

    @property
    def combined_output(self) -> str:
        """stderr followed by stdout, the order failures are reported in."""

        return f"{self.stderr}\n{self.stdout}"

    def check(self, label: str | None = None) -> CommandResult:
        """Return ``self`` on success, otherwise raise ``CommandFailedError``."""

        if not self.ok:
            raise CommandFailedError(self, label=label)
        return self


class CommandFailedError(RuntimeError):
    """Structured failure carrying the command's exit code and captured output."""

    def __init__(self, result: CommandResult, *, label: str | None = None) -> None:
        self.result = result
        self.label = label
        super().__init__(self._summary())

    @property
    def exit_code(self) -> int:
        code = self.result.exit_code
        return code if isinstance(code, int) and code > 0 else 1

    @property
    def stdout(self) -> str:
        return self.result.stdout

    @property
    def stderr(self) -> str:
        return self.result.stderr

    def _summary(self) -> str:
        command = shlex.join(self.result.argv)
        if self.result.error is not None:
            reason = self.result.error
        else:
            reason = f"exit code {self.result.exit_code}"
        head = f"{self.label}: " if self.label else ""
        return f'{head}command "{command}" failed ({reason})'

    def describe(self) -> str:
        """Full failure report: summary, then captured stderr and stdout."""

        parts = [str(self)]
        if self.result.stderr.strip():
            parts.append(self.result.stderr.rstrip())
        if self.result.stdout.strip():
            parts.append(self.result.stdout.rstrip())
        return "\n\n".join(parts)


@runtime_checkable
class CommandRunner(Protocol):
    """Pluggable async command execution interface."""

    async def run(self, spec: CommandSpec) -> CommandResult: ...


class LocalCommandRunner(CommandRunner):
    """Run commands as local subprocesses, teeing output to the parent streams."""

    def __init__(
        self,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self._stdout = stdout
        self._stderr = stderr

    async def run(self, spec: CommandSpec) -> CommandResult:
        started_ns = time.monotonic_ns()
        logger.debug("running command", extra={"command": spec.display(), "cwd": spec.cwd})

        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv,
                cwd=spec.cwd,
                env=spec.build_env(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return CommandResult(
                argv=spec.argv,
                exit_code=None,
                stdout="",
                stderr="",
                duration_ms=_elapsed_ms(started_ns),
                cwd=spec.cwd,
                error=str(exc),
            )

        assert process.stdout is not None
        assert process.stderr is not None
        stdout_sink = (self._stdout or sys.stdout) if spec.echo else None
        stderr_sink = (self._stderr or sys.stderr) if spec.echo else None

        stdout_text, stderr_text = await asyncio.gather(
            _pump(process.stdout, stdout_sink),
            _pump(process.stderr, stderr_sink),
        )
        exit_code = await process.wait()

        return CommandResult(
            argv=spec.argv,
            exit_code=exit_code,
            stdout=stdout_text,
            stderr=stderr_text,
            duration_ms=_elapsed_ms(started_ns),
            cwd=spec.cwd,
        )


async def _pump(stream: asyncio.StreamReader, sink: TextIO | None) -> str:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    parts: list[str] = []
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        final = not chunk
        text = decoder.decode(chunk, final=final)
        if text:
            parts.append(text)
            if sink is not None:
                sink.write(text)
                sink.flush()
        if final:
            break
    return "".join(parts)


def _elapsed_ms(started_ns: int) -> int:
    return max(0, (time.monotonic_ns() - started_ns) // 1_000_000)


def command(
    *argv: str,
    cwd: str | os.PathLike[str] | None = None,
    env: Mapping[str, str] | None = None,
    echo: bool = True,
) -> CommandSpec:
    """Shorthand constructor used by stages."""

    return CommandSpec(
        argv=tuple(argv),
        cwd=os.fspath(cwd) if cwd is not None else None,
        env=dict(env or {}),
        echo=echo,
    )


def argv_of(values: Sequence[object]) -> tuple[str, ...]:
    """Coerce a loosely typed argv (from YAML/TOML) into a tuple of strings."""

    return tuple(str(item) for item in values)


__all__ = [
    "CommandFailedError",
    "CommandResult",
    "CommandRunner",
    "CommandSpec",
    "LocalCommandRunner",
    "argv_of",
    "command",
]
