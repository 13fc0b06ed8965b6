"""Command execution primitives shared by build stages and test dispatch."""

from workspace_orchestrator.execution.runner import (
    CommandFailedError,
    CommandResult,
    CommandRunner,
    CommandSpec,
    LocalCommandRunner,
    argv_of,
    command,
)

__all__ = [
    "CommandFailedError",
    "CommandResult",
    "CommandRunner",
    "CommandSpec",
    "LocalCommandRunner",
    "argv_of",
    "command",
]
