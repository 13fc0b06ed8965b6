"""
Lockfile dependency graph and transitive walker.

Purpose
- Read-only view over a ``package-lock.json`` ``packages`` table keyed by
  ``"node_modules/<name>"``.
- Depth-first collection of every package reachable from a set of root names.

Functional requirements
- A name is visited at most once; the first version recorded wins.
- A name missing from the lockfile is warned about once and skipped.
- Edge version strings are never consulted; the locked record's ``version`` is used.
- Iterative traversal; first-visit order equals recursive pre-order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final

from workspace_orchestrator.utils.fs import read_json_object

logger = logging.getLogger(__name__)

NODE_MODULES_PREFIX: Final[str] = "node_modules/"


class LockfileError(ValueError):
    """Raised when a lockfile cannot be read or has no ``packages`` table."""


@dataclass(frozen=True, slots=True)
class LockfileGraph:
    """Immutable mapping of ``node_modules/<name>`` keys to package records."""

    packages: Mapping[str, Mapping[str, Any]]

    def __post_init__(self) -> None:
        object.__setattr__(self, "packages", MappingProxyType(dict(self.packages)))

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> LockfileGraph:
        packages = payload.get("packages")
        if not isinstance(packages, Mapping):
            raise LockfileError("lockfile has no 'packages' table")
        return cls(
            packages={
                str(key): value for key, value in packages.items() if isinstance(value, Mapping)
            }
        )

    @classmethod
    def load(cls, path: str | Path) -> LockfileGraph:
        try:
            payload = read_json_object(path)
        except ValueError as exc:
            raise LockfileError(str(exc)) from exc
        return cls.from_payload(payload)

    def record(self, name: str) -> Mapping[str, Any] | None:
        return self.packages.get(f"{NODE_MODULES_PREFIX}{name}")

    def edges(self, name: str) -> tuple[str, ...]:
        record = self.record(name)
        if record is None:
            return ()
        dependencies = record.get("dependencies")
        if not isinstance(dependencies, Mapping):
            return ()
        return tuple(str(dep) for dep in dependencies)


@dataclass(slots=True)
class CollectResult:
    """Visited set (name -> version, insertion ordered) plus names absent from the lockfile."""

    visited: dict[str, str] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)

    def __contains__(self, name: object) -> bool:
        return name in self.visited

    def __len__(self) -> int:
        return len(self.visited)

    def items(self) -> list[tuple[str, str]]:
        return list(self.visited.items())


def collect(root_names: Iterable[str], graph: LockfileGraph) -> CollectResult:
    """Collect every package reachable from ``root_names`` through lockfile edges."""

    result = CollectResult()
    missing_seen: set[str] = set()
    stack: list[str] = list(reversed(list(root_names)))

    while stack:
        name = stack.pop()
        if name in result.visited or name in missing_seen:
            continue

        record = graph.record(name)
        if record is None:
            missing_seen.add(name)
            result.missing.append(name)
            logger.warning("Could not find package info for %s in the lockfile", name)
            continue

        result.visited[name] = str(record.get("version", ""))
        for dependency in reversed(graph.edges(name)):
            if dependency not in result.visited:
                stack.append(dependency)

    return result


__all__ = [
    "NODE_MODULES_PREFIX",
    "CollectResult",
    "LockfileError",
    "LockfileGraph",
    "collect",
]
