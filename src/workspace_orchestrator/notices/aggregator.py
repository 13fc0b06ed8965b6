"""
Third-party notices generation.

Purpose
- Drive the lockfile walker and the license resolver for one package and render
  a single plain-text notices report.

Functional requirements
- Entries are rendered in first-visit order, never in resolution completion order.
- Resolutions run concurrently; each one only reads shared, immutable data.
- The output file is replaced atomically on every run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Final, Protocol

from workspace_orchestrator.notices.lockfile import (
    CollectResult,
    LockfileError,
    LockfileGraph,
    collect,
)
from workspace_orchestrator.notices.resolver import DependencyNode, LicenseResolver
from workspace_orchestrator.utils.fs import ManifestReadError, atomic_write, read_json_object

logger = logging.getLogger(__name__)

NOTICE_HEADER: Final[str] = "This file contains third-party software notices and license terms.\n\n"
ENTRY_SEPARATOR: Final[str] = "=" * 60


class NoticesError(RuntimeError):
    """Raised when the target manifest or the lockfile cannot be used."""


class DependencyResolver(Protocol):
    def resolve(self, name: str, version: str) -> DependencyNode: ...


def direct_dependencies(manifest: Mapping[str, Any]) -> list[str]:
    """Declared ``dependencies`` names of a package manifest, in file order."""

    dependencies = manifest.get("dependencies")
    if not isinstance(dependencies, Mapping):
        return []
    return [str(name) for name in dependencies]


def render_notices(nodes: Iterable[DependencyNode]) -> str:
    parts = [NOTICE_HEADER]
    for node in nodes:
        parts.append(f"{ENTRY_SEPARATOR}\n")
        parts.append(f"{node.name}@{node.version}\n")
        parts.append(f"({node.repository_display})\n\n")
        parts.append(f"{node.license_text}\n\n")
    return "".join(parts)


class NoticeAggregator:
    """Generate the notices report for one workspace package."""

    def __init__(
        self,
        project_root: Path,
        *,
        resolver: DependencyResolver | None = None,
    ) -> None:
        self._project_root = Path(project_root)
        self._resolver = resolver

    async def generate(self, manifest_path: str | Path, lockfile_path: str | Path) -> str:
        nodes = await self.resolve_all(manifest_path, lockfile_path)
        return render_notices(nodes)

    async def resolve_all(
        self,
        manifest_path: str | Path,
        lockfile_path: str | Path,
    ) -> list[DependencyNode]:
        manifest_file = Path(manifest_path)
        try:
            manifest = await asyncio.to_thread(read_json_object, manifest_file)
            graph = await asyncio.to_thread(LockfileGraph.load, lockfile_path)
        except (ManifestReadError, LockfileError) as exc:
            raise NoticesError(str(exc)) from exc

        walk: CollectResult = collect(direct_dependencies(manifest), graph)
        logger.info(
            "collected %d dependencies (%d missing from lockfile)",
            len(walk),
            len(walk.missing),
        )

        resolver = self._resolver or LicenseResolver(self._project_root, manifest_file.parent)
        return list(
            await asyncio.gather(
                *(
                    asyncio.to_thread(resolver.resolve, name, version)
                    for name, version in walk.items()
                )
            )
        )


def write_notices(text: str, output_path: str | Path) -> Path:
    """Fully overwrite ``output_path`` with ``text``."""

    target = Path(output_path)
    atomic_write(target, text)
    return target


__all__ = [
    "ENTRY_SEPARATOR",
    "NOTICE_HEADER",
    "DependencyResolver",
    "NoticeAggregator",
    "NoticesError",
    "direct_dependencies",
    "render_notices",
    "write_notices",
]
