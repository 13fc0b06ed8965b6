"""Monorepo alias policy: workspace package specifiers -> built output files."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from workspace_orchestrator.config.workspace import Workspace

BUILT_ENTRY = Path("dist") / "index.js"


@dataclass(frozen=True, slots=True)
class AliasPolicy:
    """Pure rewrite rule applied to import specifiers during bundling.

    A specifier matches only when it is exactly ``<scope>/<name>`` for a configured
    scope and package name; subpath imports are left alone.
    """

    root: Path
    scopes: tuple[str, ...] = ()
    packages: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_workspace(cls, workspace: Workspace) -> AliasPolicy:
        aliases = workspace.config["aliases"]
        return cls(
            root=workspace.root,
            scopes=tuple(aliases["scopes"]),
            packages=dict(aliases["packages"]),
        )

    def rewrite(self, specifier: str) -> str | None:
        scope, sep, name = specifier.partition("/")
        if not sep or scope not in self.scopes:
            return None
        package_dir = self.packages.get(name)
        if package_dir is None:
            return None
        return str(self.root / package_dir / BUILT_ENTRY)

    def mapping(self) -> dict[str, str]:
        """Every aliased specifier with its target, in deterministic order."""

        resolved: dict[str, str] = {}
        for scope in self.scopes:
            for name in sorted(self.packages):
                specifier = f"{scope}/{name}"
                target = self.rewrite(specifier)
                if target is not None:
                    resolved[specifier] = target
        return resolved


__all__ = ["BUILT_ENTRY", "AliasPolicy"]
