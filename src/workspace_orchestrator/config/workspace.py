"""Workspace layout: effective config bound to a concrete workspace root."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class Workspace:
    """Resolve configured relative paths against one workspace root."""

    root: Path
    config: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root).resolve())

    def path(self, relative: str | Path) -> Path:
        candidate = Path(relative)
        return candidate if candidate.is_absolute() else self.root / candidate

    def setting(self, section: str, key: str) -> Any:
        return self.config[section][key]

    def setting_path(self, section: str, key: str) -> Path:
        return self.path(str(self.setting(section, key)))

    @property
    def packages_dir(self) -> Path:
        return self.setting_path("workspace", "packages_dir")


__all__ = ["Workspace"]
