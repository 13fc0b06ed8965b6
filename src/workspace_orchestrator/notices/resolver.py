"""
License resolution for one installed dependency.

Purpose
- Locate a dependency's ``package.json`` (root-hoisted install first, then the
  package-local install), normalize its repository URL, and read its license text.

Functional requirements
- ``resolve`` never raises for a missing or broken package; it degrades to the
  ``NO_REPOSITORY`` / ``LICENSE_NOT_FOUND`` sentinels and logs a warning.
- License candidates are tried in a fixed order and the first existing file wins.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from workspace_orchestrator.utils.fs import ManifestReadError, read_json_object

logger = logging.getLogger(__name__)

NO_REPOSITORY: Final[str] = "No repository found"
LICENSE_NOT_FOUND: Final[str] = "License text not found."
FALLBACK_LICENSE_FILES: Final[tuple[str, ...]] = (
    "LICENSE",
    "LICENSE.md",
    "LICENSE.txt",
    "LICENSE-MIT.txt",
)
MANIFEST_NAME: Final[str] = "package.json"


@dataclass(frozen=True, slots=True)
class DependencyNode:
    """One resolved dependency as it appears in the notices report."""

    name: str
    version: str
    repository_url: str | None
    license_text: str

    @property
    def repository_display(self) -> str:
        return self.repository_url if self.repository_url is not None else NO_REPOSITORY


def normalize_repository(value: object) -> str | None:
    """Reduce a manifest ``repository`` field (string or ``{url}``) to a URL string."""

    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, Mapping):
        url = value.get("url")
        if isinstance(url, str) and url.strip():
            return url.strip()
    return None


def license_candidates(manifest: Mapping[str, Any]) -> tuple[str, ...]:
    """Manifest-declared ``licenseFile`` first, then the conventional names."""

    declared = manifest.get("licenseFile")
    if isinstance(declared, str) and declared.strip():
        return (declared.strip(), *FALLBACK_LICENSE_FILES)
    return FALLBACK_LICENSE_FILES


class LicenseResolver:
    """Resolve repository and license text for dependencies of one package."""

    def __init__(self, project_root: Path, package_dir: Path) -> None:
        self._search_roots = (Path(project_root), Path(package_dir))

    def manifest_path(self, name: str) -> Path | None:
        for root in self._search_roots:
            candidate = root / "node_modules" / name / MANIFEST_NAME
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, name: str, version: str) -> DependencyNode:
        manifest_path = self.manifest_path(name)
        if manifest_path is None:
            logger.warning("Could not find package.json for %s", name)
            return DependencyNode(name, version, None, LICENSE_NOT_FOUND)

        try:
            manifest = read_json_object(manifest_path)
        except ManifestReadError as exc:
            logger.warning("Could not read package.json for %s: %s", name, exc)
            return DependencyNode(name, version, None, LICENSE_NOT_FOUND)

        return DependencyNode(
            name=name,
            version=version,
            repository_url=normalize_repository(manifest.get("repository")),
            license_text=self._license_text(name, manifest_path.parent, manifest),
        )

    def _license_text(self, name: str, package_dir: Path, manifest: Mapping[str, Any]) -> str:
        license_file = next(
            (
                package_dir / candidate
                for candidate in license_candidates(manifest)
                if (package_dir / candidate).is_file()
            ),
            None,
        )
        if license_file is None:
            logger.warning("Could not find license file for %s", name)
            return LICENSE_NOT_FOUND

        try:
            return license_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read license file for %s: %s", name, exc)
            return LICENSE_NOT_FOUND


__all__ = [
    "FALLBACK_LICENSE_FILES",
    "LICENSE_NOT_FOUND",
    "NO_REPOSITORY",
    "DependencyNode",
    "LicenseResolver",
    "license_candidates",
    "normalize_repository",
]
