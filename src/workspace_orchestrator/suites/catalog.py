"""
Root-level test command catalog.

Purpose
- Load the YAML catalog describing the ``--scripts``, ``--e2e``, ``--integration``
  and CI ``test:scripts`` commands.
- Expand ``{run}`` / ``{exec}`` placeholders for the detected toolchain.

Functional requirements
- The packaged catalog is used unless the workspace configures its own file.
- Malformed catalogs fail with ``CatalogError`` naming the offending entry.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Final, cast

import yaml

from workspace_orchestrator.execution.runner import CommandSpec, argv_of
from workspace_orchestrator.toolchain.detection import Toolchain

PACKAGED_CATALOG: Final[str] = "catalog.yaml"
RUN_PLACEHOLDER: Final[str] = "{run}"
EXEC_PLACEHOLDER: Final[str] = "{exec}"
_SECTIONS: Final[tuple[str, ...]] = ("scripts", "ci_scripts", "e2e", "integration")


class CatalogError(ValueError):
    """Raised when a command catalog cannot be loaded or is malformed."""


class InvalidIntegrationModeError(ValueError):
    """Raised for an ``--integration`` value the catalog does not define."""

    exit_code = 2

    def __init__(self, mode: str, known: Sequence[str]) -> None:
        self.mode = mode
        self.known = tuple(known)
        super().__init__(
            f'Invalid --integration value: "{mode}" (expected one of: {", ".join(self.known)})'
        )


@dataclass(frozen=True, slots=True)
class CommandStep:
    """One catalog command with optional extra environment."""

    argv: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)

    def expand(self, toolchain: Toolchain) -> tuple[str, ...]:
        expanded: list[str] = []
        for token in self.argv:
            if token == RUN_PLACEHOLDER:
                expanded.extend(toolchain.run_prefix())
            elif token == EXEC_PLACEHOLDER:
                expanded.extend(toolchain.exec_prefix())
            else:
                expanded.append(token)
        return tuple(expanded)

    def to_spec(self, cwd: Path, toolchain: Toolchain) -> CommandSpec:
        return CommandSpec(argv=self.expand(toolchain), cwd=str(cwd), env=dict(self.env))


@dataclass(frozen=True, slots=True)
class SuiteCatalog:
    """Parsed command catalog."""

    scripts: tuple[CommandStep, ...]
    ci_scripts: tuple[CommandStep, ...]
    e2e: tuple[CommandStep, ...]
    integration: Mapping[str, tuple[CommandStep, ...]]

    @property
    def integration_modes(self) -> tuple[str, ...]:
        return tuple(self.integration)

    def integration_steps(self, mode: str) -> tuple[CommandStep, ...]:
        steps = self.integration.get(mode)
        if steps is None:
            raise InvalidIntegrationModeError(mode, self.integration_modes)
        return steps


def load_catalog(path: str | Path | None = None) -> SuiteCatalog:
    """Load ``path`` or, when it is empty/None, the packaged default catalog."""

    if path:
        source = Path(path)
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as exc:
            raise CatalogError(f"unable to read test catalog {source}: {exc}") from exc
        label = str(source)
    else:
        text = resources.files(__package__).joinpath(PACKAGED_CATALOG).read_text(encoding="utf-8")
        label = PACKAGED_CATALOG
    return parse_catalog(text, label=label)


def parse_catalog(text: str, *, label: str = "<catalog>") -> SuiteCatalog:
    try:
        loaded = cast("object", yaml.safe_load(text))
    except yaml.YAMLError as exc:
        raise CatalogError(f"{label}: invalid YAML ({exc})") from exc

    if not isinstance(loaded, Mapping):
        raise CatalogError(f"{label}: expected top-level YAML mapping, got {type(loaded).__name__}")

    unknown = sorted(str(key) for key in loaded if key not in _SECTIONS)
    if unknown:
        raise CatalogError(f"{label}: unknown sections: {', '.join(unknown)}")

    integration_raw = loaded.get("integration", {})
    if not isinstance(integration_raw, Mapping):
        raise CatalogError(f"{label}.integration: expected mapping of mode -> steps")

    integration = {
        str(mode): _parse_steps(steps, f"{label}.integration.{mode}")
        for mode, steps in integration_raw.items()
    }
    return SuiteCatalog(
        scripts=_parse_steps(loaded.get("scripts", []), f"{label}.scripts"),
        ci_scripts=_parse_steps(loaded.get("ci_scripts", []), f"{label}.ci_scripts"),
        e2e=_parse_steps(loaded.get("e2e", []), f"{label}.e2e"),
        integration=MappingProxyType(integration),
    )


def _parse_steps(raw: object, location: str) -> tuple[CommandStep, ...]:
    if not isinstance(raw, list):
        raise CatalogError(f"{location}: expected a list of steps")

    steps: list[CommandStep] = []
    for index, item in enumerate(raw):
        where = f"{location}[{index}]"
        if not isinstance(item, Mapping):
            raise CatalogError(f"{where}: expected mapping with 'argv'")
        argv_raw = item.get("argv")
        if not isinstance(argv_raw, list) or not argv_raw:
            raise CatalogError(f"{where}.argv: expected a non-empty list")
        env_raw = item.get("env", {})
        if not isinstance(env_raw, Mapping):
            raise CatalogError(f"{where}.env: expected mapping of strings")
        steps.append(
            CommandStep(
                argv=argv_of(argv_raw),
                env={str(key): str(value) for key, value in env_raw.items()},
            )
        )
    return tuple(steps)


__all__ = [
    "CatalogError",
    "CommandStep",
    "InvalidIntegrationModeError",
    "SuiteCatalog",
    "load_catalog",
    "parse_catalog",
]
