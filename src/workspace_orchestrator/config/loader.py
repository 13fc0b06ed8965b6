"""
workspace-orchestrator: runtime config loader.

Purpose
- Load effective runtime config from defaults, TOML file, env vars, and CLI overrides.

What should be included in this file
- Precedence logic: CLI > env (WSORCH_) > file > defaults.
- TOML loading via ``tomllib``.
- Deterministic environment variable mapping and coercion.

Functional requirements
- A missing default config file is not an error; a missing explicit one is.
- Every override passes through schema validation before use.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Final

from workspace_orchestrator.config.schema import (
    DEFAULT_CONFIG,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "orchestrator.toml"
ENV_PREFIX: Final[str] = "WSORCH_"


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    workspace_root: str | Path | None = None,
    cli_overrides: Mapping[str, Mapping[str, object]] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with deterministic precedence: CLI > env > file > defaults."""

    root = Path(workspace_root) if workspace_root is not None else Path.cwd()
    resolved_path = _resolve_config_path(config_path, root)
    env_map = dict(os.environ if environ is None else environ)

    file_payload = _load_toml_file(resolved_path, required=config_path is not None)

    merged = merge_config(default_config(), file_payload)
    merged = assert_valid_config(merged)
    merged = merge_config(merged, _collect_env_overrides(env_map))
    merged = merge_config(merged, dict(cli_overrides or {}))
    return assert_valid_config(merged)


def env_bindings() -> dict[str, tuple[str, str]]:
    """Map every supported ``WSORCH_*`` variable to its ``(section, key)`` path."""

    bindings: dict[str, tuple[str, str]] = {}
    for section, key, value in _iter_default_fields():
        if isinstance(value, (str, list)):
            bindings[f"{ENV_PREFIX}{section}_{key}".upper()] = (section, key)
    return bindings


def _resolve_config_path(config_path: str | Path | None, root: Path) -> Path:
    if config_path is None:
        return (root / DEFAULT_CONFIG_FILE).resolve()
    candidate = Path(config_path).expanduser()
    if not candidate.is_absolute():
        candidate = root / candidate
    return candidate.resolve()


def _load_toml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            parsed = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    return parsed


def _collect_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    defaults: Mapping[str, Mapping[str, object]] = DEFAULT_CONFIG  # type: ignore[assignment]
    for env_name, (section, key) in sorted(env_bindings().items()):
        raw = environ.get(env_name)
        if raw is None:
            continue
        default = defaults[section][key]
        if isinstance(default, list):
            value: object = [item.strip() for item in raw.split(",") if item.strip()]
        else:
            value = raw.strip()
        overrides.setdefault(section, {})[key] = value
    return overrides


def _iter_default_fields() -> Iterator[tuple[str, str, object]]:
    for section, payload in DEFAULT_CONFIG.items():
        for key, value in payload.items():  # type: ignore[attr-defined]
            yield section, key, value


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ConfigLoadError",
    "env_bindings",
    "load_config",
]
