"""
workspace-orchestrator: configuration schema.

Purpose
- Define the built-in defaults for every configurable path, script and policy.
- Validate merged config payloads and report every problem with a dotted key path.

Functional requirements
- Unknown sections and keys are rejected.
- Validation returns a normalized copy; inputs are never mutated.
"""

from __future__ import annotations

import copy
import json
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypedDict

TOOLCHAIN_PREFERENCES: Final[tuple[str, ...]] = ("auto", "bun", "node")
LOG_FORMATS: Final[tuple[str, ...]] = ("text", "json")
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_SCOPE_PATTERN = re.compile(r"^@[a-z0-9][a-z0-9._-]*$")
_PACKAGE_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


class WorkspaceConfig(TypedDict):
    packages_dir: str


class BuildConfig(TypedDict):
    output: str
    cli_entry: str
    cli_tsconfig: str
    commit_info_script: str
    bundle_assets_script: str
    copy_files_script: str
    sandbox_probe_script: str
    sandbox_build_script: str
    companion_dir: str
    companion_script: str
    package_entry: str
    package_tsconfig: str
    stamp_file: str


class AliasesConfig(TypedDict):
    scopes: list[str]
    packages: dict[str, str]


class ToolchainConfig(TypedDict):
    prefer: str


class NoticesConfig(TypedDict):
    package_dir: str
    output: str
    lockfile: str


class TestsConfig(TypedDict):
    script: str
    ci_script: str
    catalog: str


class LoggingSettings(TypedDict):
    level: str
    format: str


class OrchestratorConfig(TypedDict):
    workspace: WorkspaceConfig
    build: BuildConfig
    aliases: AliasesConfig
    toolchain: ToolchainConfig
    notices: NoticesConfig
    tests: TestsConfig
    logging: LoggingSettings


DEFAULT_CONFIG: Final[OrchestratorConfig] = {
    "workspace": {
        "packages_dir": "packages",
    },
    "build": {
        "output": "bundle/gemini.js",
        "cli_entry": "packages/cli/index.ts",
        "cli_tsconfig": "packages/cli/tsconfig.json",
        "commit_info_script": "scripts/generate-git-commit-info.js",
        "bundle_assets_script": "scripts/copy_bundle_assets.js",
        "copy_files_script": "scripts/copy_files.js",
        "sandbox_probe_script": "scripts/sandbox_command.js",
        "sandbox_build_script": "scripts/build_sandbox.js",
        "companion_dir": "packages/vscode-ide-companion",
        "companion_script": "package",
        "package_entry": "index.ts",
        "package_tsconfig": "tsconfig.json",
        "stamp_file": ".last_build",
    },
    "aliases": {
        "scopes": ["@google", "@hlmpn"],
        "packages": {
            "gemini-cli-core": "packages/core",
            "gemini-cli-a2a-server": "packages/a2a-server",
        },
    },
    "toolchain": {
        "prefer": "auto",
    },
    "notices": {
        "package_dir": "packages/vscode-ide-companion",
        "output": "NOTICES.txt",
        "lockfile": "package-lock.json",
    },
    "tests": {
        "script": "test",
        "ci_script": "test:ci",
        "catalog": "",
    },
    "logging": {
        "level": "INFO",
        "format": "text",
    },
}

# Keys whose value may legitimately be an empty string.
OPTIONAL_STRING_FIELDS: Final[frozenset[tuple[str, str]]] = frozenset({("tests", "catalog")})


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> dict[str, Any]:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(dict(DEFAULT_CONFIG))


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto ``base``; nested mappings merge, everything else replaces."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=issues.items())

    _reject_unknown_keys(config, set(DEFAULT_CONFIG), "", issues)

    normalized: dict[str, Any] = {}
    for section_name in DEFAULT_CONFIG:
        raw_section = config.get(section_name, {})
        if not isinstance(raw_section, Mapping):
            issues.add(section_name, f"expected table, got {type(raw_section).__name__}")
            continue
        if section_name == "aliases":
            normalized[section_name] = _validate_aliases(raw_section, issues)
        else:
            normalized[section_name] = _validate_scalar_section(section_name, raw_section, issues)

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())

    _validate_enums(normalized, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def dump_config(config: Mapping[str, object]) -> str:
    """Deterministic, human-readable JSON rendering of an effective config."""

    return json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False)


def _validate_scalar_section(
    section_name: str,
    payload: Mapping[str, object],
    issues: _IssueCollector,
) -> dict[str, Any]:
    defaults: Mapping[str, object] = DEFAULT_CONFIG[section_name]  # type: ignore[literal-required]
    _reject_unknown_keys(payload, set(defaults), section_name, issues)

    out: dict[str, Any] = {}
    for key, default in defaults.items():
        path = f"{section_name}.{key}"
        value = payload.get(key, default)
        if not isinstance(value, str):
            issues.add(path, f"expected string, got {type(value).__name__}")
            continue
        parsed = value.strip()
        if not parsed and (section_name, key) not in OPTIONAL_STRING_FIELDS:
            issues.add(path, "must not be empty")
            continue
        if "\x00" in parsed:
            issues.add(path, "must not contain NUL bytes")
            continue
        out[key] = parsed
    return out


def _validate_aliases(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    defaults = DEFAULT_CONFIG["aliases"]
    _reject_unknown_keys(payload, set(defaults), "aliases", issues)

    scopes_raw = payload.get("scopes", defaults["scopes"])
    scopes: list[str] = []
    if isinstance(scopes_raw, str) or not isinstance(scopes_raw, Sequence):
        issues.add("aliases.scopes", "expected array of strings")
    else:
        for index, item in enumerate(scopes_raw):
            if not isinstance(item, str) or not _SCOPE_PATTERN.fullmatch(item.strip()):
                issues.add(f"aliases.scopes[{index}]", "expected an npm scope such as '@acme'")
                continue
            scopes.append(item.strip())

    packages_raw = payload.get("packages", defaults["packages"])
    packages: dict[str, str] = {}
    if not isinstance(packages_raw, Mapping):
        issues.add("aliases.packages", "expected table of package name -> package directory")
    else:
        for name, directory in packages_raw.items():
            path = f"aliases.packages.{name}"
            if not isinstance(name, str) or not _PACKAGE_NAME_PATTERN.fullmatch(name):
                issues.add(path, "package name must be an unscoped npm package name")
                continue
            if not isinstance(directory, str) or not directory.strip():
                issues.add(path, "package directory must be a non-empty string")
                continue
            packages[name] = directory.strip()

    return {"scopes": scopes, "packages": packages}


def _validate_enums(config: Mapping[str, Any], issues: _IssueCollector) -> None:
    checks: tuple[tuple[str, str, tuple[str, ...]], ...] = (
        ("toolchain", "prefer", TOOLCHAIN_PREFERENCES),
        ("logging", "format", LOG_FORMATS),
        ("logging", "level", LOG_LEVELS),
    )
    for section, key, allowed in checks:
        value = config[section][key]
        if section == "logging" and key == "level":
            value = value.upper()
            config[section][key] = value
        if value not in allowed:
            expected = ", ".join(allowed)
            issues.add(f"{section}.{key}", f"invalid value {value!r}; expected one of: {expected}")


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(str(item) for item in payload):
        if key not in allowed:
            issues.add(f"{path}.{key}" if path else key, "unknown field")


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "TOOLCHAIN_PREFERENCES",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "OrchestratorConfig",
    "assert_valid_config",
    "default_config",
    "dump_config",
    "merge_config",
    "validate_config",
]
