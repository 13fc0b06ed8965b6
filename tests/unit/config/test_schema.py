"""
workspace-orchestrator: unit tests for config schema validation

Purpose
- Validate strict schema behavior, structured issue paths, and deterministic dumps.
"""

from __future__ import annotations

import json

import pytest

from workspace_orchestrator.config.schema import (
    ConfigValidationError,
    assert_valid_config,
    default_config,
    dump_config,
    merge_config,
    validate_config,
)


def _issue_paths(config: object) -> list[str]:
    return [issue.path for issue in validate_config(config).issues]


def test_defaults_validate() -> None:
    result = validate_config(default_config())
    assert result.is_valid
    assert result.config == default_config()


def test_unknown_sections_and_keys_are_rejected() -> None:
    config = merge_config(default_config(), {"bogus": {}, "build": {"minify": "yes"}})
    assert _issue_paths(config) == ["bogus", "build.minify"]


def test_non_string_and_empty_values_are_rejected() -> None:
    config = merge_config(
        default_config(),
        {"tests": {"script": 3}, "workspace": {"packages_dir": "  "}},
    )
    assert sorted(_issue_paths(config)) == ["tests.script", "workspace.packages_dir"]


def test_empty_catalog_is_allowed() -> None:
    config = merge_config(default_config(), {"tests": {"catalog": ""}})
    assert validate_config(config).is_valid


def test_alias_validation() -> None:
    config = merge_config(
        default_config(),
        {"aliases": {"scopes": ["google"], "packages": {"@scoped/pkg": "packages/x"}}},
    )
    assert _issue_paths(config) == ["aliases.scopes[0]", "aliases.packages.@scoped/pkg"]


def test_enum_values_and_level_normalization() -> None:
    normalized = assert_valid_config(merge_config(default_config(), {"logging": {"level": "debug"}}))
    assert normalized["logging"]["level"] == "DEBUG"

    with pytest.raises(ConfigValidationError) as excinfo:
        assert_valid_config(merge_config(default_config(), {"logging": {"format": "xml"}}))
    assert [issue.path for issue in excinfo.value.issues] == ["logging.format"]
    assert "expected one of" in str(excinfo.value)


def test_merge_config_deep_merges_without_mutating_inputs() -> None:
    base = default_config()
    merged = merge_config(base, {"aliases": {"packages": {"extra": "packages/extra"}}})

    assert "extra" in merged["aliases"]["packages"]
    assert "gemini-cli-core" in merged["aliases"]["packages"]
    assert "extra" not in base["aliases"]["packages"]


def test_dump_config_is_sorted_json() -> None:
    rendered = dump_config(default_config())
    assert json.loads(rendered) == default_config()
    assert rendered == dump_config(json.loads(rendered))
