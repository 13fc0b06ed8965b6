"""
workspace-orchestrator config package public API.

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``orchestrator.toml`` + ``WSORCH_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from workspace_orchestrator.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    env_bindings,
    load_config,
)
from workspace_orchestrator.config.schema import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    OrchestratorConfig,
    assert_valid_config,
    default_config,
    dump_config,
    merge_config,
    validate_config,
)
from workspace_orchestrator.config.workspace import Workspace

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "OrchestratorConfig",
    "Workspace",
    "assert_valid_config",
    "default_config",
    "dump_config",
    "env_bindings",
    "load_config",
    "merge_config",
    "validate_config",
]
