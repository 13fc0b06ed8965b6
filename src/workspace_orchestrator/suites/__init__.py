"""Test-suite orchestration: per-package dispatch and the root command catalog."""

from workspace_orchestrator.suites.catalog import (
    CatalogError,
    CommandStep,
    InvalidIntegrationModeError,
    SuiteCatalog,
    load_catalog,
    parse_catalog,
)
from workspace_orchestrator.suites.dispatcher import (
    SCRIPT_MISSING_MARKERS,
    DispatchError,
    PackageOutcome,
    PackageReport,
    PackageTestDispatcher,
    SuiteBranch,
    SuiteOptions,
    is_missing_script_output,
    script_declared,
)

__all__ = [
    "SCRIPT_MISSING_MARKERS",
    "CatalogError",
    "CommandStep",
    "DispatchError",
    "InvalidIntegrationModeError",
    "PackageOutcome",
    "PackageReport",
    "PackageTestDispatcher",
    "SuiteBranch",
    "SuiteCatalog",
    "SuiteOptions",
    "is_missing_script_output",
    "load_catalog",
    "parse_catalog",
    "script_declared",
]
