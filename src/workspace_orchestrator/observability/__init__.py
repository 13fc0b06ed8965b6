"""Public observability primitives: logging setup and formatters."""

from workspace_orchestrator.observability.logging import (
    DEFAULT_LOGGER_NAME,
    JsonLineFormatter,
    setup_logging,
)

__all__ = [
    "DEFAULT_LOGGER_NAME",
    "JsonLineFormatter",
    "setup_logging",
]
