"""Utility exports for filesystem helpers."""

from workspace_orchestrator.utils.fs import (
    ManifestReadError,
    atomic_write,
    is_within,
    list_subdirectories,
    read_json_object,
)

__all__ = [
    "ManifestReadError",
    "atomic_write",
    "is_within",
    "list_subdirectories",
    "read_json_object",
]
