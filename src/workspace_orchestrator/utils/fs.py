"""
workspace-orchestrator: filesystem utilities

Purpose
- Atomic full-overwrite writes for generated artifacts (notices, build stamps).
- Tolerant JSON manifest reads used by the notice generator and the test dispatcher.
- Deterministic listing of workspace package directories.

Non-functional requirements
- Standard library only.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

PathLike = str | os.PathLike[str]

__all__ = [
    "ManifestReadError",
    "atomic_write",
    "is_within",
    "list_subdirectories",
    "read_json_object",
]


class ManifestReadError(ValueError):
    """Raised when a JSON manifest exists but cannot be read or parsed."""


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Replace ``path`` with ``data`` in a single step.

    Parent directories are created. The payload lands in a temp file next to the
    target and is moved over it with ``os.replace``, so readers never observe a
    partially written file.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target.parent),
    )
    temp_path = Path(temp_name)

    try:
        mode = "wb" if isinstance(data, bytes) else "w"
        open_kwargs: dict[str, Any] = {} if isinstance(data, bytes) else {"encoding": encoding}
        with os.fdopen(fd, mode, **open_kwargs) as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def read_json_object(path: PathLike) -> dict[str, Any]:
    """Read ``path`` as a JSON object, raising ``ManifestReadError`` on any failure."""

    source = Path(path)
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestReadError(f"unable to read {source}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestReadError(f"invalid JSON in {source}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ManifestReadError(f"JSON root must be an object: {source}")
    return payload


def list_subdirectories(root: PathLike) -> list[Path]:
    """Return immediate subdirectories of ``root`` sorted by name."""

    base = Path(root)
    return sorted(
        (entry for entry in base.iterdir() if entry.is_dir()),
        key=lambda entry: entry.name,
    )


def is_within(child: PathLike, parent: PathLike) -> bool:
    """Return ``True`` if resolved ``child`` equals or lies below resolved ``parent``."""

    resolved_parent = Path(parent).resolve()
    resolved_child = Path(child).resolve()
    try:
        resolved_child.relative_to(resolved_parent)
    except ValueError:
        return False
    return True
