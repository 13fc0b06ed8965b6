"""Executable CLI entrypoint for ``workspace_orchestrator``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    """Deterministic process exit-code contract."""

    SUCCESS = 0
    FAILURE = 1
    USAGE_ERROR = 2


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m workspace_orchestrator`` and the ``wsorch`` script."""

    try:
        from workspace_orchestrator.ui.cli import run_cli

        return _normalize_exit_code(run_cli(argv))
    except SystemExit as exc:
        return _normalize_exit_code(exc.code)
    except KeyboardInterrupt:
        _write_stderr("interrupted")
        return 130
    except Exception as exc:  # noqa: BLE001 - CLI boundary normalization.
        exit_code = _route_exception(exc)
        _emit_failure(exc)
        return exit_code


def _normalize_exit_code(raw_code: object) -> int:
    if isinstance(raw_code, int) and not isinstance(raw_code, bool) and 0 <= raw_code <= 255:
        return raw_code
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, str) and raw_code.strip():
        _write_stderr(raw_code.strip())
    return int(ExitCode.FAILURE)


def _route_exception(exc: BaseException) -> int:
    usage_error_types = _load_usage_error_types()

    for item in _iter_exception_chain(exc):
        if isinstance(item, usage_error_types):
            return int(ExitCode.USAGE_ERROR)
        explicit = getattr(item, "exit_code", None)
        if isinstance(explicit, int) and not isinstance(explicit, bool) and explicit > 0:
            return explicit
    return int(ExitCode.FAILURE)


def _load_usage_error_types() -> tuple[type[BaseException], ...]:
    from workspace_orchestrator.config import ConfigLoadError, ConfigValidationError
    from workspace_orchestrator.suites import CatalogError, InvalidIntegrationModeError
    from workspace_orchestrator.toolchain import ToolchainUnavailableError

    return (
        ConfigLoadError,
        ConfigValidationError,
        CatalogError,
        InvalidIntegrationModeError,
        ToolchainUnavailableError,
    )


def _iter_exception_chain(exc: BaseException) -> list[BaseException]:
    seen: set[int] = set()
    items: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None:
        marker = id(current)
        if marker in seen:
            break
        seen.add(marker)
        items.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
            continue
        if current.__context__ is not None and not current.__suppress_context__:
            current = current.__context__
            continue
        break
    return items


def _emit_failure(exc: BaseException) -> None:
    if _is_known_failure(exc):
        _write_stderr(f"error: {str(exc).strip() or exc.__class__.__name__}")
        return
    traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)


def _is_known_failure(exc: BaseException) -> bool:
    from workspace_orchestrator.execution import CommandFailedError
    from workspace_orchestrator.notices import NoticesError
    from workspace_orchestrator.pipeline import StageError
    from workspace_orchestrator.suites import DispatchError
    from workspace_orchestrator.toolchain import BundleError

    known = (
        *_load_usage_error_types(),
        BundleError,
        CommandFailedError,
        DispatchError,
        NoticesError,
        StageError,
    )
    return isinstance(exc, known)


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint"]
