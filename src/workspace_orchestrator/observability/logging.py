"""Logging setup: plain-text or JSON-lines output on stderr for the orchestrator tree."""

from __future__ import annotations

import json
import logging
import math
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Final, TextIO

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

DEFAULT_LOGGER_NAME: Final[str] = "workspace_orchestrator"
_TEXT_FORMAT: Final[str] = "%(levelname)s %(name)s: %(message)s"
_HANDLER_MARKER: Final[str] = "_workspace_orchestrator_handler"

_STANDARD_LOG_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)


class JsonLineFormatter(logging.Formatter):
    """Formatter that emits one canonical JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z_from_epoch(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = _extract_extra_fields(record)
        if extras:
            event["fields"] = extras

        if record.exc_info is not None:
            event["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            event["stack"] = str(record.stack_info)

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def setup_logging(
    level: int | str = "INFO",
    *,
    fmt: str = "text",
    stream: TextIO | None = None,
    logger_name: str = DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Configure the package logger with a single stderr handler.

    Calling this again replaces the previously installed handler, so the CLI can
    reconfigure after loading config without duplicating output.
    """

    if fmt not in {"text", "json"}:
        raise ValueError(f"unsupported log format: {fmt!r}")

    logger = logging.getLogger(logger_name)
    resolved_level = _parse_log_level(level)
    logger.setLevel(resolved_level)

    for existing in list(logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            logger.removeHandler(existing)
            existing.close()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(resolved_level)
    handler.setFormatter(JsonLineFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)
    return logger


def _parse_log_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level: {level!r}")
    return resolved


def _iso8601z_from_epoch(epoch_seconds: float) -> str:
    timestamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, JSONValue]:
    fields: dict[str, JSONValue] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOG_RECORD_FIELDS or key.startswith("_"):
            continue
        fields[key] = _normalize_json_value(value)
    return fields


def _normalize_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(key): _normalize_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else value
        return [_normalize_json_value(item) for item in items]
    return str(value)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "JsonLineFormatter",
    "setup_logging",
]
