"""Structured logging helpers shared by the CLI and the engine."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO


class _TextFormatter(logging.Formatter):
    """Render records as ``LEVEL message key=value`` lines."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = getattr(record, "fields", {})
        parts = [record.levelname, record.getMessage()]
        parts.extend(f"{key}={value}" for key, value in fields.items())
        return " ".join(parts)


class _JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = getattr(record, "fields", {})
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(fields)
        return json.dumps(payload, ensure_ascii=False, default=str)


class StructuredLogger:
    """Thin wrapper around :mod:`logging` that attaches keyword fields to records."""

    def __init__(
        self,
        name: str,
        *,
        json_mode: bool = False,
        stream: TextIO | None = None,
        level: int = logging.INFO,
    ) -> None:
        self.name = name
        self.json_mode = json_mode
        # Unmanaged logger so that separate instances never share handlers.
        self._logger = logging.Logger(name, level=level)
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setFormatter(_JsonFormatter() if json_mode else _TextFormatter())
        self._logger.addHandler(handler)

    def _log(self, level: int, message: str, fields: dict[str, Any]) -> None:
        self._logger.log(level, message, extra={"fields": fields})

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, fields)


__all__ = ["StructuredLogger"]
