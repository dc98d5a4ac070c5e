"""JSON-lines logging for the engine, the CLI and the REST server.

Every record is one JSON object with `timestamp`, `level`, `logger` and
`message`. Context passed via `extra={...}` (workflow ids, template ids, step
labels) is grouped under `extra`, and tracebacks under `exception`.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

# Attributes every LogRecord carries, whatever the interpreter version adds.
_STANDARD_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

# Dependencies that are noisy below INFO.
QUIET_LOGGERS: tuple[str, ...] = ("httpx", "asyncio", "multipart")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """The `extra={...}` fields attached to `record`."""

    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = record_context(record)
        if context:
            payload["extra"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Paths, enums and ids from `extra` fall back to their str().
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str, *, stream: TextIO | None = None) -> None:
    """Route all logging through one JSON handler at `level`.

    Calling it again replaces the handler rather than adding a second one.
    """

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level.upper())

    floor = max(root.level, logging.INFO)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(floor)
