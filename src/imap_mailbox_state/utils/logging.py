"""Logging setup for CLI runs: one JSON object per record, or key=value text."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from imap_mailbox_state.config.settings import LoggingSettings

# Attributes every LogRecord carries; anything else was passed via ``extra``.
_STANDARD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "asctime",
    "message",
}

_HUMAN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _jsonable(value: object) -> Any:
    """Make a log field JSON-friendly; sets become sorted lists, unknown types strings."""
    if isinstance(value, set | frozenset):
        return sorted(str(item) for item in value)
    if isinstance(value, str | int | float | bool | None):
        return value
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(item) for item in value]
    return str(value)


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the ``extra=`` fields attached to a record.

    Args:
        record: Log record.

    Returns:
        Public, non-standard attributes in insertion order.
    """
    return {
        key: _jsonable(value)
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JsonLogFormatter(logging.Formatter):
    """Render each record as a single-line JSON document."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON string representation.
        """
        created = datetime.fromtimestamp(record.created, tz=UTC)
        payload: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            **extra_fields(record),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class HumanLogFormatter(logging.Formatter):
    """Plain text formatter that appends ``extra=`` fields as key=value pairs."""

    def __init__(self) -> None:
        """Initialize with the console line layout."""
        super().__init__(fmt=_HUMAN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format a record, then append its extra fields."""
        line = super().format(record)
        extras = extra_fields(record)
        if not extras:
            return line
        pairs = " ".join(f"{key}={json.dumps(value, ensure_ascii=False)}" for key, value in extras.items())
        return f"{line} [{pairs}]"


def configure_logging(*, settings: LoggingSettings) -> None:
    """Install a stderr handler on the root logger.

    Args:
        settings: Logging settings (level and JSON/human output).
    """
    level = logging.getLevelNamesMapping().get(settings.level.strip().upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(JsonLogFormatter() if settings.json_logs else HumanLogFormatter())
    logging.basicConfig(level=level, handlers=[handler], force=True)

    # aioimaplib logs every protocol line at DEBUG.
    logging.getLogger("aioimaplib").setLevel(max(level, logging.INFO))
