"""Log setup for hosts embedding the engine.

``JsonFormatter`` writes one orjson document per record and stamps it with
the correlation fields bound by ``bind_call_context`` (trace id, span id,
operation, engine), so a slow search can be followed from its span to every
line it logged.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import Any

import orjson

from catalog_search.config import SearchSettings
from catalog_search.observability.context import get_trace_context


PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_STANDARD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_MAX_EXTRA_LEN = 500


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def _to_json(value: Any) -> Any:
    """orjson ``default`` hook for values it cannot encode natively."""
    if isinstance(value, (set, frozenset)):
        items = list(value)
        try:
            return sorted(items)
        except TypeError:
            return items
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (Path, BaseException)):
        return str(value)
    return repr(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per record, correlated with the current engine call."""

    REDACT_KEYS = frozenset({"api_key", "authorization", "password", "secret", "token"})
    MAX_MESSAGE_LEN = 2000

    def format(self, record: logging.LogRecord) -> str:
        entry = self._base_entry(record)
        entry.update(self._extra_fields(record))
        return orjson.dumps(entry, default=_to_json).decode()

    def _base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        ctx = get_trace_context()
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _clip(record.getMessage(), self.MAX_MESSAGE_LEN),
            "trace_id": ctx.get("trace_id", ""),
            "span_id": ctx.get("span_id", ""),
        }
        entry.update({key: value for key, value in ctx.items() if key not in entry})
        _, dot, component = record.name.rpartition(".")
        if dot:
            entry["component"] = component
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return entry

    def _extra_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        extras = {}
        for key, value in vars(record).items():
            if key in _STANDARD_FIELDS or key.startswith("_"):
                continue
            if key.lower() in self.REDACT_KEYS:
                value = "[REDACTED]"
            elif isinstance(value, str):
                value = _clip(value, _MAX_EXTRA_LEN)
            extras[key] = value
        return extras


def _level(name: str) -> int:
    resolved = logging.getLevelName(name.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: str | None = None,
    json_output: bool | None = None,
    *,
    logger_levels: dict[str, str] | None = None,
) -> None:
    """Replace the root handlers with a single stdout handler.

    Args:
        level: Root level name; ``SearchSettings.log_level`` when omitted.
        json_output: Use ``JsonFormatter`` instead of the plain text format;
            ``SearchSettings.json_logs`` when omitted.
        logger_levels: Extra ``{logger name: level name}`` overrides, e.g. to
            quiet ``catalog_search.search`` while debugging the engine.
    """
    if level is None or json_output is None:
        settings = SearchSettings()
        level = settings.log_level if level is None else level
        json_output = settings.json_logs if json_output is None else json_output

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_level(level))

    for name, override in (logger_levels or {}).items():
        logging.getLogger(name).setLevel(_level(override))
