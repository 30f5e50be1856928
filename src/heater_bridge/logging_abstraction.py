"""Logging for the heater bridge.

Every module logs through ``get_logger(__name__)``. Handlers live only on the
``heater_bridge`` package logger and are attached the first time any module
asks for a logger; module loggers just propagate to it. Call sites pass
structured context as ``extra={...}`` and both output formats render it next to
the message along with the current correlation id.

``HEATER_LOG_FORMAT`` selects the output:

- ``human``: one text line per record on ``HEATER_LOG_HUMAN_OUTPUT``
  (``stdout``, ``stderr`` or a file path)
- ``json``: one JSON object per line appended to ``HEATER_LOG_JSON_FILE``
- ``both``: the two together
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping, MutableMapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from typing_extensions import override

from heater_bridge import const
from heater_bridge.correlation import current_id

__all__ = [
    "BridgeLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "configure_logging",
    "get_logger",
]

_configured: bool = False


def _context(record: logging.LogRecord) -> Mapping[str, object]:
    context = getattr(record, "extra_data", None)
    return context if isinstance(context, Mapping) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": current_id(),
        }
        if context := _context(record):
            entry["context"] = dict(context)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``time LEVEL [module:line] [correlation id] > message | key=value ...``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] [%(correlation_id)s] > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = current_id() if const.HEATER_LOG_CORRELATION_ENABLED else None
        record.correlation_id = correlation_id or "-"
        line = super().format(record)
        if context := _context(record):
            line = f"{line} | " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


class BridgeLogger(logging.LoggerAdapter[logging.Logger]):
    """Module logger taking structured context as ``extra={...}``.

    The context travels on the record as the single ``extra_data`` attribute,
    so keys such as ``name`` or ``message`` never clash with ``LogRecord``
    fields.
    """

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__(logger)

    @override
    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        context = kwargs.pop("extra", None)
        if context:
            kwargs["extra"] = {"extra_data": dict(context)}
        return msg, kwargs


def _open_output(output: str) -> logging.Handler:
    if output == "stdout":
        return logging.StreamHandler(sys.stdout)
    if output == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


def configure_logging(
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
    *,
    force: bool = False,
) -> logging.Logger:
    """Attach the bridge's handlers to the package logger and return it.

    Only the first call does anything unless ``force`` is set, in which case the
    existing handlers are closed and replaced. Arguments default to the
    ``HEATER_LOG_*`` settings. An output that cannot be opened falls back to
    stderr with a warning.
    """
    global _configured  # noqa: PLW0603
    package = logging.getLogger(const.HEATER_LOG_NAME)
    if _configured and not force:
        return package
    _configured = True

    for handler in list(package.handlers):
        package.removeHandler(handler)
        handler.close()
    package.setLevel(logging.DEBUG if const.HEATER_DEBUG else logging.INFO)

    log_format = log_format or const.HEATER_LOG_FORMAT
    json_file = json_file or const.HEATER_LOG_JSON_FILE
    human_output = human_output or const.HEATER_LOG_HUMAN_OUTPUT

    outputs: list[tuple[str, logging.Formatter]] = []
    if log_format in ("json", "both") and json_file:
        outputs.append((str(json_file), JSONFormatter()))
    if log_format in ("human", "both"):
        outputs.append((human_output, HumanReadableFormatter()))

    for output, formatter in outputs:
        failure: OSError | None = None
        try:
            handler = _open_output(output)
        except OSError as e:
            failure = e
            handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        package.addHandler(handler)
        if failure is not None:
            package.warning("Cannot open log output %s (%s), writing to stderr instead", output, failure)
    return package


def get_logger(name: str) -> BridgeLogger:
    """Logger for a bridge module; configures the package handlers on first use."""
    _ = configure_logging()
    return BridgeLogger(logging.getLogger(name))
