"""Logging for the Cocoro MQTT bridge.

Every logger writes human-readable lines, JSON lines, or both
(``COCORO_LOG_FORMAT``). Lines carry the correlation id of the publisher cycle
or inbound command that produced them, and any structured context passed as
``extra=``::

    logger.info("%s Registered '%s'", lp, device.name, extra={"entities": 11})
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import cast, override

__all__ = [
    "CocoroLogger",
    "HumanReadableFormatter",
    "JSONFormatter",
    "get_logger",
]

# LogRecord attribute holding the ``extra=`` mapping
CONTEXT_ATTR = "extra_data"
NO_CORRELATION = "--------"


def _context(record: logging.LogRecord) -> dict[str, object]:
    context: object = getattr(record, CONTEXT_ATTR, None)
    if isinstance(context, Mapping):
        return dict(cast("Mapping[str, object]", context))
    return {}


def _correlation_id() -> str | None:
    from cocoro_mqtt.correlation import get_correlation_id  # noqa: PLC0415

    return get_correlation_id()


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
            "correlation_id": _correlation_id(),
        }
        if context := _context(record):
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``<time> <LEVEL> [module:line] [corr-id] > message | key=value ...``"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] [%(correlation_id)s] > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id = _correlation_id()
        record.correlation_id = correlation_id[:8] if correlation_id else NO_CORRELATION
        line = super().format(record)
        context = _context(record)
        if not context:
            return line
        return " | ".join([line, *(f"{key}={value}" for key, value in context.items())])


def _open_stream(destination: str) -> logging.Handler:
    """Handler for ``stdout``, ``stderr`` or a file path; falls back to stdout if the file can't be opened."""
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    try:
        return _open_file(destination)
    except OSError as e:
        print(f"Warning: cannot open log file {destination}: {e}", file=sys.stderr)
        return logging.StreamHandler(sys.stdout)


def _open_file(path: str | Path) -> logging.Handler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(log_path, mode="a")


class CocoroLogger:
    """Thin wrapper over ``logging.Logger`` that accepts structured context.

    Handlers are attached once per logger name, so repeated ``get_logger``
    calls for the same module share them.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
    ) -> None:
        """Create or reuse the logger called ``name``.

        Args:
            name: Logger name, usually ``__name__``
            log_format: "human", "json" or "both"
            json_file: File receiving JSON lines; JSON output is off without one
            human_output: "stdout", "stderr" or a file path

        """
        from cocoro_mqtt.const import COCORO_DEBUG  # noqa: PLC0415

        self.name: str = name
        self.log_format: str = log_format
        self.logger: logging.Logger = logging.getLogger(name)
        # keep a level set earlier, e.g. by --debug
        if self.logger.level == logging.NOTSET:
            self.logger.setLevel(logging.DEBUG if COCORO_DEBUG else logging.INFO)
        if not self.logger.handlers:
            for handler in self._build_handlers(json_file, human_output):
                handler.setLevel(self.logger.level)
                self.logger.addHandler(handler)

    def _build_handlers(self, json_file: str | Path | None, human_output: str | None) -> list[logging.Handler]:
        handlers: list[logging.Handler] = []
        if self.log_format in ("json", "both") and json_file:
            try:
                json_handler = _open_file(json_file)
            except OSError as e:
                print(f"Warning: cannot open JSON log file {json_file}: {e}", file=sys.stderr)
            else:
                json_handler.setFormatter(JSONFormatter())
                handlers.append(json_handler)
        if self.log_format in ("human", "both"):
            human_handler = _open_stream(human_output or "stdout")
            human_handler.setFormatter(HumanReadableFormatter())
            handlers.append(human_handler)
        return handlers

    def log(
        self,
        level: int,
        msg: str,
        *args: object,
        extra: Mapping[str, object] | None = None,
        exc_info: bool = False,
    ) -> None:
        record_extra = {CONTEXT_ATTR: dict(extra)} if extra else None
        # stacklevel=3 attributes the line to whoever called debug()/info()/...
        self.logger.log(level, msg, *args, extra=record_extra, exc_info=exc_info, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self.log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self.log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self.log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self.log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log at ERROR with the active exception's traceback."""
        self.log(logging.ERROR, msg, *args, extra=extra, exc_info=True)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> CocoroLogger:
    """Return a ``CocoroLogger`` for ``name``; unset arguments come from ``COCORO_LOG_*``."""
    from cocoro_mqtt.const import (  # noqa: PLC0415
        COCORO_LOG_FORMAT,
        COCORO_LOG_HUMAN_OUTPUT,
        COCORO_LOG_JSON_FILE,
    )

    return CocoroLogger(
        name,
        log_format=log_format or COCORO_LOG_FORMAT,
        json_file=json_file or COCORO_LOG_JSON_FILE,
        human_output=human_output or COCORO_LOG_HUMAN_OUTPUT,
    )
