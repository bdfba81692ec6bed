from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .context import snapshot


_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }
)


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter suitable for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # stream_id/state/errors[] of the active decode session.
        payload.update(snapshot())

        # Convention: extra fields are carried in record.__dict__.
        for k, v in record.__dict__.items():
            if k in _RESERVED_RECORD_KEYS or k.startswith("_"):
                continue
            try:
                json.dumps(v)
                payload[k] = v
            except TypeError:
                payload[k] = repr(v)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


_configured = False


class KVLogger:
    """A tiny structured logging adapter.

    `log.info("tool_call_begin", tool_call_id=..., tool_name=...)` puts the
    keyword arguments into the record's extra fields.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def isEnabledFor(self, level: int) -> bool:  # noqa: N802
        return self._logger.isEnabledFor(level)

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log("debug", msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log("info", msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log("warning", msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._log("error", msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: object) -> None:
        extra_dict = _merge_extra(kwargs)
        self._logger.exception(msg, *args, extra=extra_dict)

    def _log(self, level: str, msg: str, *args: object, **kwargs: object) -> None:
        exc_info = kwargs.pop("exc_info", None)
        stack_info = kwargs.pop("stack_info", False)
        extra_dict = _merge_extra(kwargs)

        log_fn = getattr(self._logger, level)
        log_fn(msg, *args, extra=extra_dict, exc_info=exc_info, stack_info=stack_info)


def _merge_extra(kwargs: dict[str, object]) -> dict[str, object]:
    extra = kwargs.pop("extra", None)
    if extra is None:
        extra_dict: dict[str, object] = {}
    elif isinstance(extra, dict):
        extra_dict = dict(extra)
    else:
        extra_dict = {"extra": repr(extra)}

    for k, v in kwargs.items():
        # LogRecord refuses to overwrite its own attributes.
        key = f"field_{k}" if k in _RESERVED_RECORD_KEYS or k == "message" else k
        extra_dict[key] = v
    return extra_dict


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with JSON output.

    Safe to call multiple times; only the first call installs the handler.
    """

    global _configured
    if _configured:
        logging.getLogger().setLevel(level.upper())
        return

    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())

    root.handlers.clear()
    root.addHandler(handler)
    _configured = True


def get_logger(name: str = "chara_stream") -> KVLogger:
    return KVLogger(logging.getLogger(name))
