from __future__ import annotations

import json
import logging

import pytest

from chara_stream.observability import add_error, bind_stream, configure_logging, get_logger, set_state
from chara_stream.observability import logging as logging_mod
from chara_stream.observability.logging import JsonFormatter


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.lines: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(self.format(record))


def test_kv_logger_emits_json_with_stream_context() -> None:
    handler = _ListHandler()
    handler.setFormatter(JsonFormatter())
    base = logging.getLogger("chara_stream.test_kv")
    base.addHandler(handler)
    base.setLevel(logging.DEBUG)
    base.propagate = False

    try:
        bind_stream(stream_id="abc123")
        set_state("STREAMING")
        add_error("boom")

        log = get_logger("chara_stream.test_kv")
        log.info("tool_call_begin", tool_call_id="t1", args="reserved")
    finally:
        base.removeHandler(handler)
        base.propagate = True

    payload = json.loads(handler.lines[0])
    assert payload["message"] == "tool_call_begin"
    assert payload["level"] == "INFO"
    assert payload["stream_id"] == "abc123"
    assert payload["state"] == "STREAMING"
    assert payload["errors"] == ["boom"]
    assert payload["tool_call_id"] == "t1"
    assert payload["field_args"] == "reserved"


def test_configure_logging_installs_one_json_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    previous_level = root.level
    saved_handlers = list(root.handlers)
    monkeypatch.setattr(logging_mod, "_configured", False)

    try:
        configure_logging("debug")
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG

        configure_logging("WARNING")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(previous_level)
