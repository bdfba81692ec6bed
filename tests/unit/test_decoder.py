from __future__ import annotations

import json
from typing import Any

import pytest

from chara_stream.core.errors import MalformedLineError, UnknownPartTypeError
from chara_stream.protocol import decoder as decoder_mod
from chara_stream.protocol.decoder import EventDecoder, decode_line, part_type_of
from chara_stream.protocol.events import (
    DataEvent,
    ErrorEvent,
    FinishEvent,
    ReasoningDelta,
    StepBoundary,
    TextDelta,
    ToolCallArgsDelta,
    ToolCallBegin,
    ToolCallComplete,
    ToolCallResult,
    Usage,
)


def _line(code: str, payload: Any) -> str:
    return f"{code}:{json.dumps(payload)}"


def test_short_codes_and_long_names_are_equivalent() -> None:
    assert decode_line(_line("0", "hi")) == TextDelta(text="hi")
    assert decode_line(_line("text", "hi")) == TextDelta(text="hi")
    assert part_type_of("b") == "tool_call_streaming_start"
    assert part_type_of("tool_call_delta") == "tool_call_delta"
    assert part_type_of("z") is None


def test_tool_call_lines() -> None:
    assert decode_line(_line("b", {"toolCallId": "t1", "toolName": "search"})) == ToolCallBegin(
        tool_call_id="t1", tool_name="search"
    )
    assert decode_line(_line("c", {"toolCallId": "t1", "argsTextDelta": '{"q":'})) == ToolCallArgsDelta(
        tool_call_id="t1", args_text_delta='{"q":'
    )
    assert decode_line(_line("9", {"toolCallId": "t1", "toolName": "search", "args": {"q": "x"}})) == ToolCallComplete(
        tool_call_id="t1", args={"q": "x"}, tool_name="search"
    )
    assert decode_line(_line("a", {"toolCallId": "t1", "result": {"data": 1}})) == ToolCallResult(
        tool_call_id="t1", result={"data": 1}
    )


def test_misc_lines() -> None:
    assert decode_line(_line("g", "hmm")) == ReasoningDelta(text="hmm")
    assert decode_line(_line("3", "boom")) == ErrorEvent(message="boom")
    assert decode_line(_line("2", [{"a": 1}, 2])) == DataEvent(payload=[{"a": 1}, 2])
    assert decode_line(_line("f", {"messageId": "m1"})) == StepBoundary(kind="start", message_id="m1")
    assert decode_line("f:null") == StepBoundary(kind="start")


def test_finish_lines_carry_usage() -> None:
    ev = decode_line(_line("d", {"finishReason": "stop", "usage": {"promptTokens": 10, "completionTokens": 5}}))
    assert ev == FinishEvent(finish_reason="stop", usage=Usage(prompt_tokens=10, completion_tokens=5))
    assert ev.usage is not None and ev.usage.total_tokens == 15

    step = decode_line(_line("e", {"finishReason": "tool-calls", "isContinued": True}))
    assert isinstance(step, StepBoundary)
    assert step.kind == "finish"
    assert step.finish_reason == "tool-calls"
    assert step.is_continued is True


def test_nan_usage_becomes_unknown() -> None:
    ev = decode_line('d:{"finishReason":"stop","usage":{"promptTokens":NaN,"completionTokens":3}}')
    assert isinstance(ev, FinishEvent)
    assert ev.usage == Usage(prompt_tokens=None, completion_tokens=3)
    assert ev.usage.total_tokens is None


@pytest.mark.parametrize(
    "line",
    [
        "no prefix here",
        ':"x"',
        '0:{"broken"',
        "0:42",
        '2:{"not": "a list"}',
        'b:{"toolCallId": "t1"}',
        'c:{"argsTextDelta": "x"}',
    ],
)
def test_malformed_lines(line: str) -> None:
    with pytest.raises(MalformedLineError):
        decode_line(line)


def test_unknown_part_type() -> None:
    with pytest.raises(UnknownPartTypeError) as ei:
        decode_line('x:"y"')
    assert ei.value.part_type == "x"
    assert ei.value.line == 'x:"y"'


def test_event_decoder_skips_bad_lines_and_continues(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[dict[str, Any]] = []

    class _Log:
        def warning(self, msg: str, **fields: Any) -> None:
            warnings.append({"msg": msg, **fields})

    dec = EventDecoder(log_preview_chars=4)
    monkeypatch.setattr(dec, "_log", _Log())

    events = dec.feed('0:"a"\n0:{oops\nq:"z"\n0:"b"\n')

    assert events == [TextDelta(text="a"), TextDelta(text="b")]
    assert dec.skipped_lines == 2
    assert dec.decoded_lines == 2
    assert [w["msg"] for w in warnings] == ["stream_line_skipped", "stream_line_skipped"]
    assert warnings[0]["line_preview"] == "0:{o"


def test_event_decoder_close_decodes_tail() -> None:
    dec = EventDecoder()
    assert dec.feed('0:"a"\n0:"tail"') == [TextDelta(text="a")]
    assert dec.close() == [TextDelta(text="tail")]
    assert decoder_mod.PART_CODES["0"] == "text"
