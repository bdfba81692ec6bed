"""Line decoding for the data stream protocol.

Each line is `<type>:<json payload>`. Types are accepted both as the short
protocol codes (`0`, `b`, `c`, ...) and as their long names (`text`,
`tool_call_streaming_start`, ...).

All parsing is best-effort at the stream level: `EventDecoder` logs and drops
a bad line, it never aborts the stream.
"""

from __future__ import annotations

import json
import math
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chara_stream.core.errors import MalformedLineError, StreamLineError, UnknownPartTypeError
from chara_stream.observability.logging import get_logger

from .events import (
    DataEvent,
    ErrorEvent,
    Event,
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
from .framer import LineFramer


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _ToolCallBeginPayload(_Payload):
    tool_call_id: str = Field(alias="toolCallId", min_length=1)
    tool_name: str = Field(alias="toolName", min_length=1)


class _ToolCallDeltaPayload(_Payload):
    tool_call_id: str = Field(alias="toolCallId", min_length=1)
    args_text_delta: str = Field(alias="argsTextDelta")


class _ToolCallPayload(_Payload):
    tool_call_id: str = Field(alias="toolCallId", min_length=1)
    tool_name: str | None = Field(default=None, alias="toolName")
    args: dict[str, Any] = Field(default_factory=dict)


class _ToolResultPayload(_Payload):
    tool_call_id: str = Field(alias="toolCallId", min_length=1)
    result: Any = None


class _UsagePayload(_Payload):
    prompt_tokens: float | None = Field(default=None, alias="promptTokens")
    completion_tokens: float | None = Field(default=None, alias="completionTokens")


class _FinishPayload(_Payload):
    finish_reason: str = Field(default="unknown", alias="finishReason")
    usage: _UsagePayload | None = None
    is_continued: bool = Field(default=False, alias="isContinued")


class _StartStepPayload(_Payload):
    message_id: str | None = Field(default=None, alias="messageId")


def _token_count(value: float | None) -> int | None:
    # Providers that do not report usage send NaN.
    if value is None or math.isnan(value) or math.isinf(value):
        return None
    return int(value)


def _usage(payload: _UsagePayload | None) -> Usage | None:
    if payload is None:
        return None
    return Usage(
        prompt_tokens=_token_count(payload.prompt_tokens),
        completion_tokens=_token_count(payload.completion_tokens),
    )


def _require_str(value: Any, *, line: str, part_type: str) -> str:
    if not isinstance(value, str):
        raise MalformedLineError(f"{part_type} payload must be a string", line=line, part_type=part_type)
    return value


def _decode_text(value: Any, line: str) -> Event:
    return TextDelta(text=_require_str(value, line=line, part_type="text"))


def _decode_reasoning(value: Any, line: str) -> Event:
    return ReasoningDelta(text=_require_str(value, line=line, part_type="reasoning"))


def _decode_error(value: Any, line: str) -> Event:
    return ErrorEvent(message=_require_str(value, line=line, part_type="error"))


def _decode_data(value: Any, line: str) -> Event:
    if not isinstance(value, list):
        raise MalformedLineError("data payload must be an array", line=line, part_type="data")
    return DataEvent(payload=list(value))


def _decode_tool_call_begin(value: Any, line: str) -> Event:
    p = _ToolCallBeginPayload.model_validate(value)
    return ToolCallBegin(tool_call_id=p.tool_call_id, tool_name=p.tool_name)


def _decode_tool_call_delta(value: Any, line: str) -> Event:
    p = _ToolCallDeltaPayload.model_validate(value)
    return ToolCallArgsDelta(tool_call_id=p.tool_call_id, args_text_delta=p.args_text_delta)


def _decode_tool_call(value: Any, line: str) -> Event:
    p = _ToolCallPayload.model_validate(value)
    return ToolCallComplete(tool_call_id=p.tool_call_id, args=p.args, tool_name=p.tool_name)


def _decode_tool_result(value: Any, line: str) -> Event:
    p = _ToolResultPayload.model_validate(value)
    return ToolCallResult(tool_call_id=p.tool_call_id, result=p.result)


def _decode_finish_message(value: Any, line: str) -> Event:
    p = _FinishPayload.model_validate(value)
    return FinishEvent(finish_reason=p.finish_reason, usage=_usage(p.usage))


def _decode_finish_step(value: Any, line: str) -> Event:
    p = _FinishPayload.model_validate(value)
    return StepBoundary(
        kind="finish",
        finish_reason=p.finish_reason,
        usage=_usage(p.usage),
        is_continued=p.is_continued,
    )


def _decode_start_step(value: Any, line: str) -> Event:
    p = _StartStepPayload.model_validate(value if value is not None else {})
    return StepBoundary(kind="start", message_id=p.message_id)


_Handler = Callable[[Any, str], Event]

_HANDLERS: dict[str, _Handler] = {
    "text": _decode_text,
    "reasoning": _decode_reasoning,
    "data": _decode_data,
    "error": _decode_error,
    "tool_call": _decode_tool_call,
    "tool_result": _decode_tool_result,
    "tool_call_streaming_start": _decode_tool_call_begin,
    "tool_call_delta": _decode_tool_call_delta,
    "finish_message": _decode_finish_message,
    "finish_step": _decode_finish_step,
    "start_step": _decode_start_step,
}

PART_CODES: dict[str, str] = {
    "0": "text",
    "g": "reasoning",
    "2": "data",
    "3": "error",
    "9": "tool_call",
    "a": "tool_result",
    "b": "tool_call_streaming_start",
    "c": "tool_call_delta",
    "d": "finish_message",
    "e": "finish_step",
    "f": "start_step",
}


def part_type_of(discriminator: str) -> str | None:
    """Map a line discriminator (code or long name) to its part type."""

    if discriminator in _HANDLERS:
        return discriminator
    return PART_CODES.get(discriminator)


def decode_line(line: str) -> Event:
    """Decode one complete protocol line.

    Raises:
        UnknownPartTypeError: the discriminator is not recognized.
        MalformedLineError: the line has no discriminator, or its payload is
            not JSON or does not have the expected shape.
    """

    discriminator, sep, raw_payload = line.partition(":")
    discriminator = discriminator.strip()
    if not sep or not discriminator:
        raise MalformedLineError("missing '<type>:' prefix", line=line)

    part_type = part_type_of(discriminator)
    if part_type is None:
        raise UnknownPartTypeError(f"unknown stream part type {discriminator!r}", line=line, part_type=discriminator)

    try:
        value = json.loads(raw_payload)
    except json.JSONDecodeError as e:
        raise MalformedLineError(
            f"payload is not valid JSON: {e.msg} (pos={e.pos})", line=line, part_type=part_type
        ) from e

    try:
        return _HANDLERS[part_type](value, line)
    except ValidationError as e:
        raise MalformedLineError(
            f"invalid {part_type} payload: {e.error_count()} validation error(s)", line=line, part_type=part_type
        ) from e


class EventDecoder:
    """Frame chunks into lines and decode each line into an Event.

    A line that fails to decode is logged and counted in `skipped_lines`;
    decoding continues with the next line.
    """

    def __init__(self, *, framer: LineFramer | None = None, log_preview_chars: int = 200) -> None:
        self._framer = framer or LineFramer()
        self._preview = log_preview_chars
        self._log = get_logger(__name__)
        self.skipped_lines = 0
        self.decoded_lines = 0

    @property
    def framer(self) -> LineFramer:
        return self._framer

    def feed(self, chunk: bytes | bytearray | str) -> list[Event]:
        return self.decode_lines(self._framer.feed(chunk))

    def close(self) -> list[Event]:
        return self.decode_lines(self._framer.close())

    def decode_lines(self, lines: list[str]) -> list[Event]:
        events: list[Event] = []
        for line in lines:
            try:
                events.append(decode_line(line))
            except StreamLineError as e:
                self.skipped_lines += 1
                self._log.warning(
                    "stream_line_skipped",
                    part_type=e.part_type,
                    reason=str(e),
                    line_preview=line[: self._preview],
                    line_len=len(line),
                )
                continue
            self.decoded_lines += 1
        return events
