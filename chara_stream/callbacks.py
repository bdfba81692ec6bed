"""Consumer-facing callback contract.

Callbacks run synchronously, inside the decode loop, and must return before
the next line is processed. Every callback is optional.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from chara_stream.protocol.events import Usage
from chara_stream.segments.builder import SegmentBuilder
from chara_stream.segments.types import Segment
from chara_stream.tools.types import ToolCallSnapshot


@dataclass(frozen=True, slots=True)
class CompletionInfo:
    finish_reason: str
    usage: Usage | None = None


@dataclass
class StreamCallbacks:
    on_stream_open: Callable[[], None] | None = None
    on_text_delta: Callable[[str], None] | None = None
    on_thinking_delta: Callable[[str], None] | None = None
    on_tool_call: Callable[[ToolCallSnapshot], None] | None = None
    on_tool_call_args_update: Callable[[str, dict[str, Any], str], None] | None = None
    on_structured_data: Callable[[Any], None] | None = None
    on_segment_update: Callable[[list[Segment]], None] | None = None
    on_stream_error: Callable[[str], None] | None = None
    on_completion: Callable[[CompletionInfo], None] | None = None
    on_stream_close: Callable[[bool], None] | None = None


class CallbackDispatcher:
    """Forward decoded state to whichever callbacks the consumer set."""

    def __init__(self, callbacks: StreamCallbacks | None = None) -> None:
        self._cb = callbacks or StreamCallbacks()

    @property
    def callbacks(self) -> StreamCallbacks:
        return self._cb

    def stream_open(self) -> None:
        if self._cb.on_stream_open:
            self._cb.on_stream_open()

    def text_delta(self, text: str) -> None:
        if self._cb.on_text_delta and text:
            self._cb.on_text_delta(text)

    def thinking_delta(self, text: str) -> None:
        if self._cb.on_thinking_delta and text:
            self._cb.on_thinking_delta(text)

    def tool_call(self, snapshot: ToolCallSnapshot) -> None:
        if self._cb.on_tool_call:
            self._cb.on_tool_call(snapshot)

    def tool_call_args_update(self, tool_call_id: str, args: dict[str, Any], args_text: str) -> None:
        if self._cb.on_tool_call_args_update:
            self._cb.on_tool_call_args_update(tool_call_id, args, args_text)

    def structured_data(self, payload: Any) -> None:
        if self._cb.on_structured_data:
            self._cb.on_structured_data(payload)

    def segment_update(self, builder: SegmentBuilder, segments: list[Segment]) -> None:
        """Dispatch only when the list differs from the last one sent."""

        if builder.has_changed(segments) and self._cb.on_segment_update:
            self._cb.on_segment_update(segments)

    def stream_error(self, message: str) -> None:
        if self._cb.on_stream_error:
            self._cb.on_stream_error(message)

    def completion(self, info: CompletionInfo) -> None:
        if self._cb.on_completion:
            self._cb.on_completion(info)

    def stream_close(self, aborted: bool) -> None:
        if self._cb.on_stream_close:
            self._cb.on_stream_close(aborted)
