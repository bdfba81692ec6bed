"""One decode session: framer -> decoder -> {thinking filter, tracker} -> builder.

All state is private to the session and discarded with it. Feeding is
synchronous; the async loop in `chara_stream.stream` only adds the
"await next chunk" suspension point and cancellation checks.
"""

from __future__ import annotations

from typing import assert_never

from chara_stream.callbacks import CallbackDispatcher, CompletionInfo, StreamCallbacks
from chara_stream.config.model import DecoderConfig
from chara_stream.observability import add_error, bind_stream, get_logger, set_state
from chara_stream.observability.ids import new_stream_id
from chara_stream.protocol.decoder import EventDecoder
from chara_stream.protocol.events import (
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
)
from chara_stream.segments.builder import SegmentBuilder
from chara_stream.segments.types import Segment
from chara_stream.text.thinking_tags import Channel, Emission, ThinkingTagFilter
from chara_stream.tools.tracker import PendingToolCall, ToolCallTracker


class DecoderSession:
    """Decode one chat stream and keep the consumer's callbacks up to date."""

    def __init__(
        self,
        callbacks: StreamCallbacks | None = None,
        *,
        config: DecoderConfig | None = None,
        stream_id: str | None = None,
    ) -> None:
        cfg = config or DecoderConfig()
        self.config = cfg
        self.stream_id = stream_id or new_stream_id()
        self.completion: CompletionInfo | None = None

        self._dispatch = CallbackDispatcher(callbacks)
        self._decoder = EventDecoder(log_preview_chars=cfg.log_preview_chars)
        self._thinking = ThinkingTagFilter(enabled=cfg.filter_thinking_tags)
        self._tracker = ToolCallTracker(
            edit_tool_names=cfg.edit_tool_names,
            interrupted_message=cfg.interrupted_message,
        )
        self._builder = SegmentBuilder(
            edit_tool_names=cfg.edit_tool_names,
            interrupted_message=cfg.interrupted_message,
            drop_blank_text=cfg.drop_blank_text_segments,
        )
        self._log = get_logger(__name__)
        self._opened = False
        self._finished = False
        self._closed = False
        self._aborted = False

    @property
    def decoder(self) -> EventDecoder:
        return self._decoder

    @property
    def tracker(self) -> ToolCallTracker:
        return self._tracker

    @property
    def builder(self) -> SegmentBuilder:
        return self._builder

    @property
    def is_thinking(self) -> bool:
        return self._thinking.is_thinking

    @property
    def finished(self) -> bool:
        """A finish message was received."""

        return self._finished

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def segments(self) -> list[Segment]:
        return self._builder.get_segments()

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> None:
        if self._opened:
            return
        self._opened = True
        bind_stream(stream_id=self.stream_id)
        set_state("STREAMING")
        self._log.info("stream_open")
        self._dispatch.stream_open()

    def feed(self, chunk: bytes | bytearray | str) -> list[Event]:
        """Decode one transport chunk and apply every complete line in order."""

        if self._closed:
            raise RuntimeError("decoder session is closed")
        if not self._opened:
            self.open()

        events = self._decoder.feed(chunk)
        for event in events:
            self.handle(event)
        return events

    def fail(self, message: str) -> None:
        """Report a transport/consumer failure that ends the stream."""

        add_error(message)
        self._dispatch.stream_error(message)

    def close(self, *, aborted: bool = False) -> list[Segment]:
        """End the session: seal all state and return the final segments.

        On abort the partially buffered line is discarded instead of decoded.
        Safe to call more than once.
        """

        if self._closed:
            return self._builder.finalize()

        if aborted:
            self._aborted = True
            self._decoder.framer.discard()
        else:
            for event in self._decoder.close():
                self.handle(event)

        set_state("CLOSING")
        segments = self._seal_all()
        self._closed = True

        self._log.info(
            "stream_closed",
            aborted=aborted,
            segments=len(segments),
            tool_calls=len(self._tracker),
            decoded_lines=self._decoder.decoded_lines,
            skipped_lines=self._decoder.skipped_lines,
        )
        self._dispatch.stream_close(aborted)
        return segments

    # -- event routing -----------------------------------------------------

    def handle(self, event: Event) -> None:
        if self._finished and not isinstance(event, (DataEvent, ErrorEvent)):
            self._log.warning("stream_event_after_finish", event_type=type(event).__name__)
            return

        if isinstance(event, TextDelta):
            self._on_text(event.text)
        elif isinstance(event, ReasoningDelta):
            self._dispatch.thinking_delta(event.text)
        elif isinstance(event, ToolCallBegin):
            self._on_tool_call_begin(event)
        elif isinstance(event, ToolCallArgsDelta):
            self._on_tool_call_args_delta(event)
        elif isinstance(event, ToolCallComplete):
            self._on_tool_call_complete(event)
        elif isinstance(event, ToolCallResult):
            self._on_tool_call_result(event)
        elif isinstance(event, ErrorEvent):
            self._on_error(event)
        elif isinstance(event, DataEvent):
            for item in event.payload:
                self._dispatch.structured_data(item)
        elif isinstance(event, StepBoundary):
            self._on_step(event)
        elif isinstance(event, FinishEvent):
            self._on_finish(event)
        else:
            assert_never(event)

    def _on_text(self, text: str) -> None:
        if self._route(self._thinking.feed(text)):
            self._publish_segments()

    def _on_tool_call_begin(self, event: ToolCallBegin) -> None:
        self._flush_thinking()
        call = self._tracker.begin(event.tool_call_id, event.tool_name)
        if call is None:
            return
        self._builder.begin_tool_call(call.id, call.name, timestamp=call.timestamp)
        self._dispatch.tool_call(call.snapshot())
        self._publish_segments()

    def _on_tool_call_args_delta(self, event: ToolCallArgsDelta) -> None:
        call = self._tracker.append_args(event.tool_call_id, event.args_text_delta)
        if call is None:
            return
        self._sync_args(call)

    def _on_tool_call_complete(self, event: ToolCallComplete) -> None:
        call = self._tracker.complete(event.tool_call_id, event.args, name=event.tool_name)
        if call is None:
            return
        if not self._builder.is_tool_call_tracked(call.id):
            self._flush_thinking()
            self._builder.begin_tool_call(call.id, call.name, timestamp=call.timestamp)
        self._sync_args(call)

    def _on_tool_call_result(self, event: ToolCallResult) -> None:
        call = self._tracker.resolve(event.tool_call_id, event.result)
        if call is None:
            return
        self._dispatch.tool_call(call.snapshot())
        self._builder.complete_tool_call(call.id, event.result)
        self._publish_segments()

    def _on_error(self, event: ErrorEvent) -> None:
        call = self._tracker.fail_in_progress(event.message) if not self._builder.finalized else None
        if call is not None:
            self._dispatch.tool_call(call.snapshot())
            self._builder.error_tool_call(call.id, event.message)
            self._publish_segments()
            return

        add_error(event.message)
        self._log.error("stream_error_event", error=event.message)
        self._dispatch.stream_error(event.message)

    def _on_step(self, event: StepBoundary) -> None:
        self._log.info(
            "stream_step",
            kind=event.kind,
            finish_reason=event.finish_reason,
            message_id=event.message_id,
            is_continued=event.is_continued,
        )
        if event.kind == "finish":
            self._flush_thinking()
            if self._builder.seal_text():
                self._publish_segments()

    def _on_finish(self, event: FinishEvent) -> None:
        self._seal_all()
        self._finished = True
        set_state("FINISHED")

        usage = event.usage
        self._log.info(
            "stream_finish",
            finish_reason=event.finish_reason,
            prompt_tokens=usage.prompt_tokens if usage else None,
            completion_tokens=usage.completion_tokens if usage else None,
        )
        self.completion = CompletionInfo(finish_reason=event.finish_reason, usage=usage)
        self._dispatch.completion(self.completion)

    # -- helpers -----------------------------------------------------------

    def _sync_args(self, call: PendingToolCall) -> None:
        self._dispatch.tool_call(call.snapshot())
        if call.arguments is not None:
            self._dispatch.tool_call_args_update(call.id, call.arguments, call.args_text)
        self._builder.update_tool_call_args(call.id, call.arguments or {}, args_text=call.args_text)
        self._publish_segments()

    def _route(self, emissions: list[Emission]) -> bool:
        """Send emissions to their channel; True if visible text was added."""

        visible = False
        for channel, text in emissions:
            if channel is Channel.THINKING:
                self._dispatch.thinking_delta(text)
                continue
            self._dispatch.text_delta(text)
            if not self._builder.finalized:
                self._builder.add_text_delta(text)
                visible = True
        return visible

    def _flush_thinking(self) -> None:
        if self._route(self._thinking.flush()):
            self._publish_segments()

    def _seal_all(self) -> list[Segment]:
        if not self._builder.finalized:
            self._flush_thinking()
            for call in self._tracker.interrupt_all():
                self._dispatch.tool_call(call.snapshot())
        segments = self._builder.finalize()
        self._dispatch.segment_update(self._builder, segments)
        return segments

    def _publish_segments(self) -> None:
        self._dispatch.segment_update(self._builder, self._builder.get_segments())
