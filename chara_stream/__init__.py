"""Streaming chat-protocol decoder and incremental segment builder."""

from __future__ import annotations

from chara_stream.callbacks import CallbackDispatcher, CompletionInfo, StreamCallbacks
from chara_stream.config.model import DecoderConfig, load_decoder_config
from chara_stream.segments import Segment, SegmentBuilder, TextSegment, ToolCallSegment
from chara_stream.session import DecoderSession
from chara_stream.stream import decode_stream, process_chat_stream
from chara_stream.tools import ToolCallSnapshot, ToolCallStatus

__all__ = [
    "CallbackDispatcher",
    "CompletionInfo",
    "DecoderConfig",
    "DecoderSession",
    "Segment",
    "SegmentBuilder",
    "StreamCallbacks",
    "TextSegment",
    "ToolCallSegment",
    "ToolCallSnapshot",
    "ToolCallStatus",
    "decode_stream",
    "load_decoder_config",
    "process_chat_stream",
]
