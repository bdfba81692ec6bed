from __future__ import annotations

from .edits import EditStatus, result_error_message, with_edit_status
from .partial_json import JsonParseResult, complete_partial_json, parse_streaming_json
from .tracker import PendingToolCall, ToolCallTracker
from .types import ToolCallSnapshot, ToolCallStatus

__all__ = [
    "EditStatus",
    "JsonParseResult",
    "PendingToolCall",
    "ToolCallSnapshot",
    "ToolCallStatus",
    "ToolCallTracker",
    "complete_partial_json",
    "parse_streaming_json",
    "result_error_message",
    "with_edit_status",
]
