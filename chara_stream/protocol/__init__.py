from __future__ import annotations

from .decoder import EventDecoder, decode_line, part_type_of
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

__all__ = [
    "DataEvent",
    "ErrorEvent",
    "Event",
    "EventDecoder",
    "FinishEvent",
    "LineFramer",
    "ReasoningDelta",
    "StepBoundary",
    "TextDelta",
    "ToolCallArgsDelta",
    "ToolCallBegin",
    "ToolCallComplete",
    "ToolCallResult",
    "Usage",
    "decode_line",
    "part_type_of",
]
