from __future__ import annotations

from .builder import SegmentBuilder
from .types import Segment, TextSegment, ToolCallSegment, segments_to_dicts

__all__ = ["Segment", "SegmentBuilder", "TextSegment", "ToolCallSegment", "segments_to_dicts"]
