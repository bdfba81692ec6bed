from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from chara_stream.tools.types import ToolCallSnapshot


@dataclass(frozen=True, slots=True)
class TextSegment:
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "content": self.content}


@dataclass(frozen=True, slots=True)
class ToolCallSegment:
    """A tool-call record at its fixed insertion index.

    `version` increases with every mutation of the underlying call.
    """

    tool_call: ToolCallSnapshot
    version: int = 1

    @property
    def tool_call_id(self) -> str:
        return self.tool_call.id

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool-call", "content": "", "toolCall": self.tool_call.to_dict()}


Segment = Union[TextSegment, ToolCallSegment]


def segments_to_dicts(segments: list[Segment]) -> list[dict[str, Any]]:
    return [s.to_dict() for s in segments]
