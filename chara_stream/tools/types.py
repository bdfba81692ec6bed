from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolCallStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ToolCallStatus.SUCCESS, ToolCallStatus.ERROR)


@dataclass(frozen=True, slots=True)
class ToolCallSnapshot:
    """Immutable view of a tool call at the time of its last mutation."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: Any = None
    timestamp: str = ""
    args_text: str = ""

    @property
    def is_streaming(self) -> bool:
        return self.status is ToolCallStatus.IN_PROGRESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "arguments": self.arguments,
            "status": self.status.value,
            "result": self.result,
            "timestamp": self.timestamp,
            "argsText": self.args_text,
        }
