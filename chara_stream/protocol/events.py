"""Decoded stream events.

One frozen dataclass per line type of the data stream protocol. `Event` is the
closed union the decoder produces; consumers match on it exhaustively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union


@dataclass(frozen=True, slots=True)
class Usage:
    prompt_tokens: int | None = None
    completion_tokens: int | None = None

    @property
    def total_tokens(self) -> int | None:
        if self.prompt_tokens is None or self.completion_tokens is None:
            return None
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True, slots=True)
class TextDelta:
    text: str


@dataclass(frozen=True, slots=True)
class ReasoningDelta:
    """Model-native reasoning text; always goes to the thinking channel."""

    text: str


@dataclass(frozen=True, slots=True)
class ToolCallBegin:
    tool_call_id: str
    tool_name: str


@dataclass(frozen=True, slots=True)
class ToolCallArgsDelta:
    tool_call_id: str
    args_text_delta: str


@dataclass(frozen=True, slots=True)
class ToolCallComplete:
    """Full arguments of a call; supersedes anything streamed before."""

    tool_call_id: str
    args: dict[str, Any]
    tool_name: str | None = None


@dataclass(frozen=True, slots=True)
class ToolCallResult:
    tool_call_id: str
    result: Any


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    message: str


@dataclass(frozen=True, slots=True)
class DataEvent:
    payload: list[Any] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class FinishEvent:
    finish_reason: str
    usage: Usage | None = None


@dataclass(frozen=True, slots=True)
class StepBoundary:
    kind: Literal["start", "finish"]
    finish_reason: str | None = None
    usage: Usage | None = None
    message_id: str | None = None
    is_continued: bool = False


Event = Union[
    TextDelta,
    ReasoningDelta,
    ToolCallBegin,
    ToolCallArgsDelta,
    ToolCallComplete,
    ToolCallResult,
    ErrorEvent,
    DataEvent,
    FinishEvent,
    StepBoundary,
]
