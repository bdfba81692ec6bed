"""Streaming tool-call state tracking.

One `PendingToolCall` per tool_call_id:

    pending --args delta / full args--> in-progress --result--> success | error
       \\--------------- attributed error / interrupt ---------------> error

Constraints:
- argument text arrives in fragments and is invalid JSON until complete; the
  last successfully parsed object is kept while parsing fails.
- terminal calls are immutable; later events for them are logged and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from chara_stream.config.model import DEFAULT_EDIT_TOOL_NAMES, DEFAULT_INTERRUPTED_MESSAGE
from chara_stream.core.clock import utc_timestamp
from chara_stream.observability.logging import get_logger

from .edits import EditStatus, result_error_message, with_edit_status
from .partial_json import parse_streaming_json
from .types import ToolCallSnapshot, ToolCallStatus


@dataclass(slots=True)
class PendingToolCall:
    id: str
    name: str
    args_text: str = ""
    arguments: dict[str, Any] | None = None
    last_valid_args: dict[str, Any] | None = None
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: Any = None
    timestamp: str = field(default_factory=utc_timestamp)
    last_json_error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def snapshot(self) -> ToolCallSnapshot:
        return ToolCallSnapshot(
            id=self.id,
            name=self.name,
            arguments=dict(self.arguments or {}),
            status=self.status,
            result=self.result,
            timestamp=self.timestamp,
            args_text=self.args_text,
        )


class ToolCallTracker:
    """Track every tool call of one decode session, in begin order."""

    def __init__(
        self,
        *,
        edit_tool_names: Iterable[str] = DEFAULT_EDIT_TOOL_NAMES,
        interrupted_message: str = DEFAULT_INTERRUPTED_MESSAGE,
    ) -> None:
        self._calls: dict[str, PendingToolCall] = {}
        self._edit_tools = frozenset(edit_tool_names)
        self._interrupted_message = interrupted_message
        self._log = get_logger(__name__)

    def __contains__(self, tool_call_id: object) -> bool:
        return tool_call_id in self._calls

    def __len__(self) -> int:
        return len(self._calls)

    def get(self, tool_call_id: str) -> PendingToolCall | None:
        return self._calls.get(tool_call_id)

    def calls(self) -> list[PendingToolCall]:
        return list(self._calls.values())

    def open_calls(self) -> list[PendingToolCall]:
        return [c for c in self._calls.values() if not c.is_terminal]

    def snapshot(self, tool_call_id: str) -> ToolCallSnapshot | None:
        call = self._calls.get(tool_call_id)
        return call.snapshot() if call is not None else None

    def is_edit_tool(self, name: str) -> bool:
        return name in self._edit_tools

    def begin(self, tool_call_id: str, name: str) -> PendingToolCall | None:
        """Start tracking a call. Returns None when the id is already known."""

        if tool_call_id in self._calls:
            self._log.warning("tool_call_duplicate_begin", tool_call_id=tool_call_id, tool_name=name)
            return None

        call = PendingToolCall(id=tool_call_id, name=name)
        self._calls[tool_call_id] = call
        self._log.info("tool_call_begin", tool_call_id=tool_call_id, tool_name=name)
        return call

    def append_args(self, tool_call_id: str, fragment: str) -> PendingToolCall | None:
        """Append streamed argument text and re-parsed it."""

        call = self._open_call(tool_call_id, "args_delta")
        if call is None:
            return None

        call.args_text += fragment
        call.status = ToolCallStatus.IN_PROGRESS

        parsed = parse_streaming_json(call.args_text)
        if parsed.ok and isinstance(parsed.value, dict):
            call.last_valid_args = parsed.value
            call.arguments = parsed.value
            call.last_json_error = None
            if self.is_edit_tool(call.name):
                call.arguments = with_edit_status(parsed.value, EditStatus.APPLYING)
        else:
            call.last_json_error = parsed.error if not parsed.ok else "tool args must be a JSON object"
            if call.last_valid_args is not None and call.arguments is None:
                call.arguments = call.last_valid_args

        self._log.debug(
            "tool_call_accumulate",
            tool_call_id=call.id,
            tool_name=call.name,
            arguments_len=len(call.args_text),
            last_json_error=call.last_json_error,
        )
        return call

    def complete(self, tool_call_id: str, args: dict[str, Any], *, name: str | None = None) -> PendingToolCall | None:
        """Full arguments arrived; they supersede anything streamed.

        A call that was never begun is started implicitly when `name` is known
        (non-streamed tool calls carry only this event).
        """

        if tool_call_id not in self._calls and name:
            self.begin(tool_call_id, name)

        call = self._open_call(tool_call_id, "args_complete")
        if call is None:
            return None

        call.arguments = dict(args)
        call.last_valid_args = dict(args)
        call.last_json_error = None
        call.status = ToolCallStatus.IN_PROGRESS
        if self.is_edit_tool(call.name):
            call.arguments = with_edit_status(args, EditStatus.PENDING)

        self._log.info("tool_call_args_complete", tool_call_id=call.id, tool_name=call.name)
        return call

    def resolve(self, tool_call_id: str, result: Any) -> PendingToolCall | None:
        """A tool result arrived: seal as success, or error if it carries one."""

        call = self._open_call(tool_call_id, "result")
        if call is None:
            return None

        error = result_error_message(result)
        call.result = result
        call.status = ToolCallStatus.ERROR if error is not None else ToolCallStatus.SUCCESS
        if self.is_edit_tool(call.name):
            call.arguments = with_edit_status(
                call.arguments or {},
                EditStatus.ERROR if error is not None else EditStatus.COMPLETE,
                error=error,
            )

        self._log.info(
            "tool_call_result",
            tool_call_id=call.id,
            tool_name=call.name,
            status=call.status.value,
            error=error,
        )
        return call

    def fail(self, tool_call_id: str, message: str) -> PendingToolCall | None:
        call = self._open_call(tool_call_id, "error")
        if call is None:
            return None
        self._seal_error(call, message)
        self._log.warning("tool_call_error", tool_call_id=call.id, tool_name=call.name, error=message)
        return call

    def fail_in_progress(self, message: str) -> PendingToolCall | None:
        """Attribute a stream error to the first in-progress call, if any."""

        for call in self._calls.values():
            if call.status is ToolCallStatus.IN_PROGRESS:
                return self.fail(call.id, message)
        return None

    def interrupt_all(self, message: str | None = None) -> list[PendingToolCall]:
        """Seal every non-terminal call as error (stream ended first)."""

        message = message or self._interrupted_message
        interrupted: list[PendingToolCall] = []
        for call in self._calls.values():
            if call.is_terminal:
                continue
            self._seal_error(call, message)
            interrupted.append(call)
            self._log.warning(
                "tool_call_interrupted",
                tool_call_id=call.id,
                tool_name=call.name,
                arguments_len=len(call.args_text),
            )
        return interrupted

    def reset(self) -> None:
        self._calls.clear()

    def _seal_error(self, call: PendingToolCall, message: str) -> None:
        call.status = ToolCallStatus.ERROR
        call.result = {"error": message}
        if self.is_edit_tool(call.name):
            call.arguments = with_edit_status(call.arguments or {}, EditStatus.ERROR, error=message)

    def _open_call(self, tool_call_id: str, event: str) -> PendingToolCall | None:
        call = self._calls.get(tool_call_id)
        if call is None:
            self._log.warning("tool_call_unknown_id", tool_call_id=tool_call_id, tool_event=event)
            return None
        if call.is_terminal:
            self._log.warning(
                "tool_call_already_sealed",
                tool_call_id=tool_call_id,
                tool_event=event,
                status=call.status.value,
            )
            return None
        return call
