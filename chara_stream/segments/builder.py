"""Ordered, incrementally updated message segments.

The segment list is append-only except for two things:
- the trailing text run stays open and keeps growing until something seals it
- a tool-call segment is replaced in place, at the index fixed when the call
  began, every time the call mutates.

Terminal (success/error) tool-call segments are never replaced again.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable

from chara_stream.config.model import DEFAULT_EDIT_TOOL_NAMES, DEFAULT_INTERRUPTED_MESSAGE
from chara_stream.core.clock import utc_timestamp
from chara_stream.core.errors import SegmentBuilderClosedError
from chara_stream.observability.logging import get_logger
from chara_stream.tools.edits import EditStatus, result_error_message, with_edit_status
from chara_stream.tools.types import ToolCallSnapshot, ToolCallStatus

from .types import Segment, TextSegment, ToolCallSegment


class SegmentBuilder:
    def __init__(
        self,
        *,
        edit_tool_names: Iterable[str] = DEFAULT_EDIT_TOOL_NAMES,
        interrupted_message: str = DEFAULT_INTERRUPTED_MESSAGE,
        drop_blank_text: bool = True,
    ) -> None:
        self._edit_tools = frozenset(edit_tool_names)
        self._interrupted_message = interrupted_message
        self._drop_blank_text = drop_blank_text
        self._log = get_logger(__name__)
        self.clear()

    def clear(self) -> None:
        self._segments: list[Segment] = []
        self._current_text = ""
        # Insertion order matters: interrupted calls are sealed in begin order.
        self._positions: dict[str, int] = {}
        self._versions: dict[int, int] = {}
        self._last_dispatched: list[tuple[str, Any]] | None = None
        self._final: list[Segment] | None = None

    @property
    def finalized(self) -> bool:
        return self._final is not None

    @property
    def current_text(self) -> str:
        return self._current_text

    def version_of(self, index: int) -> int:
        return self._versions.get(index, 0)

    def is_tool_call_tracked(self, tool_call_id: str) -> bool:
        return tool_call_id in self._positions

    def tool_call(self, tool_call_id: str) -> ToolCallSnapshot | None:
        pos = self._positions.get(tool_call_id)
        if pos is None:
            return None
        seg = self._segments[pos]
        return seg.tool_call if isinstance(seg, ToolCallSegment) else None

    # -- mutations ---------------------------------------------------------

    def add_text_delta(self, text: str) -> None:
        self._ensure_open()
        if not text:
            return
        self._current_text += text
        self._bump(len(self._segments))

    def seal_text(self) -> bool:
        """Close the open text run so later text starts a new segment."""

        self._ensure_open()
        return self._seal_current_text()

    def begin_tool_call(self, tool_call_id: str, tool_name: str, *, timestamp: str | None = None) -> bool:
        self._ensure_open()
        if tool_call_id in self._positions:
            self._log.warning("segment_tool_call_duplicate", tool_call_id=tool_call_id, tool_name=tool_name)
            return False

        self._seal_current_text()
        snapshot = ToolCallSnapshot(
            id=tool_call_id,
            name=tool_name,
            status=ToolCallStatus.PENDING,
            timestamp=timestamp or utc_timestamp(),
        )
        self._append_tool_segment(snapshot)
        return True

    def add_tool_call_snapshot(self, snapshot: ToolCallSnapshot) -> bool:
        """Insert a tool call that arrived fully formed (no begin/args events)."""

        self._ensure_open()
        if snapshot.id in self._positions:
            return False
        self._seal_current_text()
        self._append_tool_segment(snapshot)
        return True

    def update_tool_call_args(self, tool_call_id: str, args: dict[str, Any], *, args_text: str | None = None) -> bool:
        current = self._open_tool_call(tool_call_id)
        if current is None:
            return False

        arguments = dict(args)
        if current.name in self._edit_tools:
            arguments = with_edit_status(arguments, EditStatus.APPLYING, keep_existing=True)

        self._replace(
            tool_call_id,
            replace(
                current,
                arguments=arguments,
                status=ToolCallStatus.IN_PROGRESS,
                args_text=current.args_text if args_text is None else args_text,
            ),
        )
        return True

    def complete_tool_call(self, tool_call_id: str, result: Any = None) -> bool:
        current = self._open_tool_call(tool_call_id)
        if current is None:
            return False

        error = result_error_message(result)
        arguments = current.arguments
        if current.name in self._edit_tools:
            arguments = with_edit_status(
                arguments,
                EditStatus.ERROR if error is not None else EditStatus.COMPLETE,
                error=error,
            )

        self._replace(
            tool_call_id,
            replace(
                current,
                arguments=arguments,
                result=result,
                status=ToolCallStatus.ERROR if error is not None else ToolCallStatus.SUCCESS,
            ),
        )
        return True

    def error_tool_call(self, tool_call_id: str, message: str) -> bool:
        current = self._open_tool_call(tool_call_id)
        if current is None:
            return False
        self._replace(tool_call_id, self._errored(current, message))
        return True

    # -- views -------------------------------------------------------------

    def finalize(self) -> list[Segment]:
        """Seal everything and return the final segment list.

        Idempotent: later calls return the same list and change nothing.
        """

        if self._final is not None:
            return list(self._final)

        self._seal_current_text()

        for tool_call_id, pos in self._positions.items():
            seg = self._segments[pos]
            if isinstance(seg, ToolCallSegment) and not seg.tool_call.status.is_terminal:
                self._replace(tool_call_id, self._errored(seg.tool_call, self._interrupted_message))

        self._final = self._visible(self._segments)
        return list(self._final)

    def get_segments(self) -> list[Segment]:
        """Live view: sealed segments plus the open text run, if any."""

        if self._final is not None:
            return list(self._final)

        segments = list(self._segments)
        if self._current_text.strip():
            segments.append(TextSegment(self._current_text))
        return self._visible(segments)

    def has_changed(self, segments: list[Segment]) -> bool:
        """Compare against the last list passed here; remember this one.

        Text segments compare by content, tool-call segments by version.
        """

        keys = [
            ("tool", (s.tool_call_id, s.version)) if isinstance(s, ToolCallSegment) else ("text", s.content)
            for s in segments
        ]
        changed = keys != self._last_dispatched
        self._last_dispatched = keys
        return changed

    # -- internals ---------------------------------------------------------

    def _visible(self, segments: list[Segment]) -> list[Segment]:
        if self._drop_blank_text:
            return [s for s in segments if not isinstance(s, TextSegment) or s.content.strip()]
        return [s for s in segments if not isinstance(s, TextSegment) or s.content]

    def _ensure_open(self) -> None:
        if self._final is not None:
            raise SegmentBuilderClosedError("segment builder is finalized")

    def _bump(self, index: int) -> int:
        version = self._versions.get(index, 0) + 1
        self._versions[index] = version
        return version

    def _seal_current_text(self) -> bool:
        if not self._current_text:
            return False
        pos = len(self._segments)
        self._segments.append(TextSegment(self._current_text))
        self._versions.setdefault(pos, 1)
        self._current_text = ""
        return True

    def _append_tool_segment(self, snapshot: ToolCallSnapshot) -> None:
        pos = len(self._segments)
        self._positions[snapshot.id] = pos
        self._segments.append(ToolCallSegment(tool_call=snapshot, version=self._bump(pos)))

    def _open_tool_call(self, tool_call_id: str) -> ToolCallSnapshot | None:
        self._ensure_open()
        current = self.tool_call(tool_call_id)
        if current is None:
            self._log.warning("segment_tool_call_unknown", tool_call_id=tool_call_id)
            return None
        if current.status.is_terminal:
            self._log.warning(
                "segment_tool_call_sealed",
                tool_call_id=tool_call_id,
                status=current.status.value,
            )
            return None
        return current

    def _errored(self, current: ToolCallSnapshot, message: str) -> ToolCallSnapshot:
        arguments = current.arguments
        if current.name in self._edit_tools:
            arguments = with_edit_status(arguments, EditStatus.ERROR, error=message)
        return replace(current, arguments=arguments, status=ToolCallStatus.ERROR, result={"error": message})

    def _replace(self, tool_call_id: str, snapshot: ToolCallSnapshot) -> None:
        pos = self._positions[tool_call_id]
        self._segments[pos] = ToolCallSegment(tool_call=snapshot, version=self._bump(pos))
