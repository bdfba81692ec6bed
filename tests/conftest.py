from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest


def pytest_configure() -> None:
    root = Path(__file__).resolve().parents[1]
    if (root / "chara_stream").exists():
        sys.path.insert(0, str(root))


@dataclass
class Recorder:
    opened: int = 0
    text: list[str] = field(default_factory=list)
    thinking: list[str] = field(default_factory=list)
    tool_calls: list[Any] = field(default_factory=list)
    args_updates: list[tuple[str, dict[str, Any], str]] = field(default_factory=list)
    data: list[Any] = field(default_factory=list)
    segment_updates: list[list[Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    completions: list[Any] = field(default_factory=list)
    closed: list[bool] = field(default_factory=list)

    def callbacks(self):
        from chara_stream.callbacks import StreamCallbacks

        return StreamCallbacks(
            on_stream_open=self._open,
            on_text_delta=self.text.append,
            on_thinking_delta=self.thinking.append,
            on_tool_call=self.tool_calls.append,
            on_tool_call_args_update=lambda i, a, t: self.args_updates.append((i, a, t)),
            on_structured_data=self.data.append,
            on_segment_update=self.segment_updates.append,
            on_stream_error=self.errors.append,
            on_completion=self.completions.append,
            on_stream_close=self.closed.append,
        )

    def _open(self) -> None:
        self.opened += 1

    @property
    def visible_text(self) -> str:
        return "".join(self.text)

    @property
    def thinking_text(self) -> str:
        return "".join(self.thinking)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
