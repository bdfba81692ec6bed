"""Thinking-annotation handling for streamed text.

Models may wrap private reasoning in `<think>...</think>` (or `<thinking>`)
markers inside ordinary text deltas. Markers can be malformed (missing `>`,
extra attributes or whitespace, any letter case) and a marker can be split
across two deltas.

The scanner is a pure function over an explicit `ThinkingState` so it can be
driven delta-by-delta in tests without a live stream.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import NamedTuple


# Longest attribute span accepted inside a marker.
MAX_MARKER_ATTR_CHARS = 64

# Well-formed and malformed markers: <think>, </thinking>, <thinking foo="bar">,
# any case. Attributes stay on the marker's line and never contain "<".
# Without a closing ">" on that line the marker is the bare name
# ("</think" in "</think\n\nanswer"); what follows is ordinary text.
THINKING_TAG_RE = re.compile(
    rf"</?think(?:ing)?(?:[ \t][^<>\n]{{0,{MAX_MARKER_ATTR_CHARS}}}>|>)?",
    re.IGNORECASE,
)

# A marker that may still be completed by the next delta: any prefix of
# "<think"/"<thinking"/"</think"/"</thinking", or a full name followed by
# same-line attributes with no ">" yet. Anchored at the end of the text, so
# a newline after the name ends the candidate.
_PARTIAL_TAG_RE = re.compile(
    r"<(?:/?(?:t(?:h(?:i(?:n(?:k(?:i(?:n(?:g)?)?)?)?)?)?)?)?)?$"
    rf"|</?think(?:ing)?[ \t][^<>\n]{{0,{MAX_MARKER_ATTR_CHARS}}}$",
    re.IGNORECASE,
)

_THINKING_BLOCK_RE = re.compile(
    r"<think(?:ing)?\s*>([^<]*(?:<(?!/think(?:ing)?>)[^<]*)*)</think(?:ing)?\s*>",
    re.IGNORECASE,
)


class Channel(str, Enum):
    VISIBLE = "visible"
    THINKING = "thinking"


class Emission(NamedTuple):
    channel: Channel
    text: str


@dataclass(frozen=True, slots=True)
class ThinkingState:
    is_thinking: bool = False
    carry: str = ""


def is_closing_marker(marker: str) -> bool:
    return marker.lstrip().startswith("</")


def split_partial_marker(text: str) -> tuple[str, str]:
    """Split `text` into (complete part, trailing possibly-incomplete marker).

    Only the leftmost trailing candidate is held back; see the note on two
    incomplete markers in one delta in DESIGN.md.
    """

    m = _PARTIAL_TAG_RE.search(text)
    if m is None:
        return text, ""
    return text[: m.start()], text[m.start():]


def scan_thinking_tags(
    state: ThinkingState,
    text: str,
    *,
    final: bool = False,
) -> tuple[ThinkingState, list[Emission]]:
    """Route `text` to the visible or thinking channel.

    Args:
        state: scanner state carried from the previous delta.
        text: the new raw delta (may be empty when flushing).
        final: no more text will follow, so nothing is held back.

    Returns:
        (new state, emissions in order). Adjacent emissions never share a
        channel; empty spans are not emitted.
    """

    buffer = state.carry + text
    if final:
        to_scan, carry = buffer, ""
    else:
        to_scan, carry = split_partial_marker(buffer)

    is_thinking = state.is_thinking
    emissions: list[Emission] = []

    def emit(span: str) -> None:
        if not span:
            return
        channel = Channel.THINKING if is_thinking else Channel.VISIBLE
        if emissions and emissions[-1].channel is channel:
            emissions[-1] = Emission(channel, emissions[-1].text + span)
        else:
            emissions.append(Emission(channel, span))

    pos = 0
    for match in THINKING_TAG_RE.finditer(to_scan):
        emit(to_scan[pos:match.start()])
        is_thinking = not is_closing_marker(match.group(0))
        pos = match.end()
    emit(to_scan[pos:])

    return replace(state, is_thinking=is_thinking, carry=carry), emissions


class ThinkingTagFilter:
    """Stateful wrapper around `scan_thinking_tags` for one decode session."""

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled
        self._state = ThinkingState()

    @property
    def state(self) -> ThinkingState:
        return self._state

    @property
    def is_thinking(self) -> bool:
        return self._state.is_thinking

    @property
    def carry(self) -> str:
        return self._state.carry

    def feed(self, text: str) -> list[Emission]:
        if not self._enabled:
            return [Emission(Channel.VISIBLE, text)] if text else []
        self._state, emissions = scan_thinking_tags(self._state, text)
        return emissions

    def flush(self) -> list[Emission]:
        """Release a held-back fragment, treating it as complete."""

        if not self._state.carry:
            return []
        self._state, emissions = scan_thinking_tags(self._state, "", final=True)
        return emissions


def clean_thinking_tags(text: str) -> str:
    """Remove all thinking markers (content kept) and trim the result.

    >>> clean_thinking_tags("Some text <thinking>hidden</thinking> visible </think>")
    'Some text hidden visible'
    """

    if not text:
        return text
    return THINKING_TAG_RE.sub("", text).strip()


def contains_thinking_tags(text: str) -> bool:
    if not text:
        return False
    return THINKING_TAG_RE.search(text) is not None


def extract_thinking_content(text: str) -> list[str]:
    """Contents of well-formed thinking blocks, stripped, in order."""

    if not text:
        return []
    return [m.group(1).strip() for m in _THINKING_BLOCK_RE.finditer(text) if m.group(1)]
