from __future__ import annotations

from .thinking_tags import (
    THINKING_TAG_RE,
    Channel,
    Emission,
    ThinkingState,
    ThinkingTagFilter,
    clean_thinking_tags,
    contains_thinking_tags,
    extract_thinking_content,
    scan_thinking_tags,
)

__all__ = [
    "THINKING_TAG_RE",
    "Channel",
    "Emission",
    "ThinkingState",
    "ThinkingTagFilter",
    "clean_thinking_tags",
    "contains_thinking_tags",
    "extract_thinking_content",
    "scan_thinking_tags",
]
