"""Best-effort parsing of streamed (possibly truncated) JSON argument text.

Streamed tool-call arguments are expected to be invalid JSON until the last
fragment arrives. Callers keep the last successfully parsed value when a parse
fails; nothing here raises.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class JsonParseResult:
    ok: bool
    value: Any = None
    error: str | None = None
    repaired: bool = False


@dataclass(slots=True)
class _ScanResult:
    closers: str
    in_string: bool
    dangling_escape: bool
    # Start offset of the last string literal that sits in key position.
    last_key_start: int | None


def _scan(text: str) -> _ScanResult:
    stack: list[str] = []
    in_string = False
    escape = False
    string_start = 0
    last_key_start: int | None = None
    prev_significant = ""

    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
                prev_significant = '"'
            continue

        if ch == '"':
            in_string = True
            string_start = i
            is_key = bool(stack) and stack[-1] == "}" and prev_significant in {"{", ","}
            last_key_start = i if is_key else None
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
            prev_significant = ch
            last_key_start = None
        elif ch in "}]":
            if stack:
                stack.pop()
            prev_significant = ch
            last_key_start = None
        elif not ch.isspace():
            prev_significant = ch
            if ch != ":":
                last_key_start = None

    if in_string:
        is_key = bool(stack) and stack[-1] == "}" and last_key_start == string_start
        last_key_start = string_start if is_key else None

    return _ScanResult(
        closers="".join(reversed(stack)),
        in_string=in_string,
        dangling_escape=escape,
        last_key_start=last_key_start,
    )


def _candidates(text: str) -> list[str]:
    scan = _scan(text)
    if not scan.closers and not scan.in_string:
        return []

    body = text
    if scan.in_string:
        if scan.dangling_escape:
            body = body[:-1]
        body += '"'

    trimmed = body.rstrip()
    out: list[str] = [trimmed + scan.closers]

    if trimmed.endswith(","):
        out.append(trimmed[:-1] + scan.closers)
    if trimmed.endswith(":"):
        out.append(trimmed + " null" + scan.closers)

    # Drop a dangling object key ("...", "ke  /  ..., "key":) entirely.
    if scan.last_key_start is not None:
        head = text[: scan.last_key_start].rstrip()
        if head.endswith(","):
            head = head[:-1]
        out.append(head + scan.closers)

    return out


def complete_partial_json(text: str) -> str | None:
    """Return a parseable completion of truncated JSON, or None."""

    for candidate in _candidates(text):
        try:
            json.loads(candidate)
        except json.JSONDecodeError:
            continue
        return candidate
    return None


def parse_streaming_json(text: str) -> JsonParseResult:
    """Parse JSON that may be cut off mid-stream.

    Tries, in order: the text as-is, the simple closing-bracket repair for a
    lone unterminated object/array, then a structural completion (close open
    strings and brackets, drop a dangling key or comma).
    """

    if not text or not text.strip():
        return JsonParseResult(ok=False, error="empty")

    try:
        return JsonParseResult(ok=True, value=json.loads(text))
    except json.JSONDecodeError as e:
        first_error = f"{e.msg} (pos={e.pos})"

    stripped = text.strip()
    for opener, closer in (("{", "}"), ("[", "]")):
        if stripped.startswith(opener) and not stripped.endswith(closer):
            try:
                return JsonParseResult(ok=True, value=json.loads(stripped + closer), repaired=True)
            except json.JSONDecodeError:
                pass

    completed = complete_partial_json(text)
    if completed is not None:
        return JsonParseResult(ok=True, value=json.loads(completed), repaired=True)

    return JsonParseResult(ok=False, error=first_error)
