from __future__ import annotations

import codecs


class LineFramer:
    """Split a chunked byte/text stream into protocol lines.

    Transport chunks may end anywhere: mid-line, or for byte input mid
    UTF-8 sequence. The incomplete tail is held back until the next chunk
    (or `close()`).
    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._closed = False

    @property
    def pending(self) -> str:
        """Text held back waiting for a line terminator."""

        return self._buffer

    def feed(self, chunk: bytes | bytearray | str) -> list[str]:
        if self._closed:
            raise ValueError("LineFramer is closed")

        if isinstance(chunk, (bytes, bytearray)):
            text = self._decoder.decode(bytes(chunk))
        else:
            text = chunk
        if not text:
            return []

        self._buffer += text
        parts = self._buffer.split("\n")
        self._buffer = parts.pop()
        return _non_blank(parts)

    def close(self) -> list[str]:
        """Flush the held-back tail as a final line."""

        if self._closed:
            return []
        self._closed = True

        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return _non_blank([tail])

    def discard(self) -> None:
        """Drop anything buffered without emitting it (aborted streams)."""

        self._buffer = ""
        self._decoder.reset()
        self._closed = True


def _non_blank(parts: list[str]) -> list[str]:
    lines: list[str] = []
    for part in parts:
        if part.endswith("\r"):
            part = part[:-1]
        if part.strip():
            lines.append(part)
    return lines
