from __future__ import annotations


class CharaStreamError(Exception):
    """Base exception for this project."""


class ConfigError(CharaStreamError):
    """Raised when configuration is invalid or incomplete."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class StreamLineError(CharaStreamError):
    """A single protocol line could not be turned into an event.

    Always recoverable: the decoder logs it and moves on to the next line.
    """

    def __init__(self, message: str, *, line: str, part_type: str | None = None):
        super().__init__(message)
        self.line = line
        self.part_type = part_type


class MalformedLineError(StreamLineError):
    """Line framing or payload shape is invalid."""


class UnknownPartTypeError(StreamLineError):
    """The line's type discriminator is not one we decode."""


class SegmentBuilderClosedError(CharaStreamError):
    """Raised when a finalized SegmentBuilder is mutated."""


class StreamAborted(CharaStreamError):
    """Raised by a transport when the caller aborted the stream."""
