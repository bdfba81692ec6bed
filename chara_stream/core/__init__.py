from __future__ import annotations

from .clock import utc_timestamp
from .errors import (
    CharaStreamError,
    ConfigError,
    MalformedLineError,
    SegmentBuilderClosedError,
    StreamAborted,
    StreamLineError,
    UnknownPartTypeError,
)

__all__ = [
    "CharaStreamError",
    "ConfigError",
    "MalformedLineError",
    "SegmentBuilderClosedError",
    "StreamAborted",
    "StreamLineError",
    "UnknownPartTypeError",
    "utc_timestamp",
]
