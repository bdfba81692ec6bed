from __future__ import annotations

from .context import add_error, bind_stream, set_state
from .logging import configure_logging, get_logger

__all__ = ["add_error", "bind_stream", "configure_logging", "get_logger", "set_state"]
