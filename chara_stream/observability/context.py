from __future__ import annotations

from contextvars import ContextVar


_stream_id: ContextVar[str | None] = ContextVar("stream_id", default=None)
_state: ContextVar[str | None] = ContextVar("state", default=None)
_errors: ContextVar[list[str] | None] = ContextVar("errors", default=None)


def bind_stream(*, stream_id: str) -> None:
    _stream_id.set(stream_id)
    _state.set(None)
    _errors.set([])


def set_state(state: str) -> None:
    _state.set(state)


def add_error(message: str) -> None:
    errs = list(_errors.get() or [])
    errs.append(message)
    _errors.set(errs)


def snapshot() -> dict[str, object]:
    """Return a snapshot of current observability context for logging."""

    out: dict[str, object] = {}
    if (v := _stream_id.get()) is not None:
        out["stream_id"] = v
    if (v := _state.get()) is not None:
        out["state"] = v
    out["errors"] = list(_errors.get() or [])
    return out
