"""Decode loops over a transport's chunk stream.

The transport (HTTP request, retries, auth) belongs to the caller, which also
owns the abort signal: anything with `is_set() -> bool`, typically an
`asyncio.Event` (or a `threading.Event` for the synchronous loop).

Cancellation is cooperative. The signal is checked before each read and after
each chunk's lines are applied; on abort, lines still buffered are dropped but
the session is always finalized so no tool call is left open.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterable, Iterable, Protocol

from chara_stream.callbacks import StreamCallbacks
from chara_stream.config.model import DecoderConfig
from chara_stream.core.clock import monotonic_ms
from chara_stream.core.errors import StreamAborted
from chara_stream.observability.logging import get_logger
from chara_stream.segments.types import Segment
from chara_stream.session import DecoderSession


logger = get_logger(__name__)

Chunk = bytes | bytearray | str


class AbortSignal(Protocol):
    def is_set(self) -> bool: ...


def _is_aborted(abort: AbortSignal | None) -> bool:
    return abort is not None and abort.is_set()


async def process_chat_stream(
    chunks: AsyncIterable[Chunk],
    callbacks: StreamCallbacks | None = None,
    *,
    abort: AbortSignal | None = None,
    config: DecoderConfig | None = None,
    session: DecoderSession | None = None,
) -> list[Segment]:
    """Consume `chunks` until exhausted or aborted; return the final segments.

    Pass either `callbacks`/`config` (a session is built from them) or a
    prepared `session`, which already carries its own callbacks and config.

    Errors:
        - `ValueError` when `session` is combined with `callbacks` or `config`.
        - `StreamAborted` from the transport is reported as an abort.
        - `asyncio.CancelledError` is reported as an abort and re-raised.
        - Any other exception goes to `on_stream_error`, then
          `on_stream_close(False)`, and is re-raised.
    """

    if session is None:
        session = DecoderSession(callbacks, config=config)
    elif callbacks is not None or config is not None:
        raise ValueError("pass callbacks/config or a session, not both")
    session.open()
    started_ms = monotonic_ms()

    iterator = aiter(chunks)
    aborted = False
    chunk_count = 0
    try:
        while True:
            if _is_aborted(abort):
                aborted = True
                break
            try:
                chunk = await anext(iterator)
            except StopAsyncIteration:
                break

            chunk_count += 1
            session.feed(chunk)

            if _is_aborted(abort):
                aborted = True
                break
    except StreamAborted:
        aborted = True
    except asyncio.CancelledError:
        aborted = True
        logger.info("stream_cancelled", chunks=chunk_count)
        session.close(aborted=True)
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("stream_failed", chunks=chunk_count, error=str(e))
        session.fail(str(e) or type(e).__name__)
        session.close(aborted=False)
        raise
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aborted and aclose is not None:
            await aclose()

    if aborted:
        logger.info("stream_aborted", chunks=chunk_count)

    segments = session.close(aborted=aborted)
    logger.info(
        "stream_complete",
        chunks=chunk_count,
        aborted=aborted,
        latency_ms=monotonic_ms() - started_ms,
    )
    return segments


def decode_stream(
    chunks: Iterable[Chunk],
    callbacks: StreamCallbacks | None = None,
    *,
    abort: AbortSignal | None = None,
    config: DecoderConfig | None = None,
) -> list[Segment]:
    """Synchronous counterpart of `process_chat_stream` for buffered input."""

    session = DecoderSession(callbacks, config=config)
    session.open()

    aborted = False
    try:
        for chunk in chunks:
            if _is_aborted(abort):
                aborted = True
                break
            session.feed(chunk)
            if _is_aborted(abort):
                aborted = True
                break
    except StreamAborted:
        aborted = True
    except Exception as e:  # noqa: BLE001
        logger.exception("stream_failed", error=str(e))
        session.fail(str(e) or type(e).__name__)
        session.close(aborted=False)
        raise

    return session.close(aborted=aborted)
