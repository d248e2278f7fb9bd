"""Client-side reassembly of newline-delimited frames from a byte stream."""

from __future__ import annotations

import codecs
import logging
import threading
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from frames import AnswerFrame, ErrorFrame, Frame, FrameError, PapersFrame, decode_frame

if TYPE_CHECKING:
    from session import SearchSession

LOGGER = logging.getLogger(__name__)


class CancelToken:
    """Owned cancellation flag for one pipeline run.

    Abort callbacks (typically closing the HTTP response) run once, on the
    thread that calls cancel().
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                LOGGER.warning("Abort callback failed during cancel: %s", exc)

    def add_abort_callback(self, callback: Callable[[], None]) -> None:
        """Register callback; runs immediately if the token is already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()


class FrameBuffer:
    """Decode buffer holding bytes that do not yet form a complete line."""

    def __init__(self) -> None:
        # Multibyte UTF-8 sequences may straddle chunk boundaries too.
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: bytes) -> list[Frame]:
        """Append a chunk and return every frame completed by it."""
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        return _parse_lines(lines)

    def close(self) -> list[Frame]:
        """End of input: one last parse attempt on any non-blank residue."""
        residue = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if not residue.strip():
            return []
        return _parse_lines([residue])


def _parse_lines(lines: Iterable[str]) -> list[Frame]:
    frames: list[Frame] = []
    for line in lines:
        if not line.strip():
            continue
        try:
            frames.append(decode_frame(line))
        except FrameError as exc:
            LOGGER.warning("Dropping malformed frame %r: %s", line[:200], exc)
    return frames


def apply_frame(session: SearchSession, frame: Frame) -> None:
    """Fold one frame into session state."""
    if isinstance(frame, PapersFrame):
        session.papers = list(frame.content)
    elif isinstance(frame, AnswerFrame):
        session.accumulated_answer += frame.content
        if frame.done:
            session.stream_complete = True
    elif isinstance(frame, ErrorFrame):
        session.error = frame.content


def consume_stream(
    chunks: Iterable[bytes],
    dispatch: Callable[[Frame], object],
    token: CancelToken | None = None,
) -> int:
    """Drive a FrameBuffer over chunks, dispatching each frame in order.

    Stops before the next dispatch once token is cancelled. Returns the
    number of frames dispatched.
    """
    buffer = FrameBuffer()
    dispatched = 0

    def _cancelled() -> bool:
        return token is not None and token.cancelled

    for chunk in chunks:
        if _cancelled():
            return dispatched
        for frame in buffer.feed(chunk):
            if _cancelled():
                return dispatched
            dispatch(frame)
            dispatched += 1

    for frame in buffer.close():
        if _cancelled():
            return dispatched
        dispatch(frame)
        dispatched += 1
    return dispatched
