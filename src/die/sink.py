"""Lock-guarded destination for process-wide capture records."""

from __future__ import annotations

import io
import logging
import sys
import threading
from contextlib import contextmanager
from typing import IO, Any, Iterator, Optional

logger = logging.getLogger("die")


def write_line(stream: IO[Any], line: str) -> None:
    """
    Write ``line`` to a text or binary stream and flush it.

    Binary destinations receive UTF-8 bytes. Destination failures are logged
    at DEBUG and dropped; records are best effort.
    """
    try:
        if isinstance(stream, io.TextIOBase):
            stream.write(line)
        else:
            try:
                stream.write(line.encode("utf-8"))
            except TypeError:
                stream.write(line)
        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()
    except Exception as exc:
        logger.debug("Dropped record (%s): %s", type(exc).__name__, line.rstrip("\n"))


class SharedSink:
    """
    One writable destination shared by every thread that captures through it.

    Reads and replacements of the destination, and each record write, happen
    under a single lock so concurrent records never interleave. When no
    destination was set, the interpreter's current ``sys.stdout`` is used.

    Usage example
    -------------
        buf = io.StringIO()
        sink = SharedSink(buf)
        sink.write_record("Panic caught in func: load, err: boom\\n")
    """

    def __init__(self, stream: Optional[IO[Any]] = None) -> None:
        self._lock = threading.Lock()
        self._stream = stream

    def _current(self) -> IO[Any]:
        return self._stream if self._stream is not None else sys.stdout

    @property
    def stream(self) -> IO[Any]:
        with self._lock:
            return self._current()

    def set_stream(self, stream: Optional[IO[Any]]) -> None:
        """Replace the destination; ``None`` goes back to ``sys.stdout``."""
        with self._lock:
            self._stream = stream

    def write_record(self, line: str) -> None:
        with self._lock:
            write_line(self._current(), line)

    @contextmanager
    def locked(self) -> Iterator[IO[Any]]:
        """Hold the lock and yield the destination."""
        with self._lock:
            yield self._current()


_default_sink = SharedSink()


def default_sink() -> SharedSink:
    """Return the process-wide sink used when a capture is given none."""
    return _default_sink


def set_sink(stream: Optional[IO[Any]]) -> None:
    """Point the process-wide sink at ``stream``."""
    _default_sink.set_stream(stream)
