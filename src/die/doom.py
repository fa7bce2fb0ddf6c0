"""
Doom contexts: per-call capture with a failure-point ordinal.

A DoomContext belongs to one function call on one thread. Every guarded
check bumps its ordinal, so the single capture at the end of the function
can report which check failed. It writes to its own stream without taking
any lock; sharing one context between threads is a bug, and is rejected
at runtime unless ``check_owner=False`` or Python runs with ``-O``.
"""

from __future__ import annotations

import functools
import sys
import threading
from types import TracebackType
from typing import IO, Any, Callable, Optional, TypeVar

from .capture import Capture, payload_of
from .labels import resolve_label
from .signals import abort
from .sink import write_line
from .types import DoomContextError, DoomState, ErrorSlot

T = TypeVar("T")


def format_doom_record(label: str, ordinal: int, value: Any) -> str:
    return f"Panic caught in func: {label}  at failure point {ordinal}, err: {value}\n"


class DoomContext:
    """
    Single-owner tracker attaching a label and an ordinal to captured signals.

    Parameters
    ----------
    label
        Name of the traced function. Defaults to the function creating the context.
    stream
        Destination for records. Defaults to the current ``sys.stdout``; it is
        never the shared sink.
    check_owner
        Reject use from any thread other than the creating one.

    Usage example
    -------------
        def sync_all(items):
            dc = DoomContext("sync_all")
            with dc.capture_err() as slot:
                dc.on_err(connect())
                for item in items:
                    dc.on_err_at(push(item), 10)
            return slot.err
    """

    def __init__(
        self,
        label: Optional[str] = None,
        *,
        stream: Optional[IO[Any]] = None,
        check_owner: bool = True,
    ) -> None:
        self.label = resolve_label(label, depth=1)
        self.calls = 0
        self.state = DoomState.CREATED
        self._stream = stream
        self._check_owner = check_owner
        self._owner = threading.get_ident()
        self._armed = False

    @property
    def stream(self) -> IO[Any]:
        return self._stream if self._stream is not None else sys.stdout

    def set_stream(self, stream: Optional[IO[Any]]) -> None:
        """Replace this context's destination. No lock is taken."""
        self._assert_owner()
        self._stream = stream

    def on_err(self, err: Optional[BaseException]) -> None:
        """Count one guarded check, then abort if ``err`` is not ``None``."""
        self._assert_usable()
        self.calls += 1
        if err is not None:
            abort(err, self.label, self.calls)

    def on_err_at(self, err: Optional[BaseException], ordinal: int) -> None:
        """Set the ordinal to ``ordinal``, then abort if ``err`` is not ``None``."""
        self._assert_usable()
        self.calls = ordinal
        if err is not None:
            abort(err, self.label, self.calls)

    def capture(self) -> "DoomCapture":
        return DoomCapture(self, fill_slot=False)

    def capture_err(self, label: Optional[str] = None, err_out: Optional[ErrorSlot] = None) -> "DoomCapture":
        return DoomCapture(self, label, err_out=err_out)

    def capture_setting_returns(
        self,
        label: Optional[str] = None,
        set_returns: Optional[Callable[[], Any]] = None,
    ) -> "DoomCapture":
        return DoomCapture(self, label, set_returns=set_returns)

    def _assert_owner(self) -> None:
        if __debug__ and self._check_owner and threading.get_ident() != self._owner:
            raise DoomContextError(
                f"DoomContext '{self.label}' used from a thread that does not own it"
            )

    def _assert_usable(self) -> None:
        self._assert_owner()
        if self.state != DoomState.CREATED:
            raise DoomContextError(f"DoomContext '{self.label}' was already {self.state.value}")

    def _arm(self) -> None:
        self._assert_usable()
        if self._armed:
            raise DoomContextError(f"DoomContext '{self.label}' already has a capture")
        self._armed = True

    def __repr__(self) -> str:
        return f"DoomContext(label={self.label!r}, calls={self.calls}, state={self.state.value})"


class DoomCapture(Capture):
    """Capture writing doom records to its context's own stream."""

    def __init__(
        self,
        ctx: DoomContext,
        label: Optional[str] = None,
        *,
        err_out: Optional[ErrorSlot] = None,
        set_returns: Optional[Callable[[], Any]] = None,
        fill_slot: bool = True,
    ) -> None:
        super().__init__(label or ctx.label, err_out=err_out, set_returns=set_returns, fill_slot=fill_slot)
        self._ctx = ctx

    def __enter__(self) -> Optional[ErrorSlot]:
        self._ctx._arm()
        return self.slot if self._fill_slot else None

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        captured = False
        try:
            captured = super().__exit__(exc_type, exc, tb)
        finally:
            self._ctx._armed = False
            intercepted = captured or payload_of(exc) is not None
            self._ctx.state = DoomState.CAPTURED if intercepted else DoomState.CLEAN
        return captured

    def _ordinal(self, exc: Optional[BaseException]) -> Optional[int]:
        return self._ctx.calls

    def _emit(self, label: str, payload: Any) -> None:
        write_line(self._ctx.stream, format_doom_record(label, self._ctx.calls, payload))


def traced(
    label: Optional[str] = None,
    *,
    default: Any = None,
    set_returns: Optional[Callable[[], Any]] = None,
    stream: Optional[IO[Any]] = None,
) -> Callable[[Callable[..., T]], Callable[..., Any]]:
    """
    Decorator giving each call a fresh DoomContext as its first argument.

    The whole body runs under the context's capture. On capture the wrapper
    returns ``set_returns()`` when given, else ``default``.

    Usage example
    -------------
        @traced(default=[])
        def load(dc: DoomContext, path: str) -> list[str]:
            text, err = read(path)
            dc.on_err(err)
            rows, err = parse(text)
            dc.on_err(err)
            return rows
    """

    def decorate(fn: Callable[..., T]) -> Callable[..., Any]:
        name = label or fn.__qualname__

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            dc = DoomContext(name, stream=stream)
            with dc.capture():
                return fn(dc, *args, **kwargs)
            return set_returns() if set_returns is not None else default

        return wrapper

    return decorate
