"""
Capture primitives: intercept a pending signal at a function boundary.

A capture must directly wrap the region that may signal, either as a
``with`` block or as a decorator around the whole function. Only that
capture observes the abort; a capture created elsewhere (for example inside
a helper that returns before the signal happens) sees nothing and the
signal keeps unwinding.

Variants
--------
- log(): write a record, swallow the failure.
- log_err(): as log(), and fill an ErrorSlot with the classified error.
- log_setting_returns(): as log_err(), and call a fallback setter on capture.
- custom_capture(): hand the raw payload and the locked destination to a handler.
- guard() / recovers(): call-site and decorator forms returning a default.
"""

from __future__ import annotations

import functools
import logging
from types import TracebackType
from typing import IO, Any, Callable, Optional, TypeVar, cast

from .labels import FUNCTION_NOT_FOUND, resolve_label
from .sink import SharedSink, default_sink
from .types import CapturedFailure, CaptureResult, ErrorSlot, Panic, UntypedPanic

T = TypeVar("T")

logger = logging.getLogger("die")

CustomHandler = Callable[[Any, IO[Any]], None]


def classify(payload: Any) -> tuple[CaptureResult, Optional[BaseException]]:
    """
    Classify an intercepted payload.

    Returns
    -------
    result, err
        ``(NONE, None)`` for ``None``; ``(TYPED_ERROR, payload)`` when the
        payload is already an exception; otherwise ``(OTHER, UntypedPanic)``
        whose message is ``"Error: <payload>"``.
    """
    if payload is None:
        return CaptureResult.NONE, None
    if isinstance(payload, BaseException):
        return CaptureResult.TYPED_ERROR, payload
    return CaptureResult.OTHER, UntypedPanic(payload)


def payload_of(exc: Optional[BaseException]) -> Any:
    """Return what a capture intercepts from ``exc``, or ``None`` to let it pass."""
    if exc is None:
        return None
    if isinstance(exc, Panic):
        return exc.payload
    if isinstance(exc, Exception):
        return exc
    # KeyboardInterrupt, SystemExit, GeneratorExit
    return None


def format_record(label: str, value: Any) -> str:
    return f"Panic caught in func: {label}, err: {value}\n"


class Capture:
    """
    Context manager intercepting a signal raised inside its block.

    Parameters
    ----------
    label
        Name written in the record. Defaults to the function running the
        ``with`` statement.
    sink
        Shared sink receiving the record; the process-wide sink by default.
    err_out
        Slot to fill on capture. A fresh one is created when omitted.
    set_returns
        Zero-argument callback run only when something was captured.
    fill_slot
        When False the slot is left untouched and ``with`` binds ``None``.

    Usage example
    -------------
        with Capture("load") as slot:
            on_err(fetch())
        if slot.err is not None:
            ...
    """

    def __init__(
        self,
        label: Optional[str] = None,
        *,
        sink: Optional[SharedSink] = None,
        err_out: Optional[ErrorSlot] = None,
        set_returns: Optional[Callable[[], Any]] = None,
        fill_slot: bool = True,
    ) -> None:
        self._label = label
        self._sink = sink
        self._set_returns = set_returns
        self._fill_slot = fill_slot
        self.slot = err_out if err_out is not None else ErrorSlot()
        self.label: str = label or FUNCTION_NOT_FOUND

    def __enter__(self) -> Optional[ErrorSlot]:
        self.label = resolve_label(self._label, depth=1)
        return self.slot if self._fill_slot else None

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        payload = payload_of(exc)
        if payload is None:
            if self._fill_slot:
                self.slot.err = None
                self.slot.result = CaptureResult.NONE
                self.slot.label = None
                self.slot.failure = None
            return False

        result, classified = classify(payload)
        err = cast(BaseException, classified)
        ordinal = self._ordinal(exc)
        label = self._record_label()

        self._emit(label, payload)
        logger.debug(
            "Captured %s signal in %s: %s",
            result.value,
            label,
            err,
            extra={"label": label, "ordinal": ordinal},
        )

        if self._fill_slot:
            self.slot.err = err
            self.slot.result = result
            self.slot.label = label
            self.slot.failure = CapturedFailure.from_exception(
                label=label, exc=err, ordinal=ordinal, origin=exc
            )
        if self._set_returns is not None:
            self._set_returns()
        return True

    def _record_label(self) -> str:
        return self.label

    def _ordinal(self, exc: Optional[BaseException]) -> Optional[int]:
        return getattr(exc, "ordinal", None)

    def _emit(self, label: str, payload: Any) -> None:
        sink = self._sink if self._sink is not None else default_sink()
        sink.write_record(format_record(label, payload))


class CustomCapture(Capture):
    """Capture that delegates the record to a caller-supplied handler."""

    def __init__(self, handler: CustomHandler, *, sink: Optional[SharedSink] = None) -> None:
        super().__init__(None, sink=sink, fill_slot=False)
        self._handler = handler

    def _emit(self, label: str, payload: Any) -> None:
        sink = self._sink if self._sink is not None else default_sink()
        with sink.locked() as stream:
            self._handler(payload, stream)


def log(label: Optional[str] = None, *, sink: Optional[SharedSink] = None) -> Capture:
    """
    Log a signal raised inside the block and swallow it.

    Usage example
    -------------
        def refresh():
            with log("refresh"):
                on_err(pull())
    """
    return Capture(label, sink=sink, fill_slot=False)


def log_err(
    label: Optional[str] = None,
    err_out: Optional[ErrorSlot] = None,
    *,
    sink: Optional[SharedSink] = None,
) -> Capture:
    """
    Like :func:`log`, and expose the classified error through a slot.

    Usage example
    -------------
        def refresh() -> Optional[BaseException]:
            with log_err("refresh") as slot:
                on_err(pull())
            return slot.err
    """
    return Capture(label, sink=sink, err_out=err_out)


def log_setting_returns(
    label: Optional[str] = None,
    err_out: Optional[ErrorSlot] = None,
    set_returns: Optional[Callable[[], Any]] = None,
    *,
    sink: Optional[SharedSink] = None,
) -> Capture:
    """
    Like :func:`log_err`; ``set_returns`` runs only when a signal was captured.

    Usage example
    -------------
        value = 0
        def fallback():
            nonlocal value
            value = -1

        with log_setting_returns("count", set_returns=fallback):
            value = count_rows()
    """
    return Capture(label, sink=sink, err_out=err_out, set_returns=set_returns)


def custom_capture(handler: CustomHandler, *, sink: Optional[SharedSink] = None) -> CustomCapture:
    """
    Hand the raw payload and the locked destination to ``handler``.

    Prefer :func:`log` and friends; this exists for records they cannot express.
    """
    return CustomCapture(handler, sink=sink)


def guard(
    label: Optional[str],
    fn: Callable[[], T],
    *,
    default: Optional[T] = None,
    sink: Optional[SharedSink] = None,
) -> Optional[T]:
    """
    Call ``fn`` under :func:`log_err`.

    Returns
    -------
    value
        The callable result on success; otherwise `default`.

    Usage example
    -------------
        rows = guard("load_rows", lambda: load_rows(path), default=[])
    """
    name = label or getattr(fn, "__qualname__", None) or FUNCTION_NOT_FOUND
    with log_err(name, sink=sink):
        return fn()
    return default


def recovers(
    label: Optional[str] = None,
    *,
    default: Any = None,
    set_returns: Optional[Callable[[], Any]] = None,
    sink: Optional[SharedSink] = None,
) -> Callable[[Callable[..., T]], Callable[..., Any]]:
    """
    Decorator placing the whole function body under one capture.

    On capture the wrapper returns ``set_returns()`` when given, else
    ``default``.

    Usage example
    -------------
        @recovers(default=0)
        def parse_port(text: str) -> int:
            port, err = to_int(text)
            on_err(err)
            return port
    """

    def decorate(fn: Callable[..., T]) -> Callable[..., Any]:
        name = label or fn.__qualname__

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with Capture(name, sink=sink, fill_slot=False):
                return fn(*args, **kwargs)
            return set_returns() if set_returns is not None else default

        return wrapper

    return decorate
