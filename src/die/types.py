from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
import traceback as _traceback


class CaptureResult(str, Enum):
    """Classification of an intercepted signal."""
    NONE = "none"
    TYPED_ERROR = "typed-error"
    OTHER = "other"


class DoomState(str, Enum):
    """Lifecycle of a doom context."""
    CREATED = "created"
    CAPTURED = "captured"
    CLEAN = "clean"


class Panic(BaseException):
    """
    Non-local abort raised by the signal primitives.

    Derives from ``BaseException`` so that intermediate ``except Exception``
    clauses do not intercept it; only a capture (or an explicit
    ``except Panic``) stops the unwind.

    Usage example
    -------------
        try:
            on_err(ValueError("nope"), label="load")
        except Panic as p:
            assert str(p) == "Error in function: load; Details: nope"
    """

    def __init__(self, payload: Any, label: str, ordinal: Optional[int] = None) -> None:
        super().__init__(f"Error in function: {label}; Details: {payload}")
        self.payload = payload
        self.label = label
        self.ordinal = ordinal


class UntypedPanic(Exception):
    """Error wrapping a signalled payload that was not itself an exception."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"Error: {value}")
        self.value = value


class ChaosError(Exception):
    """Error fabricated by the chaos injector."""


class DoomContextError(RuntimeError):
    """Raised when a doom context is shared across threads or reused."""


@dataclass(frozen=True)
class CapturedFailure:
    """
    Details of a captured failure, kept on the output slot.

    Usage example
    -------------
        rec = CapturedFailure.from_exception(label="parse", exc=ValueError("boom"))
    """
    label: str
    message: str
    exc_type: str
    traceback: Optional[str] = None
    ordinal: Optional[int] = None

    @staticmethod
    def from_exception(
        *,
        label: str,
        exc: BaseException,
        ordinal: Optional[int] = None,
        origin: Optional[BaseException] = None,
    ) -> "CapturedFailure":
        # `origin` is the exception that actually unwound; its traceback is the useful one
        src = origin if origin is not None else exc
        tb = "".join(_traceback.format_exception(type(src), src, src.__traceback__))
        return CapturedFailure(
            label=label,
            message=str(exc),
            exc_type=type(exc).__name__,
            traceback=tb,
            ordinal=ordinal,
        )


@dataclass
class ErrorSlot:
    """
    Output slot a capture fills when it intercepts a signal.

    ``err`` stays ``None`` and ``result`` stays ``CaptureResult.NONE`` when the
    guarded block finished normally.
    """
    err: Optional[BaseException] = None
    result: CaptureResult = CaptureResult.NONE
    label: Optional[str] = None
    failure: Optional[CapturedFailure] = None

    def __bool__(self) -> bool:
        return self.result != CaptureResult.NONE
