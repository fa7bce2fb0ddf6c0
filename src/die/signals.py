"""Signal primitives: turn an error value into a non-local abort."""

from __future__ import annotations

from typing import Any, NoReturn, Optional

from .labels import resolve_label
from .types import Panic


def abort(payload: Any, label: str, ordinal: Optional[int] = None) -> NoReturn:
    """Raise :class:`Panic` for ``payload``, chaining it when it is an exception."""
    signal = Panic(payload, label, ordinal)
    if isinstance(payload, BaseException):
        raise signal from payload
    raise signal


def on_err(err: Optional[BaseException], label: Optional[str] = None) -> None:
    """
    Abort to the nearest capture if ``err`` is not ``None``.

    Parameters
    ----------
    err
        Error returned by the previous statement, or ``None``.
    label
        Name for the failing function. Defaults to the caller's name.

    Usage example
    -------------
        with log("load"):
            data, err = read_blob(path)
            on_err(err)
    """
    if err is None:
        return
    abort(err, resolve_label(label, depth=1))


def panic(value: Any, label: Optional[str] = None) -> None:
    """Like :func:`on_err`, but for a payload of any type."""
    if value is None:
        return
    abort(value, resolve_label(label, depth=1))
