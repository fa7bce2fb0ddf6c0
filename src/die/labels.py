"""Label resolution for signal and capture records.

Explicit labels are the preferred interface. When a caller omits one, the
label is looked up from the calling frame through a pluggable provider.
"""

from __future__ import annotations

import sys
from types import FrameType
from typing import Callable, Optional

FUNCTION_NOT_FOUND = "function not found"

LabelProvider = Callable[[Optional[FrameType]], str]


def frame_label(frame: Optional[FrameType]) -> str:
    """Return the qualified function name of ``frame``."""
    if frame is None:
        return FUNCTION_NOT_FOUND
    code = frame.f_code
    name = getattr(code, "co_qualname", code.co_name)
    return name or FUNCTION_NOT_FOUND


_provider: LabelProvider = frame_label


def set_label_provider(provider: Optional[LabelProvider]) -> None:
    """
    Replace the provider used when no explicit label is given.

    Passing ``None`` restores the frame-name provider.

    Usage example
    -------------
        set_label_provider(lambda frame: "worker")
    """
    global _provider
    _provider = provider if provider is not None else frame_label


def resolve_label(label: Optional[str], depth: int = 1) -> str:
    """
    Return ``label`` or, when it is empty, the name of a calling frame.

    Parameters
    ----------
    label
        Explicit label supplied by the caller.
    depth
        How many frames above the function calling ``resolve_label`` to look.
        ``1`` names that function's caller.
    """
    if label:
        return label
    try:
        frame: Optional[FrameType] = sys._getframe(depth + 1)
    except ValueError:
        frame = None
    try:
        resolved = _provider(frame)
    finally:
        del frame
    return resolved or FUNCTION_NOT_FOUND
