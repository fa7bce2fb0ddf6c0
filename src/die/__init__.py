"""
die: signal a failure with one call, capture it once at the function boundary.

Key primitives
--------------
- on_err() / panic(): abort to the nearest capture when given a non-None value
- log(), log_err(), log_setting_returns(): captures writing to the shared sink
- custom_capture(): capture handing the raw payload to your own handler
- guard() / recovers(): call-site and decorator forms returning a default
- DoomContext / traced(): per-call captures reporting the failing check's ordinal
- ChaosMonkey / chaos(): swap real errors for injected ones in tests
- set_sink(): point the shared sink at any writable stream
- DieConfig / configure_logging(): runtime config and diagnostic logging
"""

from .capture import (
    Capture,
    CustomCapture,
    classify,
    custom_capture,
    guard,
    log,
    log_err,
    log_setting_returns,
    recovers,
)
from .chaos import ChaosMonkey, chaos
from .config import ConfigError, DieConfig, load_config
from .doom import DoomCapture, DoomContext, traced
from .labels import FUNCTION_NOT_FOUND, resolve_label, set_label_provider
from .logging import configure_logging
from .signals import on_err, panic
from .sink import SharedSink, default_sink, set_sink
from .types import (
    CapturedFailure,
    CaptureResult,
    ChaosError,
    DoomContextError,
    DoomState,
    ErrorSlot,
    Panic,
    UntypedPanic,
)
from .version import __version__

__all__ = [
    "Capture",
    "CaptureResult",
    "CapturedFailure",
    "ChaosError",
    "ChaosMonkey",
    "ConfigError",
    "CustomCapture",
    "DieConfig",
    "DoomCapture",
    "DoomContext",
    "DoomContextError",
    "DoomState",
    "ErrorSlot",
    "FUNCTION_NOT_FOUND",
    "Panic",
    "SharedSink",
    "UntypedPanic",
    "__version__",
    "chaos",
    "classify",
    "configure_logging",
    "custom_capture",
    "default_sink",
    "guard",
    "load_config",
    "log",
    "log_err",
    "log_setting_returns",
    "on_err",
    "panic",
    "recovers",
    "resolve_label",
    "set_label_provider",
    "set_sink",
    "traced",
]
