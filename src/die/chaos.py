"""Chaos injection: randomly replace an error with a fabricated one."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Protocol

import numpy as np

from .types import ChaosError

if TYPE_CHECKING:
    from .config import DieConfig

CHAOS_MESSAGE = "The chaos monkey found you!"
RESOLUTION = 1_000_000


class IntegerSource(Protocol):
    """Anything drawing integers from ``[low, high)``, like ``numpy.random.Generator``."""

    def integers(self, low: int, high: int) -> Any: ...


class ChaosMonkey:
    """
    Pass an error through, or swap in a :class:`ChaosError` with a fixed probability.

    Parameters
    ----------
    probability
        Chance in ``[0, 1]`` that :meth:`maybe` returns the injected error.
    rng
        Integer source. Defaults to ``numpy.random.default_rng(seed)``.
    seed
        Seed for the default generator.

    Usage example
    -------------
        monkey = ChaosMonkey(0.25, seed=7)
        with log("store"):
            on_err(monkey.maybe(write_row(row)))
    """

    def __init__(
        self,
        probability: float = 0.5,
        *,
        rng: Optional[IntegerSource] = None,
        seed: Optional[int] = None,
    ) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be within [0, 1], got {probability}")
        self.probability = float(probability)
        self._rng: IntegerSource = rng if rng is not None else np.random.default_rng(seed)
        self._threshold = int(round(self.probability * RESOLUTION))

    @classmethod
    def from_config(cls, cfg: "DieConfig", *, rng: Optional[IntegerSource] = None) -> "ChaosMonkey":
        return cls(cfg.chaos_probability, rng=rng, seed=cfg.chaos_seed)

    def triggered(self) -> bool:
        """Draw once and report whether this draw injects."""
        if self._threshold <= 0:
            return False
        if self._threshold >= RESOLUTION:
            return True
        return int(self._rng.integers(0, RESOLUTION)) < self._threshold

    def maybe(self, err: Optional[BaseException]) -> Optional[BaseException]:
        if self.triggered():
            return ChaosError(CHAOS_MESSAGE)
        return err


_default_monkey: Optional[ChaosMonkey] = None


def chaos(err: Optional[BaseException], probability: Optional[float] = None) -> Optional[BaseException]:
    """
    Return ``err`` or the injected chaos error.

    With ``probability`` a one-off monkey is used; otherwise a lazily created
    process-wide one with even odds.
    """
    global _default_monkey
    if probability is not None:
        return ChaosMonkey(probability).maybe(err)
    if _default_monkey is None:
        _default_monkey = ChaosMonkey()
    return _default_monkey.maybe(err)
