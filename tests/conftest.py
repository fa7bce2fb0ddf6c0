from __future__ import annotations

import io
import logging
from typing import Iterator

import pytest

from die import set_label_provider, set_sink


@pytest.fixture
def shared() -> Iterator[io.StringIO]:
    """Point the process-wide sink at a buffer for one test."""
    buf = io.StringIO()
    set_sink(buf)
    yield buf
    set_sink(None)


@pytest.fixture(autouse=True)
def _reset_globals() -> Iterator[None]:
    yield
    set_sink(None)
    set_label_provider(None)
    logger = logging.getLogger("die")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for flt in list(logger.filters):
        logger.removeFilter(flt)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
