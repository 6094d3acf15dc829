"""Opt-in timing instrumentation, switched on with ``MINDPULSE_DEBUG=1``."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "MINDPULSE_DEBUG"
_TRUTHY = {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    """Read ``MINDPULSE_DEBUG`` on every call so it can be toggled at runtime."""
    return os.getenv(DEBUG_ENV_VAR, "").strip().lower() in _TRUTHY


@contextmanager
def time_block(
    label: str,
    *,
    emitter: Optional[Callable[[str], None]] = None,
    slow_ms: Optional[float] = None,
) -> Iterator[None]:
    """
    Time the enclosed block and report ``"<label> took N ms"``.

    Callers decide whether to time at all (see :func:`debug_enabled`). The
    report goes to ``emitter`` when given, otherwise to this module's logger
    at DEBUG, or at WARNING once the block exceeds ``slow_ms``.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        message = f"{label} took {elapsed_ms:.3f} ms"
        if emitter is not None:
            emitter(message)
        elif slow_ms is not None and elapsed_ms > slow_ms:
            logger.warning(message)
        else:
            logger.debug(message)
