# -------------------------------- driftlight/sinks.py --------------------------------

from __future__ import annotations
import logging
import time
from typing import Callable

import numpy as np

RGB = np.ndarray  # [N,3] uint8
FrameSink = Callable[[RGB], None]

logger = logging.getLogger(__name__)


class TickerSink:
    """Debug sink logging a heartbeat every N frames."""
    def __init__(self, every: int = 120):
        self.i = 0
        self.every = max(1, int(every))
    def __call__(self, frame: RGB) -> None:
        self.i += 1
        if self.i % self.every == 0:
            logger.info("frame %d, avg=%.1f", self.i, float(frame.mean()))


class CallableSink:
    """Wrap any callable(frame_u8) you already have (e.g., a strip's show)."""
    def __init__(self, fn: Callable[[RGB], None]):
        self.fn = fn
    def __call__(self, frame: RGB) -> None:
        self.fn(frame)


class StdoutDumpSink:
    """For testing: dumps a few pixels to stdout (truncated)."""
    def __init__(self, n_preview: int = 8):
        self.k = n_preview
    def __call__(self, frame: RGB) -> None:
        print(repr(frame[: self.k]))


class NullSink:
    """Renders go nowhere; for running without hardware."""
    def __call__(self, frame: RGB) -> None:
        pass


class BackoffSink:
    """
    Keep rendering when the device goes away.

    A failed write is logged and the device is left alone until a retry
    deadline; frames produced meanwhile are dropped.  The delay doubles on
    every consecutive failure up to max_delay and resets after a good write.
    """
    def __init__(self, inner: FrameSink, *, initial_delay: float = 0.5, max_delay: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        self.inner = inner
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.clock = clock
        self.delay = 0.0
        self.retry_at = 0.0
        self.failures = 0
        self.dropped = 0

    def __call__(self, frame: RGB) -> None:
        now = self.clock()
        if now < self.retry_at:
            self.dropped += 1
            return
        try:
            self.inner(frame)
        except Exception:
            self.failures += 1
            self.delay = self.initial_delay if self.delay == 0 else min(self.delay * 2, self.max_delay)
            self.retry_at = now + self.delay
            logger.exception("frame write failed (%d in a row), retrying in %.1fs", self.failures, self.delay)
            return
        if self.failures:
            logger.info("frame writes recovered after %d failures, %d frames dropped",
                        self.failures, self.dropped)
        self.delay = 0.0
        self.failures = 0
        self.dropped = 0
