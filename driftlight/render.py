# -------------------------------- driftlight/render.py --------------------------------

"""
The real-time render loop.

Each tick takes the store's write lock, advances every segment by one tick,
flattens the pixel buffers and lets go of the lock.  The frame is then
encoded, handed to the sink, and the loop sleeps out the rest of the tick
interval (1 / rate seconds, read at the start of the tick).
"""

from __future__ import annotations
import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .animation import flatten, step_segment, to_frame
from .constants import TOTAL_PIXELS
from .sinks import RGB, FrameSink
from .store import LightStore

logger = logging.getLogger(__name__)


class RenderLoop:
    """Drives the Light on its own thread and feeds frames to a sink."""

    def __init__(self, store: LightStore, sink: FrameSink, *,
                 total_pixels: int = TOTAL_PIXELS,
                 rng: Optional[np.random.Generator] = None):
        self.store = store
        self.sink = sink
        self.total_pixels = total_pixels
        self.rng = rng if rng is not None else np.random.default_rng()

        self.n = 0  # tick counter

        self._running = False
        self._stop_flag = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Stats
        self._start_time = 0.0
        self._frames_since_start = 0
        self._actual_fps = 0.0
        self._slow_ticks = 0

    def tick(self) -> Tuple[RGB, float]:
        """
        Compute the next frame.

        Returns the encoded frame and the interval in seconds until the next
        tick is due.
        """
        with self.store.write() as light:
            interval = 1.0 / light.rate
            decay_fraction = light.decay / 255.0
            for segment in light.segments:
                step_segment(segment, self.n, light.lambda_, decay_fraction, self.rng)
            pixels = flatten(light.segments)
        self.n += 1
        return to_frame(pixels, self.total_pixels), interval

    def run_once(self) -> float:
        """One full tick: compute, then a single blocking write to the sink."""
        frame, interval = self.tick()
        self.sink(frame)
        return interval

    def start(self):
        """Start the render thread."""
        if self._running:
            return
        if self.alive:
            # a stopped thread is still finishing its last sink write
            logger.warning("render thread from the last run has not exited, not starting")
            return

        self._running = True
        self._stop_flag.clear()
        self._start_time = time.monotonic()
        self._frames_since_start = 0

        self._thread = threading.Thread(target=self._render_loop, name="render", daemon=True)
        self._thread.start()
        logger.info("render loop started")

    def stop(self, timeout: float = 1.0):
        """Stop after the tick in flight; a started tick always completes."""
        if not self._running:
            return

        self._stop_flag.set()
        self._running = False

        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("render thread did not exit within %.1fs", timeout)
                return
            self._thread = None
        logger.info("render loop stopped after %d ticks", self.n)

    def join(self, timeout: Optional[float] = None):
        if self._thread:
            self._thread.join(timeout)
            if not self._thread.is_alive():
                self._thread = None

    @property
    def alive(self) -> bool:
        """True while a render thread exists, stopped or not."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def running(self) -> bool:
        return self._running and self.alive

    def stats(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "tick": self.n,
            "fps": round(self._actual_fps, 1),
            "slow_ticks": self._slow_ticks,
        }

    def _render_loop(self):
        try:
            while not self._stop_flag.is_set():
                frame_start = time.monotonic()
                interval = self.run_once()
                frame_end = time.monotonic()
                frame_elapsed = frame_end - frame_start

                self._frames_since_start += 1
                total_elapsed = frame_end - self._start_time
                if total_elapsed > 0:
                    self._actual_fps = self._frames_since_start / total_elapsed

                sleep_time = interval - frame_elapsed
                if sleep_time > 0:
                    self._stop_flag.wait(sleep_time)
                else:
                    self._slow_ticks += 1
                    if frame_elapsed > 0.05:
                        logger.warning("tick %d took %.3fs (interval %.3fs)", self.n, frame_elapsed, interval)
        except Exception:
            logger.exception("render loop died at tick %d", self.n)
            raise
        finally:
            self._running = False
