"""
Tests for the render loop and frame sinks.

Run with: pytest tests/test_render.py -v
"""

import threading

import numpy as np
import pytest

from driftlight.animation import Segment
from driftlight.constants import TOTAL_PIXELS
from driftlight.light import Light
from driftlight.render import RenderLoop
from driftlight.sinks import BackoffSink, CallableSink, NullSink, StdoutDumpSink, TickerSink
from driftlight.store import LightStore


class CollectSink:
    def __init__(self):
        self.frames = []
        self.got_one = threading.Event()

    def __call__(self, frame):
        self.frames.append(frame.copy())
        self.got_one.set()


def quiet_light(**kw):
    """A Light that never spawns particles"""
    kw.setdefault("lambda_", 0)
    return Light(**kw)


# ============================================================
# TICKS
# ============================================================

class TestTick:

    def test_tick_returns_full_frame_and_interval(self):
        loop = RenderLoop(LightStore(quiet_light(rate=50)), NullSink(), rng=np.random.default_rng(0))
        frame, interval = loop.tick()
        assert frame.shape == (TOTAL_PIXELS, 3)
        assert frame.dtype == np.uint8
        assert interval == pytest.approx(0.02)
        assert loop.n == 1

    def test_rate_change_applies_from_next_tick(self):
        store = LightStore(quiet_light(rate=10))
        loop = RenderLoop(store, NullSink())
        _, first = loop.tick()
        store.set_parameter("rate", "100")
        _, second = loop.tick()
        assert first == pytest.approx(0.1)
        assert second == pytest.approx(0.01)

    def test_one_quiet_segment_stays_background(self):
        """1 segment of 4 pixels, lambda 0, decay 255: every pixel stays background"""
        light = Light(lambda_=0, decay=255, segments=[Segment(pixels=np.zeros((4, 3), dtype=np.float32))])
        loop = RenderLoop(LightStore(light), NullSink(), total_pixels=4, rng=np.random.default_rng(9))
        for _ in range(100):
            frame, _ = loop.tick()
            assert frame.shape == (4, 3)
            assert np.all(frame == 0)

    def test_particles_appear_in_frame(self):
        loop = RenderLoop(LightStore(Light(lambda_=128, decay=0)), NullSink(), rng=np.random.default_rng(1))
        frame, _ = loop.tick()
        # every segment spawned at its first pixel
        for s in range(4):
            assert frame[s * 16].max() > 0

    def test_tick_counter_drives_particle_positions(self):
        light = Light(lambda_=128, decay=255)
        loop = RenderLoop(LightStore(light), NullSink(), rng=np.random.default_rng(2))
        for _ in range(3):
            loop.tick()
        assert [p.creation_tick for p in light.segments[0].particles] == [0, 1, 2]

    def test_run_once_writes_to_sink(self):
        sink = CollectSink()
        loop = RenderLoop(LightStore(quiet_light()), sink)
        interval = loop.run_once()
        assert len(sink.frames) == 1
        assert sink.frames[0].shape == (TOTAL_PIXELS, 3)
        assert interval == pytest.approx(1 / 128)


# ============================================================
# THREAD
# ============================================================

class TestThread:

    def test_start_and_stop(self):
        sink = CollectSink()
        loop = RenderLoop(LightStore(quiet_light(rate=255)), sink)
        loop.start()
        try:
            assert sink.got_one.wait(2.0)
            assert loop.running
        finally:
            loop.stop()
        assert not loop.running
        stats = loop.stats()
        assert stats["tick"] >= 1
        assert stats["running"] is False

    def test_start_twice_is_harmless(self):
        loop = RenderLoop(LightStore(quiet_light(rate=255)), NullSink())
        loop.start()
        thread = loop._thread
        loop.start()
        assert loop._thread is thread
        loop.stop()

    def test_restart_waits_for_slow_sink_write(self):
        """stop() timing out on a stuck write must not allow a second thread"""
        entered = threading.Event()
        release = threading.Event()

        def stuck_sink(frame):
            entered.set()
            release.wait(5.0)

        loop = RenderLoop(LightStore(quiet_light(rate=255)), stuck_sink)
        loop.start()
        try:
            assert entered.wait(2.0)
            first = loop._thread
            loop.stop(timeout=0.05)
            assert not loop.running
            assert loop.alive
            assert loop._thread is first

            loop.start()
            assert loop._thread is first
            assert not loop.running
        finally:
            release.set()
            loop.join(2.0)
        assert not loop.alive
        assert loop._thread is None

        loop.start()
        try:
            assert loop.running
        finally:
            release.set()
            loop.stop()

    def test_updates_while_running(self):
        store = LightStore(quiet_light(rate=255))
        sink = CollectSink()
        loop = RenderLoop(store, sink)
        loop.start()
        try:
            for v in range(1, 50):
                store.set_parameter("decay", str(v))
            assert sink.got_one.wait(2.0)
        finally:
            loop.stop()
        assert store.snapshot()["decay"] == 49


# ============================================================
# SINKS
# ============================================================

class FakeClock:
    def __init__(self):
        self.t = 100.0

    def __call__(self):
        return self.t


class FlakySink:
    def __init__(self, failures):
        self.failures = failures
        self.calls = 0
        self.written = 0

    def __call__(self, frame):
        self.calls += 1
        if self.failures:
            self.failures -= 1
            raise OSError("device unplugged")
        self.written += 1


FRAME = np.zeros((TOTAL_PIXELS, 3), dtype=np.uint8)


class TestBackoffSink:

    def test_failure_is_contained_and_logged(self, caplog):
        inner = FlakySink(1)
        sink = BackoffSink(inner, clock=FakeClock())
        sink(FRAME)
        assert sink.failures == 1
        assert "frame write failed" in caplog.text

    def test_frames_dropped_until_retry(self):
        clock = FakeClock()
        inner = FlakySink(1)
        sink = BackoffSink(inner, initial_delay=0.5, clock=clock)
        sink(FRAME)
        sink(FRAME)
        assert inner.calls == 1
        assert sink.dropped == 1
        clock.t += 0.6
        sink(FRAME)
        assert inner.written == 1
        assert sink.failures == 0
        assert sink.delay == 0.0

    def test_delay_doubles_up_to_max(self):
        clock = FakeClock()
        sink = BackoffSink(FlakySink(10), initial_delay=0.5, max_delay=3.0, clock=clock)
        delays = []
        for _ in range(5):
            sink(FRAME)
            delays.append(sink.delay)
            clock.t += sink.delay
        assert delays == [0.5, 1.0, 2.0, 3.0, 3.0]

    def test_render_loop_survives_failing_sink(self):
        loop = RenderLoop(LightStore(quiet_light()), BackoffSink(FlakySink(100)))
        for _ in range(5):
            loop.run_once()
        assert loop.n == 5


class TestSimpleSinks:

    def test_ticker(self, caplog):
        import logging
        sink = TickerSink(every=2)
        with caplog.at_level(logging.INFO, logger="driftlight"):
            sink(FRAME)
            sink(FRAME)
        assert "frame 2" in caplog.text

    def test_callable(self):
        got = []
        CallableSink(got.append)(FRAME)
        assert got[0] is FRAME

    def test_stdout_dump(self, capsys):
        StdoutDumpSink(n_preview=2)(FRAME)
        assert "array" in capsys.readouterr().out
