"""
Tests for the LED strip sink (only where rpi_ws281x is installed).

Run with: pytest tests/test_hardware.py -v
"""

import numpy as np
import pytest

pytest.importorskip("rpi_ws281x")

from rpi_ws281x import Color

from driftlight.hardware import LED_COUNT, PixelStripSink
from driftlight.constants import TOTAL_PIXELS


class FakeStrip:
    """Records what a PixelStrip would have been told"""

    def __init__(self, n):
        self.n = n
        self.pixels = [None] * n
        self.shows = 0

    def numPixels(self):
        return self.n

    def setPixelColor(self, i, color):
        self.pixels[i] = color

    def show(self):
        self.shows += 1


class TestPixelStripSink:

    def test_led_count_matches_device(self):
        assert LED_COUNT == TOTAL_PIXELS

    def test_writes_every_pixel_then_shows_once(self):
        strip = FakeStrip(4)
        frame = np.array([[255, 0, 0], [0, 255, 0], [0, 0, 255], [1, 2, 3]], dtype=np.uint8)
        PixelStripSink(strip)(frame)
        assert strip.pixels == [Color(255, 0, 0), Color(0, 255, 0), Color(0, 0, 255), Color(1, 2, 3)]
        assert strip.shows == 1

    def test_blackout(self):
        strip = FakeStrip(3)
        PixelStripSink(strip).blackout()
        assert strip.pixels == [Color(0, 0, 0)] * 3
        assert strip.shows == 1
