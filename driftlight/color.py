# -------------------------------- driftlight/color.py --------------------------------

from __future__ import annotations
import numpy as np

RGBf = np.ndarray   # [3] or [N,3] float32 (linear) 0..1
RGBu8 = np.ndarray  # [N,3] uint8

# Decay target and initial state of every pixel buffer.
BACKGROUND: RGBf = np.zeros(3, dtype=np.float32)
BACKGROUND.flags.writeable = False

_rng = np.random.default_rng()


def color(r: float, g: float, b: float) -> RGBf:
    return np.array([r, g, b], dtype=np.float32)


def screen(base: RGBf, overlay: RGBf) -> RGBf:
    """Lighten base by overlay; never darkens, and screening with BACKGROUND is a no-op."""
    # 1 - (1-base)*(1-overlay), arranged so a zero operand leaves the other exact
    return base + overlay - base * overlay


def mix(base: RGBf, target: RGBf, t: float) -> RGBf:
    """Linear interpolation from base toward target, t in [0,1]."""
    return base * (1.0 - t) + target * t


def hsv_to_rgb(h: float, s: float, v: float) -> RGBf:
    """Convert HSV (0-1, 0-1, 0-1) to float RGB (0-1)."""
    i = int(h * 6)
    f = h * 6 - i
    p = v * (1 - s)
    q = v * (1 - f * s)
    t = v * (1 - (1 - f) * s)

    i = i % 6
    if i == 0:
        r, g, b = v, t, p
    elif i == 1:
        r, g, b = q, v, p
    elif i == 2:
        r, g, b = p, v, t
    elif i == 3:
        r, g, b = p, q, v
    elif i == 4:
        r, g, b = t, p, v
    else:
        r, g, b = v, p, q

    return color(r, g, b)


def random_hued_color(rng: np.random.Generator | None = None) -> RGBf:
    """A fully saturated, half-value color of uniformly random whole-degree hue.

    No gamma step: the HSV result is taken as linear light.
    """
    rng = _rng if rng is None else rng
    degrees = int(rng.integers(0, 360))
    return hsv_to_rgb(degrees / 360.0, 1.0, 0.5)


def to_rgb8(colors: RGBf) -> RGBu8:
    # scale and truncate, no gamma; clip first so stray floats cannot wrap
    return (np.clip(colors, 0.0, 1.0) * 255.0).astype(np.uint8)
