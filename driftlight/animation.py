# -------------------------------- driftlight/animation.py --------------------------------

"""
Particles, segments and the per-tick frame generation for one segment.

Each segment is an independent lane with a persistent pixel buffer.  Every
tick a segment may spawn a particle at its start, every live particle is
drawn into a scratch mask at its current position, and the mask is screened
onto the buffer, which is then pulled toward the background to leave trails.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from .color import BACKGROUND, RGBf, RGBu8, mix, random_hued_color, screen, to_rgb8
from .constants import EVICTION_MARGIN, PIXELS_PER_SEGMENT, SPEED

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Particle:
    creation_tick: int
    color: RGBf

    def position(self, n: int, speed: float = SPEED) -> int:
        """Pixel position at tick n; negative before the creation tick."""
        return int(np.floor((n - self.creation_tick) * speed))


def _background_buffer(width: int) -> RGBf:
    buf = np.empty((width, 3), dtype=np.float32)
    buf[...] = BACKGROUND
    return buf


@dataclass(eq=False)
class Segment:
    particles: List[Particle] = field(default_factory=list)
    pixels: RGBf = field(default_factory=lambda: _background_buffer(PIXELS_PER_SEGMENT))

    @property
    def width(self) -> int:
        return self.pixels.shape[0]


def make_mask(particles: Sequence[Particle], n: int, width: int,
              speed: float = SPEED) -> RGBf:
    """
    Draw each particle's color at its position for tick n.

    Particles are drawn in insertion order so a later particle overwrites an
    earlier one sharing its pixel.  Positions outside 0..width-1 are skipped.
    """
    mask = _background_buffer(width)
    for p in particles:
        x = p.position(n, speed)
        if 0 <= x < width:
            mask[x] = p.color
    return mask


def evict(particles: List[Particle], n: int, width: int,
          speed: float = SPEED, margin: int = EVICTION_MARGIN) -> List[Particle]:
    """Drop particles that have travelled past the end of the segment for good."""
    limit = width + margin
    return [p for p in particles if p.position(n, speed) < limit]


def step_segment(segment: Segment, n: int, lam: int, decay_fraction: float,
                 rng: np.random.Generator) -> None:
    """Advance one segment to tick n, updating its particles and pixels in place."""
    # 1) maybe spawn a particle at the start of the lane
    if rng.poisson(2.0 * lam) > 1:
        segment.particles.append(Particle(n, random_hued_color(rng)))

    # 2) forget particles that can never be drawn again
    before = len(segment.particles)
    segment.particles = evict(segment.particles, n, segment.width)
    if len(segment.particles) != before:
        logger.debug("tick %d: evicted %d particles", n, before - len(segment.particles))

    # 3) composite the new particle light, then fade toward the background
    mask = make_mask(segment.particles, n, segment.width)
    segment.pixels[...] = mix(screen(segment.pixels, mask), BACKGROUND, decay_fraction)


def flatten(segments: Sequence[Segment]) -> RGBf:
    """All segment buffers end to end, in segment order."""
    if not segments:
        return np.zeros((0, 3), dtype=np.float32)
    return np.concatenate([s.pixels for s in segments], axis=0)


def to_frame(pixels: RGBf, total: int) -> RGBu8:
    """Encode to 8 bits per channel and pad with background (or cut) to exactly total pixels."""
    out = np.empty((total, 3), dtype=np.uint8)
    out[...] = to_rgb8(BACKGROUND)
    n = min(total, pixels.shape[0])
    out[:n] = to_rgb8(pixels[:n])
    return out
