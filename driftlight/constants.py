# driftlight/constants.py

"""
Device and animation constants.

These describe the fixture we drive (a 4 channel x 16 pixel strip) and the
defaults the daemon starts with.  The daemon's command line options override
the parameter defaults; the geometry is fixed for the life of the process.
"""

# Fixture geometry
SEGMENTS = 4                                    # independently animated lanes
PIXELS_PER_SEGMENT = 16                         # pixels per lane / channel
TOTAL_PIXELS = SEGMENTS * PIXELS_PER_SEGMENT    # pixels the device expects per write

# Particle motion
SPEED = 0.5             # pixels per tick
EVICTION_MARGIN = 1     # pixels past the end of a segment before a particle is dropped

# Tunable parameter defaults (each 0..255, rate must be >= 1)
DEFAULT_LAMBDA = 128
DEFAULT_DECAY = 128
DEFAULT_RATE = 128      # ticks per second

# Identity
DEFAULT_NAME = "bedroom lights"
DEFAULT_ID = "bedroom/ceiling"

# Control channel
SOCK_PATH = "/run/driftlight.sock"
STATUS_INTERVAL = 1.0   # seconds between status broadcasts to subscribers
