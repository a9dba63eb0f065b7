"""
driftlight: drifting particle ambient light for addressable LED strips.
"""

__version__ = "0.1.0"
