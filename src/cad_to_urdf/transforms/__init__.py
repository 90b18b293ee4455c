"""
JAX-based rigid-transform algebra used throughout the converter.

This module provides pure implementations of:
- SO(3) rotations and roll-pitch-yaw conversions (so3 module)
- SE(3) homogeneous transforms (se3 module)
"""

from . import so3
from . import se3

__all__ = [
    "so3",
    "se3",
]
