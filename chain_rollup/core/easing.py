"""
core/easing.py

Motion that arrives gently.
"""

from typing import Union
import numpy as np

Vector = Union[float, np.ndarray]


def lerp(start: Vector, end: Vector, t: float) -> Vector:
    """Linear interpolation between start and end (scalars or positions)."""
    return start + (end - start) * t


def ease_out_quint(x: float) -> float:
    """Fast start, long soft landing: 1 - (1 - x)^5."""
    return 1 - (1 - x) ** 5


def ease_in_out_quad(t: float) -> float:
    """Symmetric quadratic ease used for label spreading."""
    if t < 0.5:
        return 2 * t * t
    return 1 - (-2 * t + 2) ** 2 / 2
