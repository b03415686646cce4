"""
Core components of the chain rollup system.

- chain: Circles and the lookup table that owns them
- nodes: Fixed boundary nodes
- geometry: Pure intersection functions
- animator: Eased center transitions
- clock / easing: Time and motion helpers
"""

from .chain import ChainId, Circle, ChainSet
from .nodes import BoundaryNode, NodeRegistry
from .animator import AnimationState, ChainPositionAnimator
from .clock import ManualClock, MonotonicClock

__all__ = [
    "ChainId",
    "Circle",
    "ChainSet",
    "BoundaryNode",
    "NodeRegistry",
    "AnimationState",
    "ChainPositionAnimator",
    "ManualClock",
    "MonotonicClock",
]
