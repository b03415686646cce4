"""
observations/snapshot.py

What a renderer is allowed to see: a frozen copy of one frame.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

from chain_rollup.core.geometry import LensRegion

Point = Tuple[float, float]


@dataclass(frozen=True)
class CircleSnapshot:
    chain: str
    x: float
    y: float
    radius: float


@dataclass(frozen=True)
class NodeSnapshot:
    chain: str
    number: int
    angle: float
    x: float
    y: float
    opacity: float


@dataclass(frozen=True)
class LineSnapshot:
    """A consensus line with its endpoints resolved for this frame."""
    start_chain: str
    start_angle: float
    end_chain: str
    end_angle: float
    start: Point
    end: Point
    progress: float
    opacity: float
    is_intersection: bool

    @property
    def head(self) -> Point:
        return (
            self.start[0] + (self.end[0] - self.start[0]) * self.progress,
            self.start[1] + (self.end[1] - self.start[1]) * self.progress,
        )


@dataclass(frozen=True)
class FrameSnapshot:
    """Everything needed to draw one frame."""
    time: float
    tick: int
    state: str
    scenario_step: str
    intersection_ratio: float
    circles: Tuple[CircleSnapshot, ...]
    nodes: Tuple[NodeSnapshot, ...]
    lines: Tuple[LineSnapshot, ...]
    regions: Tuple[LensRegion, ...] = ()

    def circle(self, chain: str) -> Optional[CircleSnapshot]:
        for c in self.circles:
            if c.chain == chain:
                return c
        return None

    @property
    def percentage(self) -> int:
        return int(round(self.intersection_ratio * 100))
