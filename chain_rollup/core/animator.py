"""
core/animator.py

Centers glide from where they are to where they are told to be.

One animation at a time. A new target replaces the old one outright,
starting from wherever the circles happen to be at that moment.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict
import numpy as np

from .chain import ChainId, ChainSet
from .easing import ease_out_quint, lerp


@dataclass
class AnimationState:
    """Bookkeeping for the single in-flight transition."""
    in_progress: bool = False
    start_time: float = 0.0
    duration: float = 1000.0
    start_pos: Dict[ChainId, np.ndarray] = field(default_factory=dict)
    target_pos: Dict[ChainId, np.ndarray] = field(default_factory=dict)


class ChainPositionAnimator:
    """
    Eases the three circle centers between start and target positions.

    progress = min(elapsed / duration, 1), eased with ease-out quintic,
    then each center is linearly interpolated.
    """

    def __init__(self, chains: ChainSet):
        self.chains = chains
        self.state = AnimationState()

    def arm(
        self,
        targets: Dict[ChainId, np.ndarray],
        duration: float,
        now: float
    ) -> None:
        """
        Begin a new transition from the current positions.

        Whatever was in flight is discarded.
        """
        self.state = AnimationState(
            in_progress=True,
            start_time=now,
            duration=float(duration),
            start_pos=self.chains.positions(),
            target_pos={c: np.asarray(p, dtype=np.float64).copy() for c, p in targets.items()},
        )

    @property
    def in_progress(self) -> bool:
        return self.state.in_progress

    def step(self, now: float) -> float:
        """
        Advance the animation to time `now`.

        Returns the raw progress in [0, 1]. Does nothing once finished.
        """
        if not self.state.in_progress:
            return 1.0

        elapsed = now - self.state.start_time
        if self.state.duration <= 0:
            progress = 1.0
        else:
            progress = min(max(elapsed, 0.0) / self.state.duration, 1.0)
        eased = ease_out_quint(progress)

        for chain, start in self.state.start_pos.items():
            target = self.state.target_pos[chain]
            if progress >= 1:
                self.chains.move(chain, target.copy())
            else:
                self.chains.move(chain, lerp(start, target, eased))

        if progress >= 1:
            self.state.in_progress = False

        return progress

    def __repr__(self) -> str:
        return (
            f"ChainPositionAnimator(in_progress={self.state.in_progress}, "
            f"duration={self.state.duration:.0f})"
        )
