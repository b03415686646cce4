"""
environments/rollup_field.py

The stage on which three chains become one.

One object owns every moving part. A host calls tick(); the field
reads the clock once, lets the scenario speak, moves the circles,
and refreshes the consensus lines. What comes out is a snapshot,
never the live state.

Inspired by:
- Fixed-timestep game loops
- Model/view separation
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import List, Optional, Tuple, Union
import numpy as np

from chain_rollup.core.animator import ChainPositionAnimator
from chain_rollup.core.chain import ADJACENT_PAIRS, CHAIN_ORDER, ChainId, ChainSet
from chain_rollup.core.clock import MonotonicClock
from chain_rollup.core.geometry import LensRegion, distance, intersection_ratio, lens_region
from chain_rollup.core.nodes import NodeRegistry, world_position
from chain_rollup.observations.snapshot import (
    CircleSnapshot,
    FrameSnapshot,
    LineSnapshot,
    NodeSnapshot,
)
from chain_rollup.protocols.consensus import ConsensusLineScheduler, SchedulerConfig
from chain_rollup.protocols.scenario import RollupState, ScenarioConfig, StateController

logger = logging.getLogger(__name__)

# Lines are only animated once the chains have been introduced
LINE_STATES = (RollupState.WAITING, RollupState.STEP1, RollupState.STEP2)
REGION_STATES = (RollupState.STEP1, RollupState.STEP2)


@dataclass
class FieldConfig:
    """Configuration for the rollup field."""
    radius: float = 100.0                       # Shared radius of all three chains
    center: Tuple[float, float] = (0.0, 0.0)    # Where chain B sits and everything converges
    seed: Optional[int] = None                  # Seed for line generation

    def __post_init__(self):
        if self.radius <= 0:
            raise ValueError(f"radius must be positive, got {self.radius}")


class RollupField:
    """
    Tick-driven core of the three-chain visualization.

    Per tick:
    1. Scenario driver may switch state
    2. Animator advances circle centers
    3. Scheduler regenerates and ages consensus lines
    """

    def __init__(
        self,
        config: Optional[FieldConfig] = None,
        scenario_config: Optional[ScenarioConfig] = None,
        scheduler_config: Optional[SchedulerConfig] = None,
        clock=None,
        rng: Optional[np.random.Generator] = None
    ):
        self.config = config or FieldConfig()
        self.clock = clock or MonotonicClock()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        center = np.asarray(self.config.center, dtype=np.float64)
        spread = np.array([self.config.radius * 2, 0.0])
        self.chains = ChainSet(self.config.radius, {
            ChainId.A: center - spread,
            ChainId.B: center,
            ChainId.C: center + spread,
        })

        self.registry = NodeRegistry()
        self.animator = ChainPositionAnimator(self.chains)
        self.controller = StateController(
            self.chains,
            self.animator,
            anchor=self.config.center,
            config=scenario_config,
            clock=self.clock,
        )
        self.scheduler = ConsensusLineScheduler(
            self.registry,
            self.chains,
            config=scheduler_config,
            rng=self.rng,
        )

        self.time = self.clock.now()
        self.ticks = 0
        self.controller.start_scenario(self.time)

        logger.info(f"Field initialized: {self.chains}")

    # ==================== External Triggers ====================

    def set_state(self, name: Union[RollupState, str], now: Optional[float] = None) -> None:
        """Jump to a named state immediately; the glide starts from here."""
        self.controller.set_state(name, now)

    def start_scenario(self, now: Optional[float] = None) -> None:
        self.controller.start_scenario(now)

    # ==================== Tick ====================

    def tick(self, now: Optional[float] = None) -> None:
        """
        Advance one frame.

        `now` defaults to a single reading of the injected clock; every
        timer in this tick compares against that one reading.
        """
        now = self.clock.now() if now is None else now
        self.time = now
        self.ticks += 1

        self.controller.update_scenario(now)

        if self.animator.in_progress:
            self.animator.step(now)

        state = self.controller.current_state()
        if state in LINE_STATES:
            self.scheduler.update(state, now)

    # ==================== Queries ====================

    @property
    def state(self) -> RollupState:
        return self.controller.current_state()

    @property
    def scenario_step(self) -> RollupState:
        return self.controller.scenario.current_step

    def get_distance(self) -> float:
        """Distance between chain A and chain B."""
        return distance(self.chains[ChainId.A], self.chains[ChainId.B])

    def get_intersection_ratio(self) -> float:
        return intersection_ratio(self.chains[ChainId.A], self.chains[ChainId.B])

    def get_regions(self) -> List[LensRegion]:
        """Overlap regions of the adjacent pairs, once the chains have met."""
        if self.state not in REGION_STATES:
            return []
        if self.get_distance() >= self.chains.radius * 2:
            return []

        regions = []
        for first, second in ADJACENT_PAIRS:
            region = lens_region(self.chains[first], self.chains[second])
            if region is not None:
                regions.append(region)
        return regions

    def get_positions(self) -> np.ndarray:
        """Centers of A, B, C as a (3, 2) array."""
        return np.array([self.chains[c].center for c in CHAIN_ORDER])

    def get_state_snapshot(self) -> FrameSnapshot:
        """Immutable copy of everything a renderer needs for this frame."""
        circles = tuple(
            CircleSnapshot(c.chain.value, c.x, c.y, c.radius)
            for c in self.chains
        )

        nodes = []
        for chain in CHAIN_ORDER:
            circle = self.chains[chain]
            for node in self.registry.nodes_of(chain):
                pos = world_position(node.angle, circle)
                nodes.append(NodeSnapshot(
                    chain.value, node.number, node.angle,
                    float(pos[0]), float(pos[1]), node.opacity,
                ))

        lines = []
        for line in self.scheduler.lines:
            if line.current_start is None or line.current_end is None:
                continue
            if not (np.all(np.isfinite(line.current_start)) and np.all(np.isfinite(line.current_end))):
                continue
            lines.append(LineSnapshot(
                start_chain=line.start.chain.value,
                start_angle=line.start.angle,
                end_chain=line.end.chain.value,
                end_angle=line.end.angle,
                start=(float(line.current_start[0]), float(line.current_start[1])),
                end=(float(line.current_end[0]), float(line.current_end[1])),
                progress=line.progress,
                opacity=line.opacity,
                is_intersection=line.is_intersection,
            ))

        return FrameSnapshot(
            time=self.time,
            tick=self.ticks,
            state=self.state.value,
            scenario_step=self.scenario_step.value,
            intersection_ratio=self.get_intersection_ratio(),
            circles=circles,
            nodes=tuple(nodes),
            lines=tuple(lines),
            regions=tuple(self.get_regions()),
        )

    def __repr__(self) -> str:
        return (
            f"RollupField(state={self.state.value}, "
            f"scenario={self.scenario_step.value}, "
            f"ratio={self.get_intersection_ratio():.2f}, "
            f"lines={len(self.scheduler.lines)}, "
            f"ticks={self.ticks})"
        )
