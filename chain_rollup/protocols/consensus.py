"""
protocols/consensus.py

Agreement made visible.

Lines spark between boundary nodes. Within a chain they are ambient,
the chain agreeing with itself. Where circles overlap they concentrate,
and when the three have become one, the whole circumference lights up.

A line remembers only which nodes it joins, never where they were.
Endpoints are resolved from the live circles every tick, so a line
stays true while its circles glide and merge beneath it.

Inspired by:
- Gossip protocols
- Firefly synchronization
- Sparklers
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Dict, List, Optional, Union
import numpy as np

from chain_rollup.core.chain import ADJACENT_PAIRS, CHAIN_ORDER, ChainId, ChainSet
from chain_rollup.core.geometry import (
    COMPLETION_RATIO,
    circles_overlap,
    intersection_ratio,
    node_in_any_other_circle,
    nodes_inside,
    triple_intersection_nodes,
)
from chain_rollup.core.nodes import BoundaryNode, NodeRegistry, world_position

from .scenario import RollupState, parse_state

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineEndpoint:
    """A reference to a boundary node: which chain, which angle."""
    chain: ChainId
    angle: float


@dataclass
class ConsensusLine:
    """
    One animated segment between two boundary-node references.

    current_start/current_end hold the world coordinates resolved on
    the most recent tick; they are derived, never authoritative.
    """
    start: LineEndpoint
    end: LineEndpoint
    base_duration: float
    progress: float = 0.0
    opacity: float = 1.0
    is_intersection: bool = False
    current_start: Optional[np.ndarray] = None
    current_end: Optional[np.ndarray] = None

    @property
    def head(self) -> Optional[np.ndarray]:
        """Tip of the segment as drawn so far."""
        if self.current_start is None or self.current_end is None:
            return None
        return self.current_start + (self.current_end - self.current_start) * self.progress


@dataclass
class SchedulerConfig:
    """Timing and appearance of consensus lines (times in milliseconds)."""
    ambient_duration: float = 1500.0         # Sweep time of a within-chain line
    intersection_duration: float = 10000.0   # Base sweep time of an intersection line
    interval: float = 3000.0                 # Batch regeneration cadence
    ambient_speed: float = 0.7               # Divisor on elapsed time for ambient lines
    duration_growth: float = 0.1             # Intersection duration grows by this per ms lived
    completion_threshold: float = COMPLETION_RATIO   # Ratio treated as fully merged
    ambient_opacity_falloff: float = 0.95    # Ambient opacity = 1 - ratio * falloff
    fade_start: float = 0.02                 # Intersection lines start fading here
    fade_end: float = 0.1                    # ...and are gone here
    initial_progress_jitter: float = 0.2     # Intersection lines start at progress in [0, jitter)

    def __post_init__(self):
        for name in ("ambient_duration", "intersection_duration", "interval", "ambient_speed"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not 0 <= self.fade_start < self.fade_end:
            raise ValueError(
                f"fade window must satisfy 0 <= fade_start < fade_end, "
                f"got [{self.fade_start}, {self.fade_end})"
            )


@dataclass
class SchedulerState:
    """Bookkeeping for the regeneration cadence."""
    last_create_time: Optional[float] = None
    batch_start_time: float = 0.0
    active_nodes: Dict[ChainId, Optional[BoundaryNode]] = field(
        default_factory=lambda: {chain: None for chain in CHAIN_ORDER}
    )
    batches_created: int = 0


class ConsensusLineScheduler:
    """
    Generates, ages and retires consensus lines.

    Every `interval` (or as soon as the set runs empty) the whole batch
    is replaced. Every tick, each line is re-resolved against the live
    circles and aged along its own curve; lines whose opacity reaches
    zero are dropped.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        chains: ChainSet,
        config: Optional[SchedulerConfig] = None,
        rng: Optional[np.random.Generator] = None
    ):
        self.registry = registry
        self.chains = chains
        self.config = config or SchedulerConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.lines: List[ConsensusLine] = []
        self.state = SchedulerState()

    # ==================== Core Loop ====================

    def update(self, state: Union[RollupState, str], now: float) -> List[ConsensusLine]:
        """
        One tick: regenerate the batch if due, then age every line.

        Returns the surviving lines.
        """
        state = parse_state(state)

        if self._batch_due(now):
            self.select_random_active_nodes()
            self.lines = self.create_consensuses(state)
            self.state.last_create_time = now
            self.state.batch_start_time = now
            self.state.batches_created += 1
            logger.debug(
                f"Batch {self.state.batches_created} in {state.value}: "
                f"{len(self.lines)} lines "
                f"({sum(1 for line in self.lines if line.is_intersection)} intersection)"
            )

        if self.lines:
            self.age(now)

        return self.lines

    def _batch_due(self, now: float) -> bool:
        if not self.lines or self.state.last_create_time is None:
            return True
        return now - self.state.last_create_time >= self.config.interval

    def age(self, now: float) -> None:
        """Re-resolve every line against the live circles and advance its curve."""
        elapsed = now - self.state.batch_start_time

        for line in self.lines:
            start = self._resolve(line.start)
            end = self._resolve(line.end)
            if (
                start is None or end is None
                or not (np.all(np.isfinite(start)) and np.all(np.isfinite(end)))
            ):
                # Unresolvable this tick: hidden, not retired
                line.current_start = None
                line.current_end = None
                continue

            line.current_start = start
            line.current_end = end

            if line.is_intersection:
                self._age_intersection(line, elapsed)
            else:
                self._age_ambient(line, elapsed)

        self.lines = [line for line in self.lines if line.opacity > 0]

    def _age_ambient(self, line: ConsensusLine, elapsed: float) -> None:
        # Opacity holds at its creation value, then snaps off
        line.progress = min((elapsed / self.config.ambient_speed) / line.base_duration, 1.0)
        if line.progress >= 1:
            line.opacity = 0.0

    def _age_intersection(self, line: ConsensusLine, elapsed: float) -> None:
        # Duration stretches over the line's life: a decelerating sweep
        duration = line.base_duration + elapsed * self.config.duration_growth
        line.progress = min(elapsed / duration, 1.0)

        fade_start = self.config.fade_start
        fade_end = self.config.fade_end
        if fade_start <= line.progress < fade_end:
            line.opacity = (fade_end - line.progress) / fade_end
        elif line.progress >= fade_end:
            line.opacity = 0.0
        else:
            line.opacity = 1.0

    def _resolve(self, endpoint: LineEndpoint) -> Optional[np.ndarray]:
        circle = self.chains.get(endpoint.chain)
        if circle is None:
            return None
        return world_position(endpoint.angle, circle)

    # ==================== Batch Construction ====================

    def create_consensuses(self, state: Union[RollupState, str]) -> List[ConsensusLine]:
        """Build a fresh batch for `state` from the current geometry."""
        state = parse_state(state)
        lines: List[ConsensusLine] = []
        ratio = intersection_ratio(self.chains[ChainId.A], self.chains[ChainId.B])

        if state in (RollupState.STEP1, RollupState.STEP2):
            if triple_intersection_nodes(self.registry, self.chains):
                self.process_triple_intersection_consensuses(lines, ratio)
            else:
                for first, second in ADJACENT_PAIRS:
                    self.process_intersection_consensuses(first, second, lines)

        if ratio < self.config.completion_threshold:
            self.process_ambient_consensuses(lines, ratio)

        return lines

    def process_intersection_consensuses(
        self,
        first: ChainId,
        second: ChainId,
        lines: List[ConsensusLine]
    ) -> None:
        """
        Lines from every node inside the partner circle to the rest of
        its own circle, for both circles of the pair.
        """
        c1 = self.chains.get(first)
        c2 = self.chains.get(second)
        if c1 is None or c2 is None:
            return
        if not circles_overlap(c1, c2):
            return

        for home, other in ((c1, c2), (c2, c1)):
            own_nodes = self.registry.nodes_of(home.chain)
            for start in nodes_inside(own_nodes, home, other):
                for end in own_nodes:
                    if end is not start:
                        lines.append(self._intersection_line(start.chain, start.angle, end.chain, end.angle))

    def process_triple_intersection_consensuses(
        self,
        lines: List[ConsensusLine],
        ratio: float
    ) -> None:
        """
        Lines for the region shared by all three circles.

        Once the ratio reaches the completion threshold the per-node
        fan-out is replaced by a single dense pattern: every pair of
        chain A's own nodes.
        """
        if ratio >= self.config.completion_threshold:
            nodes = self.registry.nodes_of(ChainId.A)
            for start in nodes:
                for end in nodes:
                    if start.angle != end.angle:
                        lines.append(self._intersection_line(ChainId.A, start.angle, ChainId.A, end.angle))
            return

        for start in triple_intersection_nodes(self.registry, self.chains):
            for target in CHAIN_ORDER:
                for end in self.registry.nodes_of(target):
                    if start.chain == target and start.angle == end.angle:
                        continue
                    lines.append(self._intersection_line(start.chain, start.angle, target, end.angle))

    def process_ambient_consensuses(self, lines: List[ConsensusLine], ratio: float) -> None:
        """One random outside node per chain, fanned out to its own circle."""
        opacity = 1 - ratio * self.config.ambient_opacity_falloff

        for chain in CHAIN_ORDER:
            if self.chains.get(chain) is None:
                continue

            candidates = self.non_intersection_nodes(chain)
            if not candidates:
                continue

            start = candidates[int(self.rng.integers(len(candidates)))]
            for end in self.registry.nodes_of(chain):
                if end is start:
                    continue
                lines.append(ConsensusLine(
                    start=LineEndpoint(chain, start.angle),
                    end=LineEndpoint(end.chain, end.angle),
                    progress=0.0,
                    opacity=opacity,
                    is_intersection=False,
                    base_duration=self.config.ambient_duration,
                ))

    def _intersection_line(
        self,
        start_chain: ChainId,
        start_angle: float,
        end_chain: ChainId,
        end_angle: float
    ) -> ConsensusLine:
        return ConsensusLine(
            start=LineEndpoint(start_chain, start_angle),
            end=LineEndpoint(end_chain, end_angle),
            progress=float(self.rng.random()) * self.config.initial_progress_jitter,
            opacity=1.0,
            is_intersection=True,
            base_duration=self.config.intersection_duration,
        )

    # ==================== Active Nodes ====================

    def non_intersection_nodes(self, chain: ChainId) -> List[BoundaryNode]:
        """Nodes of `chain` lying outside both other circles."""
        return [
            node for node in self.registry.nodes_of(chain)
            if not node_in_any_other_circle(node, self.chains)
        ]

    def select_random_active_nodes(self) -> Dict[ChainId, Optional[BoundaryNode]]:
        """Pick one outside node per chain (None when a chain has none)."""
        active: Dict[ChainId, Optional[BoundaryNode]] = {}
        for chain in CHAIN_ORDER:
            candidates = self.non_intersection_nodes(chain)
            active[chain] = (
                candidates[int(self.rng.integers(len(candidates)))] if candidates else None
            )
        self.state.active_nodes = active
        return active

    def clear(self) -> None:
        self.lines = []
        self.state = SchedulerState()

    def __repr__(self) -> str:
        return (
            f"ConsensusLineScheduler(lines={len(self.lines)}, "
            f"batches={self.state.batches_created})"
        )
