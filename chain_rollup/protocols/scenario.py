"""
protocols/scenario.py

The story the circles tell, in four acts.

init     - apart, waiting to be seen
waiting  - apart, each chain agreeing with itself
step1    - drawing close, agreement spilling across borders
step2    - one circle where there were three

Acts advance on their own after fixed delays, or on command.
The last act has no successor.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Dict, Optional, Tuple, Union
import numpy as np

from chain_rollup.core.animator import ChainPositionAnimator
from chain_rollup.core.chain import CHAIN_ORDER, ChainId, ChainSet
from chain_rollup.core.clock import MonotonicClock
from chain_rollup.core.geometry import intersection_ratio

logger = logging.getLogger(__name__)


class RollupState(str, Enum):
    """Named visual states, in scenario order."""
    INIT = "init"
    WAITING = "waiting"
    STEP1 = "step1"
    STEP2 = "step2"


@dataclass
class ScenarioConfig:
    """Timing and spacing of the scenario (all times in milliseconds)."""
    init_delay: float = 500.0              # init -> waiting
    waiting_delay: float = 5000.0          # waiting -> step1
    step1_delay: float = 1000.0            # step1 -> step2
    step1_transition: float = 400000.0     # Glide duration into step1
    step2_transition: float = 30000.0      # Glide duration into step2
    default_transition: float = 1000.0     # Glide duration for init/waiting
    step1_distance_factor: float = 1.4     # Side-to-center spacing in step1, in radii

    def __post_init__(self):
        for name in ("init_delay", "waiting_delay", "step1_delay"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        for name in ("step1_transition", "step2_transition", "default_transition"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")


@dataclass
class ScenarioState:
    """Where the autonomous driver is in the story."""
    current_step: RollupState = RollupState.INIT
    step_start_time: float = 0.0
    last_ratio: float = 0.0     # Sampled in step2; drives nothing


def parse_state(name: Union[RollupState, str]) -> RollupState:
    if isinstance(name, RollupState):
        return name
    try:
        return RollupState(name)
    except ValueError:
        valid = ", ".join(s.value for s in RollupState)
        raise ValueError(f"Unknown state {name!r}; expected one of: {valid}") from None


class StateController:
    """
    Named-state machine plus the autonomous scenario driver.

    set_state() is instantaneous replacement: it captures the current
    (possibly mid-flight) positions and re-arms the animator toward the
    targets of the new state.
    """

    def __init__(
        self,
        chains: ChainSet,
        animator: ChainPositionAnimator,
        anchor: Tuple[float, float] = (0.0, 0.0),
        config: Optional[ScenarioConfig] = None,
        clock=None
    ):
        self.chains = chains
        self.animator = animator
        self.anchor = np.asarray(anchor, dtype=np.float64)
        self.config = config or ScenarioConfig()
        self.clock = clock or MonotonicClock()

        self.state = RollupState.INIT
        self.previous_state: Optional[RollupState] = None
        self.scenario = ScenarioState(step_start_time=self.clock.now())

    # ==================== State Machine ====================

    def current_state(self) -> RollupState:
        return self.state

    def target_distance_for(self, state: Union[RollupState, str]) -> float:
        """Separation between a side circle and the center circle for `state`."""
        state = parse_state(state)
        r = self.chains.radius

        if state == RollupState.STEP1:
            return r * self.config.step1_distance_factor
        if state == RollupState.STEP2:
            return 0.0
        return r * 2

    def targets_for(self, state: Union[RollupState, str]) -> Dict[ChainId, np.ndarray]:
        """Target centers for `state`; in step2 every circle goes to the anchor."""
        state = parse_state(state)

        if state == RollupState.STEP2:
            return {chain: self.anchor.copy() for chain in CHAIN_ORDER}

        spacing = np.array([self.target_distance_for(state), 0.0])
        return {
            ChainId.A: self.anchor - spacing,
            ChainId.B: self.anchor.copy(),
            ChainId.C: self.anchor + spacing,
        }

    def transition_duration(self, state: Union[RollupState, str]) -> float:
        state = parse_state(state)
        if state == RollupState.STEP1:
            return self.config.step1_transition
        if state == RollupState.STEP2:
            return self.config.step2_transition
        return self.config.default_transition

    def set_state(self, name: Union[RollupState, str], now: Optional[float] = None) -> None:
        """
        Switch to `name` and start gliding toward its layout.

        Re-entering the current state is allowed and restarts the glide.
        """
        new_state = parse_state(name)
        now = self.clock.now() if now is None else now

        self.previous_state = self.state
        self.state = new_state

        self.animator.arm(
            self.targets_for(new_state),
            self.transition_duration(new_state),
            now,
        )

        logger.info(
            f"State {self.previous_state.value} -> {new_state.value} "
            f"(target distance {self.target_distance_for(new_state):.1f}, "
            f"duration {self.transition_duration(new_state):.0f}ms)"
        )

    # ==================== Scenario Driver ====================

    def start_scenario(self, now: Optional[float] = None) -> None:
        """Rewind the autonomous driver to init."""
        now = self.clock.now() if now is None else now
        self.scenario = ScenarioState(current_step=RollupState.INIT, step_start_time=now)

    def update_scenario(self, now: float) -> None:
        """Advance the scenario if the current step has run its course."""
        elapsed = now - self.scenario.step_start_time
        step = self.scenario.current_step

        if step == RollupState.INIT:
            if elapsed >= self.config.init_delay:
                self._advance_scenario(RollupState.WAITING, now)
        elif step == RollupState.WAITING:
            if elapsed >= self.config.waiting_delay:
                self._advance_scenario(RollupState.STEP1, now)
        elif step == RollupState.STEP1:
            if elapsed >= self.config.step1_delay:
                self._advance_scenario(RollupState.STEP2, now)
        elif step == RollupState.STEP2:
            # Terminal
            self.scenario.last_ratio = intersection_ratio(
                self.chains[ChainId.A], self.chains[ChainId.B]
            )

    def _advance_scenario(self, next_step: RollupState, now: float) -> None:
        logger.info(f"Scenario {self.scenario.current_step.value} -> {next_step.value}")
        self.set_state(next_step, now)
        self.scenario.current_step = next_step
        self.scenario.step_start_time = now

    def __repr__(self) -> str:
        return (
            f"StateController(state={self.state.value}, "
            f"scenario={self.scenario.current_step.value})"
        )
