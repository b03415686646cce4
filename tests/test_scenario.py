"""
Tests for protocols/scenario.py

Named states, target layouts, and the autonomous scenario driver.
"""

import numpy as np
import pytest

from chain_rollup.core.animator import ChainPositionAnimator
from chain_rollup.core.chain import CHAIN_ORDER, ChainId, ChainSet
from chain_rollup.core.clock import ManualClock
from chain_rollup.protocols.scenario import (
    RollupState,
    ScenarioConfig,
    ScenarioState,
    StateController,
    parse_state,
)

R = 100.0


def make_controller(config=None, clock=None, anchor=(0.0, 0.0)):
    anchor = np.asarray(anchor, dtype=np.float64)
    chains = ChainSet(R, {
        ChainId.A: anchor - [2 * R, 0.0],
        ChainId.B: anchor.copy(),
        ChainId.C: anchor + [2 * R, 0.0],
    })
    animator = ChainPositionAnimator(chains)
    clock = clock or ManualClock()
    controller = StateController(chains, animator, anchor=tuple(anchor), config=config, clock=clock)
    return controller, chains, animator, clock


class TestScenarioConfig:
    """Tests for ScenarioConfig dataclass."""

    def test_default_config(self):
        config = ScenarioConfig()
        assert config.init_delay == 500.0
        assert config.waiting_delay == 5000.0
        assert config.step1_delay == 1000.0
        assert config.step1_transition == 400000.0
        assert config.step2_transition == 30000.0
        assert config.default_transition == 1000.0
        assert config.step1_distance_factor == 1.4

    def test_rejects_negative_delay(self):
        with pytest.raises(ValueError):
            ScenarioConfig(init_delay=-1.0)

    def test_rejects_zero_transition(self):
        with pytest.raises(ValueError):
            ScenarioConfig(step2_transition=0.0)


class TestParseState:
    """Tests for state name parsing."""

    def test_parse_names(self):
        assert parse_state("init") is RollupState.INIT
        assert parse_state("step2") is RollupState.STEP2
        assert parse_state(RollupState.WAITING) is RollupState.WAITING

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown state"):
            parse_state("step3")


class TestTargets:
    """Tests for target distances and layouts."""

    def test_target_distance_for(self):
        controller, *_ = make_controller()
        assert controller.target_distance_for("init") == pytest.approx(2 * R)
        assert controller.target_distance_for("waiting") == pytest.approx(2 * R)
        assert controller.target_distance_for("step1") == pytest.approx(1.4 * R)
        assert controller.target_distance_for("step2") == 0.0

    def test_target_distance_is_pure(self):
        controller, chains, animator, _ = make_controller()
        before = chains.positions()
        controller.target_distance_for("step1")
        assert controller.current_state() is RollupState.INIT
        assert not animator.in_progress
        assert np.array_equal(chains[ChainId.A].center, before[ChainId.A])

    def test_step1_spreads_around_anchor(self):
        controller, *_ = make_controller(anchor=(300.0, 200.0))
        targets = controller.targets_for("step1")
        assert np.allclose(targets[ChainId.A], [300.0 - 1.4 * R, 200.0])
        assert np.allclose(targets[ChainId.B], [300.0, 200.0])
        assert np.allclose(targets[ChainId.C], [300.0 + 1.4 * R, 200.0])

    def test_step2_collapses_onto_anchor(self):
        controller, *_ = make_controller(anchor=(300.0, 200.0))
        targets = controller.targets_for("step2")
        for chain in CHAIN_ORDER:
            assert np.allclose(targets[chain], [300.0, 200.0])

    def test_transition_durations(self):
        controller, *_ = make_controller()
        assert controller.transition_duration("step1") == 400000.0
        assert controller.transition_duration("step2") == 30000.0
        assert controller.transition_duration("waiting") == 1000.0
        assert controller.transition_duration("init") == 1000.0


class TestSetState:
    """Tests for manual state changes."""

    def test_set_state_arms_animator(self):
        controller, _, animator, clock = make_controller()
        clock.advance(250.0)
        controller.set_state("step1")

        assert controller.current_state() is RollupState.STEP1
        assert controller.previous_state is RollupState.INIT
        assert animator.in_progress
        assert animator.state.start_time == 250.0
        assert animator.state.duration == 400000.0

    def test_set_state_explicit_now(self):
        controller, _, animator, _ = make_controller()
        controller.set_state("step2", now=1234.0)
        assert animator.state.start_time == 1234.0

    def test_set_state_unknown_raises(self):
        controller, *_ = make_controller()
        with pytest.raises(ValueError):
            controller.set_state("finale")
        assert controller.current_state() is RollupState.INIT

    def test_reentry_rearms(self):
        controller, _, animator, _ = make_controller()
        controller.set_state("waiting", now=0.0)
        animator.step(2000.0)
        assert not animator.in_progress

        controller.set_state("waiting", now=3000.0)
        assert animator.in_progress
        assert animator.state.start_time == 3000.0

    def test_manual_trigger_does_not_move_scenario(self):
        controller, *_ = make_controller()
        controller.set_state("step2", now=0.0)
        assert controller.scenario.current_step is RollupState.INIT


class TestScenarioDriver:
    """Tests for autonomous progression."""

    def test_initial_scenario(self):
        controller, *_ = make_controller()
        assert isinstance(controller.scenario, ScenarioState)
        assert controller.scenario.current_step is RollupState.INIT

    def test_progression_timing(self):
        controller, *_ = make_controller()
        controller.start_scenario(now=0.0)

        controller.update_scenario(499.0)
        assert controller.scenario.current_step is RollupState.INIT

        controller.update_scenario(500.0)
        assert controller.scenario.current_step is RollupState.WAITING
        assert controller.current_state() is RollupState.WAITING
        assert controller.scenario.step_start_time == 500.0

        controller.update_scenario(5499.0)
        assert controller.scenario.current_step is RollupState.WAITING

        controller.update_scenario(5500.0)
        assert controller.scenario.current_step is RollupState.STEP1
        assert controller.current_state() is RollupState.STEP1

        controller.update_scenario(6499.0)
        assert controller.scenario.current_step is RollupState.STEP1

        controller.update_scenario(6500.0)
        assert controller.scenario.current_step is RollupState.STEP2
        assert controller.current_state() is RollupState.STEP2

    def test_step2_is_terminal(self):
        controller, _, animator, _ = make_controller()
        controller.start_scenario(now=0.0)
        for now in (500.0, 5500.0, 6500.0):
            controller.update_scenario(now)
        armed_at = animator.state.start_time

        for now in (1e5, 1e7, 1e9):
            controller.update_scenario(now)
            assert controller.scenario.current_step is RollupState.STEP2
            assert controller.current_state() is RollupState.STEP2

        assert animator.state.start_time == armed_at

    def test_fast_clock_reaches_step2(self):
        clock = ManualClock()
        controller, *_ = make_controller(clock=clock)
        controller.start_scenario()

        for _ in range(2000):
            controller.update_scenario(clock.advance(50.0))

        assert controller.scenario.current_step is RollupState.STEP2

    def test_start_scenario_rewinds(self):
        controller, *_ = make_controller()
        controller.start_scenario(now=0.0)
        controller.update_scenario(600.0)
        controller.start_scenario(now=700.0)
        assert controller.scenario.current_step is RollupState.INIT
        assert controller.scenario.step_start_time == 700.0
