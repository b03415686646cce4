"""
Tests for core/animator.py and core/easing.py

Eased transitions of circle centers.
"""

import numpy as np
import pytest

from chain_rollup.core.animator import AnimationState, ChainPositionAnimator
from chain_rollup.core.chain import CHAIN_ORDER, ChainId, ChainSet
from chain_rollup.core.easing import ease_in_out_quad, ease_out_quint, lerp


def make_chains():
    return ChainSet(100.0, {
        ChainId.A: np.array([-200.0, 0.0]),
        ChainId.B: np.array([0.0, 0.0]),
        ChainId.C: np.array([200.0, 0.0]),
    })


TARGETS = {
    ChainId.A: np.array([-140.0, 0.0]),
    ChainId.B: np.array([0.0, 0.0]),
    ChainId.C: np.array([140.0, 0.0]),
}


class TestEasing:
    """Tests for easing curves."""

    def test_ease_out_quint_endpoints(self):
        assert ease_out_quint(0.0) == 0.0
        assert ease_out_quint(1.0) == 1.0

    def test_ease_out_quint_midpoint(self):
        assert ease_out_quint(0.5) == pytest.approx(1 - 0.5 ** 5)

    def test_ease_out_quint_monotonic(self):
        values = [ease_out_quint(x) for x in np.linspace(0, 1, 50)]
        assert all(a <= b for a, b in zip(values, values[1:]))

    def test_ease_in_out_quad(self):
        assert ease_in_out_quad(0.0) == 0.0
        assert ease_in_out_quad(0.5) == pytest.approx(0.5)
        assert ease_in_out_quad(1.0) == 1.0
        assert ease_in_out_quad(0.25) == pytest.approx(0.125)

    def test_lerp(self):
        assert lerp(10.0, 20.0, 0.25) == pytest.approx(12.5)

    def test_lerp_positions(self):
        start = np.array([-200.0, 0.0])
        end = np.array([-140.0, 30.0])
        assert np.allclose(lerp(start, end, 0.5), [-170.0, 15.0])


class TestChainPositionAnimator:
    """Tests for the position animator."""

    def test_initial_state_idle(self):
        animator = ChainPositionAnimator(make_chains())
        assert isinstance(animator.state, AnimationState)
        assert not animator.in_progress

    def test_zero_elapsed_leaves_positions(self):
        chains = make_chains()
        animator = ChainPositionAnimator(chains)
        before = chains.positions()

        animator.arm(TARGETS, duration=1000.0, now=50.0)
        animator.step(50.0)

        for chain in CHAIN_ORDER:
            assert np.array_equal(chains[chain].center, before[chain])
        assert animator.in_progress

    def test_full_duration_reaches_targets_exactly(self):
        chains = make_chains()
        animator = ChainPositionAnimator(chains)

        animator.arm(TARGETS, duration=1000.0, now=0.0)
        progress = animator.step(1000.0)

        assert progress == 1.0
        assert not animator.in_progress
        for chain in CHAIN_ORDER:
            assert np.array_equal(chains[chain].center, TARGETS[chain])

    def test_midway_uses_quintic_ease(self):
        chains = make_chains()
        animator = ChainPositionAnimator(chains)

        animator.arm(TARGETS, duration=1000.0, now=0.0)
        animator.step(500.0)

        eased = 1 - 0.5 ** 5
        assert chains[ChainId.A].x == pytest.approx(-200.0 + 60.0 * eased)
        assert chains[ChainId.C].x == pytest.approx(200.0 - 60.0 * eased)
        assert chains[ChainId.B].x == pytest.approx(0.0)

    def test_no_mutation_after_finish(self):
        chains = make_chains()
        animator = ChainPositionAnimator(chains)

        animator.arm(TARGETS, duration=100.0, now=0.0)
        animator.step(200.0)
        chains.move(ChainId.A, np.array([1.0, 1.0]))
        animator.step(300.0)

        assert np.allclose(chains[ChainId.A].center, [1.0, 1.0])

    def test_rearm_starts_from_current_position(self):
        chains = make_chains()
        animator = ChainPositionAnimator(chains)

        animator.arm(TARGETS, duration=1000.0, now=0.0)
        animator.step(300.0)
        midway = chains[ChainId.A].center.copy()

        home = {c: np.zeros(2) for c in CHAIN_ORDER}
        animator.arm(home, duration=1000.0, now=300.0)

        assert np.allclose(animator.state.start_pos[ChainId.A], midway)
        animator.step(300.0)
        assert np.allclose(chains[ChainId.A].center, midway)

        animator.step(1300.0)
        assert np.allclose(chains[ChainId.A].center, [0.0, 0.0])

    def test_superseded_animation_never_completes(self):
        chains = make_chains()
        animator = ChainPositionAnimator(chains)

        animator.arm(TARGETS, duration=1000.0, now=0.0)
        animator.step(100.0)
        home = {c: np.array([0.0, 50.0]) for c in CHAIN_ORDER}
        animator.arm(home, duration=5000.0, now=100.0)
        animator.step(1100.0)

        # The first glide's end time has passed; the second one owns the circles
        assert not np.allclose(chains[ChainId.A].center, TARGETS[ChainId.A])
        assert animator.in_progress

    def test_progress_clamped(self):
        animator = ChainPositionAnimator(make_chains())
        animator.arm(TARGETS, duration=10.0, now=0.0)
        assert animator.step(1e6) == 1.0
