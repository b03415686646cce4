"""
Study 01: Rollup Sync Observation

Run: python -m chain_rollup.studies.01_rollup_sync.observe

Watch three chains drift together and settle into one.
Press w / 1 / 2 in the window to jump to waiting / step1 / step2.
"""

import argparse
import logging
from typing import Optional

from chain_rollup.core.clock import ManualClock
from chain_rollup.environments.rollup_field import RollupField, FieldConfig
from chain_rollup.observations.visualize import Viewport, animate_study, layout_for_viewport


def field_config_for(viewport: Viewport, seed: Optional[int] = None) -> FieldConfig:
    """Chains sized and centered for the drawing surface."""
    return FieldConfig(radius=viewport.radius, center=viewport.center, seed=seed)


def run_study(
    steps: int = 3600,
    seed: int = 7,
    frame_ms: float = 1000 / 60,
    animate: bool = True,
    save_path: Optional[str] = None,
    width: float = 1400.0,
    browser_height: Optional[float] = None
) -> RollupField:
    """
    Run the scenario from init and report what happened.

    The chains are sized and placed to fit a window `width` wide.
    Returns the field as it stands after the last step.
    """
    print("=" * 50)
    print("Study 01: Rollup Sync")
    print("=" * 50)
    print("\nThree chains. One ledger, eventually.")
    print("-" * 50)

    viewport = layout_for_viewport(width, browser_height)
    clock = ManualClock()
    field = RollupField(field_config_for(viewport, seed), clock=clock)

    print(f"Created {field}")
    print(f"Canvas {viewport.width:.0f}x{viewport.height:.0f}, radius {viewport.radius:.1f}")
    print(f"\nRunning {steps} steps at {frame_ms:.2f}ms per frame...")

    if animate:
        animate_study(
            field, steps=steps, frame_ms=frame_ms,
            save_path=save_path, viewport=viewport
        )
    else:
        last_state = None
        for step in range(steps):
            clock.advance(frame_ms)
            field.tick()

            if field.state != last_state or step % 300 == 0:
                snapshot = field.get_state_snapshot()
                intersection = sum(1 for line in snapshot.lines if line.is_intersection)
                print(
                    f"  Step {step} ({clock.now() / 1000:.1f}s): "
                    f"state={snapshot.state}, ratio={snapshot.intersection_ratio:.3f}, "
                    f"lines={len(snapshot.lines)} ({intersection} intersection)"
                )
                last_state = field.state

    # Analysis
    print("\n" + "=" * 50)
    print("Observations")
    print("=" * 50)

    snapshot = field.get_state_snapshot()
    print(f"\nFinal state: {snapshot.state} (scenario: {snapshot.scenario_step})")
    print(f"Synchronization: {snapshot.percentage}%")
    print(f"Batches generated: {field.scheduler.state.batches_created}")
    for circle in snapshot.circles:
        print(f"  Chain {circle.chain}: center=[{circle.x:.1f}, {circle.y:.1f}]")

    print("\n" + "=" * 50)
    print("Study complete. Did the chains converge?")
    print("=" * 50)

    return field


def main():
    parser = argparse.ArgumentParser(description="Rollup Sync Study")
    parser.add_argument("--steps", type=int, default=3600)
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--frame-ms", type=float, default=1000 / 60)
    parser.add_argument("--no-animate", action="store_true")
    parser.add_argument("--save", type=str, default=None,
                        help="Save the final frame to this path")
    parser.add_argument("--width", type=float, default=1400.0,
                        help="Window width the chains are laid out for")
    parser.add_argument("--browser-height", type=float, default=None)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    run_study(
        steps=args.steps,
        seed=args.seed,
        frame_ms=args.frame_ms,
        animate=not args.no_animate,
        save_path=args.save,
        width=args.width,
        browser_height=args.browser_height
    )


if __name__ == "__main__":
    main()
