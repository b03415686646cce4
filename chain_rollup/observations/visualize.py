"""
observations/visualize.py

Watch the chains converge.

The renderer consumes snapshots and produces pixels. It never touches
the field's live state; the only thing it sends back are the three
triggers a viewer can press.

Inspired by:
- Canvas animation loops
- Scientific visualization
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import math
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from chain_rollup.core.clock import MonotonicClock

from .status import NodeLabeler, StatusBanner, StatusConfig, chain_label_positions

if TYPE_CHECKING:
    from chain_rollup.environments.rollup_field import RollupField
    from .snapshot import FrameSnapshot

logger = logging.getLogger(__name__)

INK = (40 / 255, 40 / 255, 40 / 255)
REGION_FILL = (0.0, 0.0, 0.0, 0.1)

# Keyboard stand-ins for the waiting / step1 / step2 buttons
KEY_TRIGGERS: Dict[str, str] = {
    "w": "waiting",
    "1": "step1",
    "2": "step2",
}

FONT_SIZES = {"main": 14, "percentage": 20, "evolution": 16}


@dataclass
class Viewport:
    """Drawing surface size and the geometry that fits inside it."""
    width: float
    height: float
    radius: float
    center: Tuple[float, float]


def layout_for_viewport(width: float, browser_height: Optional[float] = None) -> Viewport:
    """
    Fit three chains into a window `width` wide.

    Height follows a 14:9 aspect with a floor, capped by the browser
    height on wide windows. The radius is bounded by both dimensions and
    the surface is at least three and a half diameters wide.
    """
    aspect = 14 / 9
    min_width, min_height = 700.0, 650.0

    if width < 800 or browser_height is None:
        canvas_height = max(width / aspect, min_height)
    else:
        canvas_height = min(max(width / aspect, min_height), browser_height * 0.58)

    radius = min(width * 0.28, canvas_height * 0.22)
    canvas_width = max(min_width, radius * 3.5 * 2)

    return Viewport(
        width=canvas_width,
        height=canvas_height,
        radius=radius,
        center=(canvas_width / 2, canvas_height / 2.2),
    )


class RollupVisualizer:
    """
    matplotlib renderer for a RollupField.

    y grows downward, as on a canvas, so node 1 sits at the top.
    """

    def __init__(
        self,
        field: RollupField,
        figsize: Optional[tuple] = None,
        status_config: Optional[StatusConfig] = None,
        interactive: bool = True,
        viewport: Optional[Viewport] = None
    ):
        self.field = field
        self.viewport = viewport
        if figsize is None:
            figsize = (viewport.width / 100, viewport.height / 100) if viewport else (10, 7)
        self.figsize = figsize
        self.status_config = status_config or StatusConfig()
        self.interactive = interactive

        self.banner = StatusBanner(self.status_config)
        self.node_labeler = NodeLabeler(self.status_config)

        # Lazy import matplotlib
        self._plt = None
        self._fig = None
        self._ax = None

    def _setup_plot(self):
        """Initialize matplotlib figure."""
        import matplotlib.pyplot as plt
        self._plt = plt

        self._fig, self._ax = plt.subplots(figsize=self.figsize)
        self._fig.patch.set_facecolor("white")
        self._fig.canvas.mpl_connect("key_press_event", self._on_key)

    def _on_key(self, event) -> None:
        state = KEY_TRIGGERS.get(getattr(event, "key", None))
        if state is not None:
            logger.info(f"Key {event.key!r} -> {state}")
            self.field.set_state(state)

    def _bounds(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        if self.viewport is not None:
            return (0.0, self.viewport.width), (self.viewport.height, 0.0)

        # No window to fit: frame the initial layout around the anchor
        r = self.field.chains.radius
        cx, cy = self.field.config.center
        return (cx - 3.5 * r, cx + 3.5 * r), (cy + 1.8 * r, cy - 1.4 * r)

    def render(self, snapshot: Optional[FrameSnapshot] = None) -> None:
        """Draw one frame."""
        if self._plt is None:
            self._setup_plot()

        snapshot = snapshot or self.field.get_state_snapshot()
        ax = self._ax

        ax.clear()
        xlim, ylim = self._bounds()
        ax.set_xlim(xlim)
        ax.set_ylim(ylim)   # inverted: canvas coordinates
        ax.set_aspect("equal")
        ax.axis("off")

        self._render_regions(snapshot)
        self._render_chains(snapshot)
        self._render_nodes(snapshot)
        self._render_node_labels(snapshot)
        self._render_lines(snapshot)
        self._render_chain_labels(snapshot)
        self._render_status(snapshot)

        if self.interactive:
            self._plt.pause(0.001)

    def _render_regions(self, snapshot: FrameSnapshot) -> None:
        from matplotlib.patches import Polygon

        for region in snapshot.regions:
            self._ax.add_patch(Polygon(
                region.boundary(), closed=True,
                facecolor=REGION_FILL, edgecolor="none",
            ))

    def _render_chains(self, snapshot: FrameSnapshot) -> None:
        from matplotlib.patches import Circle as CirclePatch

        for c in snapshot.circles:
            self._ax.add_patch(CirclePatch(
                (c.x, c.y), c.radius,
                fill=False, edgecolor=INK, linewidth=1,
            ))

    def _render_nodes(self, snapshot: FrameSnapshot) -> None:
        if not snapshot.nodes:
            return
        self._ax.scatter(
            [n.x for n in snapshot.nodes],
            [n.y for n in snapshot.nodes],
            s=6,
            color=[(*INK, n.opacity) for n in snapshot.nodes],
            zorder=3,
        )

    def _render_lines(self, snapshot: FrameSnapshot) -> None:
        from matplotlib.collections import LineCollection

        if not snapshot.lines:
            return

        segments = [[line.start, line.head] for line in snapshot.lines]
        colors = [(*INK, min(max(line.opacity, 0.0), 1.0)) for line in snapshot.lines]
        self._ax.add_collection(LineCollection(segments, colors=colors, linewidths=1, zorder=2))

    def _render_node_labels(self, snapshot: FrameSnapshot) -> None:
        for label in self.node_labeler.update(snapshot, snapshot.time):
            ha, va = _alignment_for(label.angle)
            self._ax.text(
                label.x, label.y, label.text,
                fontsize=7, family="serif", ha=ha, va=va,
                color=(*INK, label.opacity),
            )

    def _render_chain_labels(self, snapshot: FrameSnapshot) -> None:
        r = self.field.chains.radius
        spacing = min(max(r * 0.2, 16), 24) * 0.65
        positions = chain_label_positions(
            snapshot, self.field.config.center, self.status_config
        )

        for chain, (x, y) in positions.items():
            self._ax.text(x, y - spacing / 2, chain, fontsize=16, weight="bold",
                          family="serif", ha="center", va="center", color=INK)
            self._ax.text(x, y + spacing / 2, f"Chain {chain}", fontsize=9,
                          family="serif", ha="center", va="center", color=INK)

    def _render_status(self, snapshot: FrameSnapshot) -> None:
        status = self.banner.update(snapshot.intersection_ratio, snapshot.time)
        if not status.visible:
            return

        r = self.field.chains.radius
        cx, cy = self.field.config.center
        base_y = cy + (0.32 * r if status.completed else 1.3 * r)

        for i, line in enumerate(status.lines):
            self._ax.text(
                cx, base_y + i * 0.25 * r, line.text,
                fontsize=FONT_SIZES.get(line.role, 14), family="serif",
                ha="center", va="center", color=(*INK, status.opacity),
            )

    def save_frame(self, path: str) -> None:
        """Save current frame to file."""
        if self._fig is not None:
            self._fig.savefig(path, dpi=150, facecolor=self._fig.get_facecolor())

    def close(self) -> None:
        """Close the visualization."""
        if self._plt is not None:
            self._plt.close(self._fig)


def _alignment_for(angle: Optional[float]) -> Tuple[str, str]:
    """Text anchor for a label sitting just outside a node at `angle`."""
    if angle is None:
        return "center", "center"

    a = angle % (2 * math.pi)
    if a <= math.pi * 0.25 or a > math.pi * 1.75:
        return "left", "center"
    if a <= math.pi * 0.75:
        return "center", "top"       # below the circle (canvas y down)
    if a <= math.pi * 1.25:
        return "right", "center"
    return "center", "bottom"


def animate_study(
    field: RollupField,
    steps: int = 600,
    frame_ms: Optional[float] = None,
    save_path: Optional[str] = None,
    interactive: bool = True,
    viewport: Optional[Viewport] = None
) -> List[FrameSnapshot]:
    """
    Drive the field and draw every frame.

    With `frame_ms` set, the field's clock must be a ManualClock and is
    advanced by that much per frame; otherwise frames follow wall time.
    `viewport`, when given, sets the drawing surface (see
    layout_for_viewport). Returns the snapshots rendered.
    """
    if frame_ms is None and not isinstance(field.clock, MonotonicClock):
        logger.warning("Clock is not monotonic and no frame_ms given; time will not advance")

    viz = RollupVisualizer(field, interactive=interactive, viewport=viewport)
    frames: List[FrameSnapshot] = []

    try:
        for _ in range(steps):
            if frame_ms is not None:
                field.clock.advance(frame_ms)
            field.tick()
            snapshot = field.get_state_snapshot()
            viz.render(snapshot)
            frames.append(snapshot)

        if save_path:
            viz.save_frame(save_path)

    finally:
        viz.close()

    return frames
