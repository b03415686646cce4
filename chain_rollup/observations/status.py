"""
observations/status.py

Words around the picture.

The status banner and the labels are pure functions of the frame and
the clock; a renderer only has to put the strings where they say.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import math
from typing import Dict, List, Optional, Tuple

from chain_rollup.core.easing import ease_in_out_quad
from chain_rollup.core.geometry import COMPLETION_RATIO

from .snapshot import FrameSnapshot

SYNC_MESSAGE = "Rollup syncing in progress"
COMPLETE_MESSAGE = "Rollup sync completed."
EVOLUTION_MESSAGE = "Preparing for evolution"


@dataclass
class StatusConfig:
    """Thresholds and timing for the status banner and labels (ms)."""
    dots_interval: float = 500.0          # Trailing-dot cycle period
    fade_rate: float = 0.1                # Fraction of remaining fade per update
    active_low: float = 0.1               # Banner wants to be visible above this ratio
    message_low: float = 0.35             # Syncing message shown from here
    complete: float = COMPLETION_RATIO    # Completed message from here
    label_spread_threshold: float = 0.7   # Chain labels leave their circles from here
    label_fade_in: float = 1000.0         # Completed node labels fade in over this


@dataclass
class StatusLine:
    text: str
    role: str          # "main", "percentage" or "evolution"


@dataclass
class StatusText:
    """The banner as it should appear this frame."""
    lines: List[StatusLine] = field(default_factory=list)
    opacity: float = 0.0
    completed: bool = False

    @property
    def visible(self) -> bool:
        return bool(self.lines) and self.opacity > 0


class StatusBanner:
    """
    "Rollup syncing in progress..." with a percentage, fading in and out
    with the ratio, and a completion message once the chains have merged.
    """

    def __init__(self, config: Optional[StatusConfig] = None):
        self.config = config or StatusConfig()
        self.dots = "."
        self.dots_timer = 0.0
        self.fade_opacity = 0.0
        self.fade_target = 0.0

    def update(self, ratio: float, now: float) -> StatusText:
        cfg = self.config
        percentage = int(round(ratio * 100))

        if cfg.active_low < ratio < cfg.complete:
            if now - self.dots_timer > cfg.dots_interval:
                self.dots = "." if len(self.dots) >= 3 else self.dots + "."
                self.dots_timer = now
            self.fade_target = 1.0
        else:
            self.fade_target = 0.0

        self.fade_opacity += (self.fade_target - self.fade_opacity) * cfg.fade_rate

        syncing = [
            StatusLine(f"{SYNC_MESSAGE}{self.dots}", "main"),
            StatusLine(f"{percentage}%", "percentage"),
        ]

        if cfg.message_low <= ratio < cfg.complete:
            return StatusText(syncing, self.fade_opacity)

        if ratio >= cfg.complete:
            return StatusText(
                [
                    StatusLine(COMPLETE_MESSAGE, "main"),
                    StatusLine("100%", "percentage"),
                    StatusLine(f"{EVOLUTION_MESSAGE}{self.dots}", "evolution"),
                ],
                1.0,
                completed=True,
            )

        # Fading out below the message threshold
        if self.fade_opacity > 0.01:
            return StatusText(syncing, self.fade_opacity)
        return StatusText()


# ==================== Labels ====================

@dataclass(frozen=True)
class Label:
    text: str
    x: float
    y: float
    opacity: float = 1.0
    angle: Optional[float] = None     # Node angle, for alignment


def chain_label_positions(
    snapshot: FrameSnapshot,
    center: Tuple[float, float],
    config: Optional[StatusConfig] = None
) -> Dict[str, Tuple[float, float]]:
    """
    Where the "A"/"B"/"C" titles go.

    Below the config's label spread threshold each sits on its own
    circle. Above it the circles overlap too much for that, so the titles
    spread around the shared center with a floor on their spacing.
    """
    threshold = (config or StatusConfig()).label_spread_threshold
    ratio = snapshot.intersection_ratio

    if ratio < threshold:
        return {c.chain: (c.x, c.y) for c in snapshot.circles}

    radius = snapshot.circles[0].radius
    t = (ratio - threshold) / (1 - threshold)
    eased = ease_in_out_quad(min(max(t, 0.0), 1.0))

    min_spacing = max(radius * 0.6, 56.0)
    spacing = max(min_spacing, radius * 0.3 * (1 - eased))
    cx, cy = center
    a = snapshot.circle("A")
    y = a.y if a is not None else cy

    return {
        "A": (min(cx - spacing, cx - min_spacing), y),
        "B": (cx, y),
        "C": (max(cx + spacing, cx + min_spacing), y),
    }


class NodeLabeler:
    """
    N1..N16 beside every node while syncing; once complete, only chain
    A's nodes are labelled with their layer mapping, fading in.
    """

    def __init__(self, config: Optional[StatusConfig] = None):
        self.config = config or StatusConfig()
        self.fade_start_time: Optional[float] = None

    def update(self, snapshot: FrameSnapshot, now: float) -> List[Label]:
        ratio = snapshot.intersection_ratio
        complete = ratio >= self.config.complete

        if complete and self.fade_start_time is None:
            self.fade_start_time = now
        elif not complete:
            self.fade_start_time = None

        fade = 1.0
        if self.fade_start_time is not None:
            fade = min((now - self.fade_start_time) / self.config.label_fade_in, 1.0)

        radius = snapshot.circles[0].radius if snapshot.circles else 0.0
        offset = radius * 0.05

        labels = []
        for node in snapshot.nodes:
            x = node.x + math.cos(node.angle) * offset
            y = node.y + math.sin(node.angle) * offset

            if complete:
                if node.chain != "A":
                    continue
                n = node.number
                labels.append(Label(f"L2(N{n}) : L3(N{n}) : L3(N{n})", x, y, fade, node.angle))
            else:
                labels.append(Label(f"N{node.number}", x, y, 1.0, node.angle))

        return labels
