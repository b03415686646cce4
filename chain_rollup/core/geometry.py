"""
core/geometry.py

Where circles meet.

Pure functions over circles and points. No state, no clock.
Every formula here assumes the two circles share one radius;
the closed-form intersection depends on it.

Inspired by:
- Compass-and-straightedge constructions
- Vesica piscis
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple
import numpy as np

from .chain import ChainSet, Circle
from .nodes import BoundaryNode, NodeRegistry, world_position

# Centers closer than this are treated as coincident (the lens is the whole disk)
FULL_OVERLAP_EPSILON = 1e-3

# Relative slack for boundary membership; nodes of coincident circles
# sit exactly on each other's circumference
MEMBERSHIP_TOLERANCE = 1e-9

# Intersection ratio from which the three chains count as one
COMPLETION_RATIO = 0.99


def distance(c1: Circle, c2: Circle) -> float:
    """Euclidean distance between two centers."""
    return float(np.linalg.norm(c2.center - c1.center))


def intersection_ratio(c1: Circle, c2: Circle) -> float:
    """
    How far two circles have merged, in [0, 1].

    0 when the circles touch or are apart, 1 when the centers coincide,
    linear in the center distance in between.
    """
    d = distance(c1, c2)
    max_distance = c1.radius * 2

    if d >= max_distance:
        return 0.0
    if d <= 0:
        return 1.0
    return 1.0 - d / max_distance


def circles_overlap(c1: Circle, c2: Circle) -> bool:
    """True when the two discs share area."""
    return distance(c1, c2) < c1.radius * 2


def circle_pair_intersection_points(
    c1: Circle,
    c2: Circle,
    epsilon: float = 0.0
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    The two points where equal-radius circles cross.

    Returns None when the circles do not cross (d >= 2r) or when the
    centers coincide (d <= epsilon); full overlap is the caller's case.
    """
    delta = c2.center - c1.center
    d = float(np.linalg.norm(delta))
    r = c1.radius

    if d >= 2 * r or d <= epsilon:
        return None

    # Equal radii: the chord sits halfway between the centers
    a = d / 2
    h = np.sqrt(r * r - a * a)
    unit = delta / d
    midpoint = c1.center + a * unit
    offset = h * np.array([unit[1], -unit[0]])

    return (midpoint + offset, midpoint - offset)


def point_in_circle(point: np.ndarray, circle: Circle) -> bool:
    """True when `point` lies inside or on `circle`."""
    slack = circle.radius * MEMBERSHIP_TOLERANCE
    return float(np.linalg.norm(np.asarray(point) - circle.center)) <= circle.radius + slack


def node_position(node: BoundaryNode, chains: ChainSet) -> Optional[np.ndarray]:
    circle = chains.get(node.chain)
    if circle is None:
        return None
    return world_position(node.angle, circle)


def node_in_any_other_circle(node: BoundaryNode, chains: ChainSet) -> bool:
    """True when the node lies inside either of the two other circles."""
    pos = node_position(node, chains)
    if pos is None:
        return False
    return any(point_in_circle(pos, other) for other in chains.others(node.chain))


def node_in_all_other_circles(node: BoundaryNode, chains: ChainSet) -> bool:
    """True when the node lies inside both other circles at once."""
    pos = node_position(node, chains)
    if pos is None:
        return False
    return all(point_in_circle(pos, other) for other in chains.others(node.chain))


def nodes_inside(
    nodes: List[BoundaryNode],
    home: Circle,
    other: Circle
) -> List[BoundaryNode]:
    """Nodes of `home` whose world position falls inside `other`."""
    return [
        node for node in nodes
        if point_in_circle(world_position(node.angle, home), other)
    ]


def triple_intersection_nodes(registry: NodeRegistry, chains: ChainSet) -> List[BoundaryNode]:
    """Every boundary node sitting inside both of the other circles."""
    return [
        node for node in registry.all_nodes()
        if node_in_all_other_circles(node, chains)
    ]


def has_triple_intersection(registry: NodeRegistry, chains: ChainSet) -> bool:
    return len(triple_intersection_nodes(registry, chains)) > 0


# ==================== Lens regions ====================

@dataclass(frozen=True)
class LensRegion:
    """
    The shared area of two circles, described as arcs.

    When `full_disk` is set the circles coincide and the region is the
    whole of `first`. Otherwise the boundary runs along `first` from
    `first_arc[0]` to `first_arc[1]`, then along `second` from
    `second_arc[0]` to `second_arc[1]` (radians, increasing).
    """
    first_center: Tuple[float, float]
    second_center: Tuple[float, float]
    radius: float
    full_disk: bool = False
    first_arc: Tuple[float, float] = (0.0, 0.0)
    second_arc: Tuple[float, float] = (0.0, 0.0)

    def boundary(self, samples: int = 64) -> np.ndarray:
        """Sample the region outline as an (n, 2) polygon."""
        if self.full_disk:
            theta = np.linspace(0, 2 * np.pi, samples * 2, endpoint=False)
            return np.asarray(self.first_center) + self.radius * np.column_stack(
                [np.cos(theta), np.sin(theta)]
            )

        first = np.linspace(*self.first_arc, samples)
        second = np.linspace(*self.second_arc, samples)
        return np.vstack([
            np.asarray(self.first_center) + self.radius * np.column_stack([np.cos(first), np.sin(first)]),
            np.asarray(self.second_center) + self.radius * np.column_stack([np.cos(second), np.sin(second)]),
        ])


def _forward_arc(center: np.ndarray, start: np.ndarray, end: np.ndarray) -> Tuple[float, float]:
    a1 = float(np.arctan2(start[1] - center[1], start[0] - center[0]))
    a2 = float(np.arctan2(end[1] - center[1], end[0] - center[0]))
    if a2 < a1:
        a2 += 2 * np.pi
    return (a1, a2)


def lens_region(c1: Circle, c2: Circle) -> Optional[LensRegion]:
    """The overlap of two circles, or None when they do not overlap."""
    d = distance(c1, c2)
    first = (c1.x, c1.y)
    second = (c2.x, c2.y)

    if d <= FULL_OVERLAP_EPSILON:
        return LensRegion(first, second, c1.radius, full_disk=True)

    points = circle_pair_intersection_points(c1, c2)
    if points is None:
        return None

    p0, p1 = points
    return LensRegion(
        first, second, c1.radius,
        first_arc=_forward_arc(c1.center, p0, p1),
        second_arc=_forward_arc(c2.center, p1, p0),
    )
