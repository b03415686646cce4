"""
core/nodes.py

Sixteen points on every circumference, fixed at birth.

A node knows its chain and its angle. It never knows where it is:
position is asked of the circle, every tick, so the node travels
with whatever circle it belongs to.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Tuple
import numpy as np

from .chain import CHAIN_ORDER, ChainId, Circle

NODES_PER_CHAIN = 16


@dataclass
class BoundaryNode:
    """A fixed-angle point on a chain's circumference."""
    chain: ChainId
    index: int                  # 0-based position in the registry
    angle: float                # Chain-local angle in radians
    opacity: float = 1.0        # Cosmetic only

    @property
    def number(self) -> int:
        """1-based label number (N1..N16)."""
        return self.index + 1

    @property
    def key(self) -> Tuple[ChainId, float]:
        return (self.chain, self.angle)


def node_angle(index: int, count: int = NODES_PER_CHAIN) -> float:
    """Angle of the index-th node: evenly spaced, clockwise from the top."""
    return -index * (2 * np.pi / count) - np.pi / 2


def world_position(angle: float, circle: Circle) -> np.ndarray:
    """Where a chain-local angle sits in the world, given the circle right now."""
    return circle.center + circle.radius * np.array([np.cos(angle), np.sin(angle)])


class NodeRegistry:
    """
    The full set of boundary nodes, built once.

    Nothing here is mutated after construction except node opacity.
    """

    def __init__(self):
        self._nodes: Dict[ChainId, List[BoundaryNode]] = {
            chain: [
                BoundaryNode(chain=chain, index=i, angle=node_angle(i))
                for i in range(NODES_PER_CHAIN)
            ]
            for chain in CHAIN_ORDER
        }

        for chain, nodes in self._nodes.items():
            assert len(nodes) == NODES_PER_CHAIN, f"chain {chain.value} has {len(nodes)} nodes"

    def nodes_of(self, chain: ChainId) -> List[BoundaryNode]:
        return self._nodes[chain]

    def all_nodes(self) -> List[BoundaryNode]:
        return [node for chain in CHAIN_ORDER for node in self._nodes[chain]]

    def world_position(self, node: BoundaryNode, circle: Circle) -> np.ndarray:
        return world_position(node.angle, circle)

    def __len__(self) -> int:
        return sum(len(nodes) for nodes in self._nodes.values())

    def __repr__(self) -> str:
        return f"NodeRegistry(chains={len(self._nodes)}, nodes={len(self)})"
