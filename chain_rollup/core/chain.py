"""
core/chain.py

Three chains, three circles. Equal in size, unequal in role.

B holds the center. A and C travel toward it.
Only the centers move; the radius is fixed for the life of the run.

Inspired by:
- Venn diagrams
- Rollup settlement onto a shared base layer
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Dict, Iterator, Optional, Tuple, Union
import numpy as np

logger = logging.getLogger(__name__)


class ChainId(str, Enum):
    """Identifier of one of the three chains."""
    A = "A"
    B = "B"
    C = "C"


CHAIN_ORDER: Tuple[ChainId, ...] = (ChainId.A, ChainId.B, ChainId.C)

# Adjacent pairs that share an intersection region with the fixed center chain
ADJACENT_PAIRS: Tuple[Tuple[ChainId, ChainId], ...] = (
    (ChainId.A, ChainId.B),
    (ChainId.B, ChainId.C),
)


@dataclass
class Circle:
    """
    A chain as geometry: a center that moves and a radius that does not.
    """
    chain: ChainId
    center: np.ndarray
    radius: float

    def __post_init__(self):
        self.center = np.asarray(self.center, dtype=np.float64)
        if self.radius <= 0:
            raise ValueError(f"Circle radius must be positive, got {self.radius}")

    @property
    def x(self) -> float:
        return float(self.center[0])

    @property
    def y(self) -> float:
        return float(self.center[1])

    def __repr__(self) -> str:
        return f"Circle({self.chain.value}, center=[{self.x:.2f}, {self.y:.2f}], r={self.radius:.2f})"


def parse_chain(chain: Union[ChainId, str]) -> Optional[ChainId]:
    """Coerce a chain identifier, returning None when it is not A, B or C."""
    if isinstance(chain, ChainId):
        return chain
    try:
        return ChainId(chain)
    except ValueError:
        return None


class ChainSet:
    """
    Lookup table of the three live circles.

    All circles share one radius. Lookups with an unknown identifier
    are reported and yield None; callers skip the work for that tick.
    """

    def __init__(self, radius: float, centers: Dict[ChainId, np.ndarray]):
        if radius <= 0:
            raise ValueError(f"Chain radius must be positive, got {radius}")

        missing = [c for c in CHAIN_ORDER if c not in centers]
        if missing:
            raise ValueError(f"Missing centers for chains: {[c.value for c in missing]}")

        self.radius = float(radius)
        self._circles: Dict[ChainId, Circle] = {
            chain: Circle(chain, centers[chain], self.radius)
            for chain in CHAIN_ORDER
        }

    def get(self, chain: Union[ChainId, str]) -> Optional[Circle]:
        """Return the circle for `chain`, or None for an invalid identifier."""
        key = parse_chain(chain)
        if key is None:
            logger.error(f"Invalid chain identifier: {chain!r}")
            return None
        return self._circles[key]

    def __getitem__(self, chain: ChainId) -> Circle:
        return self._circles[chain]

    def __iter__(self) -> Iterator[Circle]:
        return (self._circles[c] for c in CHAIN_ORDER)

    def others(self, chain: ChainId) -> Tuple[Circle, ...]:
        """The two circles that are not `chain`."""
        return tuple(self._circles[c] for c in CHAIN_ORDER if c != chain)

    def positions(self) -> Dict[ChainId, np.ndarray]:
        """Copy of every center, keyed by chain."""
        return {c: self._circles[c].center.copy() for c in CHAIN_ORDER}

    def move(self, chain: ChainId, center: np.ndarray) -> None:
        self._circles[chain].center = np.asarray(center, dtype=np.float64)

    def __repr__(self) -> str:
        return f"ChainSet(r={self.radius:.2f}, {', '.join(repr(c) for c in self)})"
