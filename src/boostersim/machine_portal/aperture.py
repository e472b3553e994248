# One-sided aperture restrictions.
# A restriction blocks one side of one plane over a whole cell: a beam centroid
# strictly on the blocked side anywhere in that cell is lost.

from dataclasses import dataclass
from typing import List

import numpy as np


@dataclass(frozen=True)
class Restriction:
    """Blocked half-aperture in one cell."""
    cell: int
    axis: str
    positive_blocked: bool

    def __post_init__(self):
        if self.axis not in ('x', 'y'):
            raise ValueError(f"Restriction axis must be 'x' or 'y', got {self.axis!r}")

    @property
    def label(self) -> str:
        return f"{self.axis}{'<=0' if self.positive_blocked else '>=0'}"

    def blocks(self, x: float, y: float) -> bool:
        """True if the centroid (x, y) sits on the blocked side."""
        value = x if self.axis == 'x' else y
        return value > 0.0 if self.positive_blocked else value < 0.0


def place_restrictions(rng: np.random.Generator, num_cells: int, per_plane: int = 2) -> List[Restriction]:
    """
    Draw ``per_plane`` restrictions per plane on distinct cells.

    Args:
        rng: Seeded generator; the only source of randomness
        num_cells: Ring size
        per_plane: Restrictions per plane, capped so that cells stay distinct

    Returns:
        Horizontal restrictions first, then vertical ones
    """
    per_plane = min(per_plane, num_cells // 2)
    if per_plane <= 0:
        return []
    cells = rng.choice(num_cells, size=2 * per_plane, replace=False)
    sides = rng.random(2 * per_plane) < 0.5
    axes = ['x'] * per_plane + ['y'] * per_plane
    return [Restriction(cell=int(c), axis=a, positive_blocked=bool(s))
            for c, a, s in zip(cells, axes, sides)]
