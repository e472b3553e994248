# Elements of the booster cell.
# Each cell is the fixed sequence F, Os, F, D, OL, D:
## FMagnet   : combined-function magnet, focusing in X and defocusing in Y
## DMagnet   : combined-function magnet, defocusing in X and focusing in Y
## ShortDrift: short straight section
## LongDrift : long straight section, home of the cell's corrector package
# Elements are immutable; their energy-dependent matrices come from the optics engine.

from dataclasses import dataclass
from enum import Enum


class ElementType(str, Enum):
    """Types of lattice elements in a booster cell."""
    F_MAGNET = "FMagnet"
    D_MAGNET = "DMagnet"
    SHORT_DRIFT = "ShortDrift"
    LONG_DRIFT = "LongDrift"


# Plotting style per element type: (color, height)
_PLOT_STYLE = {
    ElementType.F_MAGNET: ('C1', 0.6),
    ElementType.D_MAGNET: ('C0', 0.6),
}


@dataclass(frozen=True)
class LatticeElement:
    """One element of the ring, fixed at construction."""
    type: ElementType
    cell_index: int
    position_in_cell: int
    length: float

    def __post_init__(self):
        if self.length < 0:
            raise ValueError(f"Length of element {self.name} must be non-negative.")
        if self.cell_index < 0 or self.position_in_cell < 0:
            raise ValueError("Cell index and position in cell must be non-negative.")

    @property
    def name(self) -> str:
        return f"{ElementType(self.type).value}_{self.cell_index}_{self.position_in_cell}"

    @property
    def is_magnet(self) -> bool:
        """True for the combined-function magnets that carry gradient and bend."""
        return self.type in (ElementType.F_MAGNET, ElementType.D_MAGNET)

    @property
    def hosts_correctors(self) -> bool:
        return self.type == ElementType.LONG_DRIFT

    def plot_in_beamline(self, ax, s_start):
        """Plot the element in a beamline layout.

        F magnets are drawn above the axis, D magnets below it; drifts draw
        nothing and only advance s.

        Args:
            ax: Matplotlib axes object
            s_start: Starting s-coordinate

        Returns:
            float: End s-coordinate
        """
        style = _PLOT_STYLE.get(ElementType(self.type))
        if style is not None:
            from matplotlib.patches import Rectangle
            color, height = style
            y0 = 0.0 if self.type == ElementType.F_MAGNET else -height
            ax.add_patch(
                Rectangle((s_start, y0), self.length, height, angle=0.0,
                          ec=color, fc=color, alpha=0.8, lw=1)
            )
        return s_start + self.length
