"""
Plotting components for boostersim snapshots.

Each plotter either draws onto caller-provided axes or creates its own figure.
Plotters only read snapshots and the static lattice; they never touch
simulation state.
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from typing import Optional, Any, Tuple
import logging

logger = logging.getLogger(__name__)


class BeamlinePlotter:
    """Reusable component for plotting the cell layout."""

    def __init__(self, figsize: Tuple[float, float] = (14, 2)):
        """
        Initialize beamline plotter.

        Args:
            figsize: Figure size (width, height) in inches
        """
        self.figsize = figsize
        self.fig = None
        self.ax = None

    def create_figure(self) -> Tuple[Figure, Any]:
        """Create matplotlib figure and axis."""
        self.fig, self.ax = plt.subplots(figsize=self.figsize)
        return self.fig, self.ax

    def plot(self, lattice, first_cell: int = 0, num_cells: int = 1, ax=None) -> float:
        """
        Plot magnets of consecutive cells; F above the axis, D below.

        Args:
            lattice: LatticeModel
            first_cell: First cell to draw
            num_cells: Number of cells to draw
            ax: Optional axes to draw onto

        Returns:
            float: End s-coordinate
        """
        if ax is not None:
            self.ax = ax
        elif self.ax is None:
            self.create_figure()

        self.ax.clear()
        s_begin = lattice.s_position(first_cell, 0)
        s = s_begin
        for cell in range(first_cell, first_cell + num_cells):
            for element in lattice.cell_elements(cell):
                s = element.plot_in_beamline(self.ax, s)

        self.ax.axhline(0, color='black', linewidth=0.8)
        self.ax.set_xlim(s_begin, s)
        self.ax.set_ylim(-1, 1)
        self.ax.set_yticks([])
        self.ax.set_xlabel('S position [m]', fontsize=11)

        if self.fig is not None:
            self.fig.tight_layout()
        return s


class OrbitPlotter:
    """Reusable component for plotting the beam trail against the apertures."""

    def __init__(self, figsize: Tuple[float, float] = (12, 4)):
        self.figsize = figsize
        self.fig = None
        self.ax = None

    def create_figure(self) -> Tuple[Figure, Any]:
        self.fig, self.ax = plt.subplots(figsize=self.figsize)
        return self.fig, self.ax

    def plot(self, snapshot, aperture: float, loss_zone: float, ax=None):
        """
        Plot the cell-by-cell trail with its envelope.

        Args:
            snapshot: SimulationSnapshot
            aperture: Hard aperture in display units
            loss_zone: Soft-loss threshold in display units
            ax: Optional axes to draw onto
        """
        if ax is not None:
            self.ax = ax
        elif self.ax is None:
            self.create_figure()

        self.ax.clear()
        trail = snapshot.history.trail
        if len(trail) == 0:
            self.ax.text(0.5, 0.5, 'No trail recorded',
                         ha='center', va='center', transform=self.ax.transAxes)
            return

        data = np.array(trail, dtype=float)
        index = np.arange(len(data))
        x, size = data[:, 1], data[:, 2]
        self.ax.plot(index, x, 'b-', label='x', linewidth=1.5)
        self.ax.fill_between(index, x - size / 2, x + size / 2, color='b', alpha=0.2, label='envelope')

        for level, style in ((aperture, 'r-'), (loss_zone, 'r--')):
            self.ax.axhline(level, color=style[0], linestyle=style[1:], alpha=0.6)
            self.ax.axhline(-level, color=style[0], linestyle=style[1:], alpha=0.6)

        self.ax.set_xlabel('Completed cell', fontsize=11)
        self.ax.set_ylabel('X [display units]', fontsize=11)
        self.ax.set_title(f'Orbit ({snapshot.phase}, turn {snapshot.turns_completed})',
                          fontsize=12, fontweight='bold')
        self.ax.legend(loc='best', fontsize=9)
        self.ax.grid(True, alpha=0.3)

        if self.fig is not None:
            self.fig.tight_layout()


class PhaseSpacePlotter:
    """Reusable component for plotting turn-by-turn phase space."""

    def __init__(self, figsize: Tuple[float, float] = (14, 4)):
        self.figsize = figsize
        self.fig = None
        self.axes = None

    def create_figure(self) -> Tuple[Figure, Any]:
        """Create matplotlib figure with three subplots."""
        self.fig, self.axes = plt.subplots(1, 3, figsize=self.figsize)
        return self.fig, self.axes

    def plot(self, snapshot, axes: Optional[Any] = None):
        """
        Plot x-x', y-y' and phi-dE histories.

        Args:
            snapshot: SimulationSnapshot
            axes: Optional sequence of three axes
        """
        if axes is not None:
            self.axes = axes
        elif self.axes is None:
            self.create_figure()

        history = snapshot.history
        panels = (
            (history.x_xp, "x [mm]", "x' [mrad]", 'b'),
            (history.y_yp, "y [mm]", "y' [mrad]", 'r'),
            (history.phi_de, "phi [rad]", "dE [GeV]", 'g'),
        )
        for ax, (points, xlabel, ylabel, color) in zip(self.axes, panels):
            ax.clear()
            if len(points) > 0:
                data = np.array(points, dtype=float)
                ax.plot(data[:, 0], data[:, 1], 'o', color=color, markersize=3)
            ax.set_xlabel(xlabel, fontsize=11)
            ax.set_ylabel(ylabel, fontsize=11)
            ax.grid(True, alpha=0.3)

        if self.fig is not None:
            self.fig.tight_layout()
